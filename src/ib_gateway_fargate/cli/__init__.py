"""Command-line interface for managing the IB Gateway deployment."""
