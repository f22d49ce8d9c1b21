"""Core settings and AWS deployment helpers."""
