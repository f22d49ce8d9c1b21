"""Filesystem configuration helpers."""
