"""Shared Rich console and prompt style for the CLI."""

import questionary
from rich.console import Console

console = Console()

QUESTIONARY_STYLE = questionary.Style(
    [
        ("qmark", "fg:#5f819d"),
        ("question", "fg:#e0e0e0 bold"),
        ("answer", "fg:#FF9D00 bold"),
        ("instruction", "fg:#e0e0e0"),
        ("text", "fg:#e0e0e0"),
    ]
)
