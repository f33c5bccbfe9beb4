"""CLI package for the Claude content bridge

Provides login/logout/status commands and a one-shot generate command.
"""

from cli.main import main

__all__ = [
    "main",
]
