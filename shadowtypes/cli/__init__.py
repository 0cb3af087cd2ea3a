"""Command-line interface for shadowtypes."""

from .commands import main

__all__ = ["main"]
