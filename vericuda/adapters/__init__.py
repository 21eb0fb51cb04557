"""Command-line adapter for vericuda."""

from .cli import main

__all__ = ["main"]
