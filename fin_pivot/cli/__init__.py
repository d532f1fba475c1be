"""Command line interface (``python -m fin_pivot.cli``)."""

from .app import main

__all__ = ["main"]
