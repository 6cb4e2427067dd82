"""Command-line interface for Pitchline."""

from .commands import app

__all__ = ["app"]
