"""Pitchline - live microphone loudness recorder.

This package records the microphone for up to a minute and charts the
normalized input loudness while recording.
"""

from .cli.commands import app

__version__ = "1.0.0"
__author__ = "Pitchline Team"

__all__ = ["app", "__version__"]
