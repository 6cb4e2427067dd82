"""Loudness processing utilities for Pitchline.

This module maps raw metering readings to display values and provides the
small formatting helpers used by the recording screen.
"""

import math

import numpy as np
from loguru import logger

from .config import MAX_DB, MIN_DB, SILENCE_DB


def normalize_pitch(metering: float) -> float:
    """Map a metering value in dB to a display value in [0, 100].

    The reading is clamped to the fixed ``[MIN_DB, MAX_DB]`` range, rescaled
    linearly to [0, 100] and then passed through a square-root curve so that
    small increases near silence stay visible on the chart.

    Args:
        metering: Loudness reading in decibels

    Returns:
        Normalized pitch value in [0, 100]

    Raises:
        ValueError: If the reading is NaN or infinite
    """
    if not math.isfinite(metering):
        raise ValueError(f"Metering value must be finite, got {metering}")

    clamped = max(MIN_DB, min(MAX_DB, metering))
    normalized = (clamped - MIN_DB) / (MAX_DB - MIN_DB) * 100
    normalized = (normalized / 100) ** 0.5 * 100
    return max(0.0, min(100.0, normalized))


def calculate_metering_db(audio_data: bytes) -> float:
    """Calculate the dBFS level of a block of int16 audio.

    Args:
        audio_data: Raw audio bytes (int16, any channel count)

    Returns:
        Level relative to full scale, between ``SILENCE_DB`` and 0
    """
    try:
        audio_array = np.frombuffer(audio_data, dtype=np.int16)
        if audio_array.size == 0:
            return SILENCE_DB

        rms = np.sqrt(np.mean(audio_array.astype(np.float64) ** 2))
        if rms <= 0:
            return SILENCE_DB

        db = 20 * np.log10(rms / 32768)
        return float(max(SILENCE_DB, min(0.0, db)))
    except Exception as e:
        logger.debug(f"Error calculating metering level: {e}")
        return SILENCE_DB


def format_time(ms: float) -> str:
    """Format milliseconds as ``MM:SS``."""
    seconds = int(ms // 1000)
    minutes = seconds // 60
    return f"{minutes:02d}:{seconds % 60:02d}"


def detect_driver_type(device_name: str) -> str:
    """Detect the audio driver type from device name.

    Args:
        device_name: The name of the audio device

    Returns:
        Driver type: 'pulse', 'alsa', 'jack', 'usb' or 'default'
    """
    name_lower = device_name.lower()

    if 'pulse' in name_lower or 'pipewire' in name_lower:
        return 'pulse'
    elif 'alsa' in name_lower or 'hw:' in name_lower or 'plughw' in name_lower:
        return 'alsa'
    elif 'jack' in name_lower:
        return 'jack'
    elif 'usb' in name_lower:
        return 'usb'
    else:
        return 'default'
