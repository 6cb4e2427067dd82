"""Audio backend contract used by the recording controller.

A backend hands out capture handles.  Every call is a coroutine and any of
them may raise; the controller decides which failures abort a session and
which are only logged.
"""

import abc
from dataclasses import dataclass
from typing import Dict, Optional


class BackendError(RuntimeError):
    """Raised when the audio backend cannot be acquired or fails mid-session."""


@dataclass(frozen=True)
class AudioModeOptions:
    """Audio session mode requested before opening a capture.

    Attributes:
        allows_recording: Route the microphone to the application
        plays_in_silent_mode: Keep playback audible while the device is muted
    """

    allows_recording: bool = True
    plays_in_silent_mode: bool = True


@dataclass(frozen=True)
class RecordingProfile:
    """Capture parameters for one recording."""

    name: str
    sample_rate: int = 44100
    channels: int = 2
    bit_rate: int = 128000
    metering_enabled: bool = True


HIGH_QUALITY = RecordingProfile(name='high', sample_rate=44100, channels=2, bit_rate=128000)
LOW_QUALITY = RecordingProfile(name='low', sample_rate=44100, channels=2, bit_rate=64000)

PROFILES: Dict[str, RecordingProfile] = {
    HIGH_QUALITY.name: HIGH_QUALITY,
    LOW_QUALITY.name: LOW_QUALITY,
}


def get_profile(name: str) -> RecordingProfile:
    """Look up a recording profile preset by name.

    Raises:
        ValueError: If no preset has that name
    """
    try:
        return PROFILES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown recording profile '{name}', expected one of: {', '.join(PROFILES)}"
        ) from None


@dataclass(frozen=True)
class CaptureStatus:
    """Point-in-time status of a capture handle.

    ``metering_db`` is ``None`` when the backend has no reading yet.
    """

    is_recording: bool
    metering_db: Optional[float] = None
    duration_ms: float = 0.0


class CaptureHandle(abc.ABC):
    """One open capture."""

    @abc.abstractmethod
    async def start(self) -> None:
        ...

    @abc.abstractmethod
    async def get_status(self) -> CaptureStatus:
        ...

    @abc.abstractmethod
    async def stop_and_release(self) -> None:
        """Finalize the capture and free the device."""


class AudioBackend(abc.ABC):
    """Source of capture handles."""

    @abc.abstractmethod
    async def request_permission(self) -> bool:
        """Ask for microphone access.

        Returns:
            ``True`` if access was granted
        """

    @abc.abstractmethod
    async def configure(self, options: AudioModeOptions) -> None:
        ...

    @abc.abstractmethod
    async def open_capture(self, profile: RecordingProfile) -> CaptureHandle:
        """Prepare a capture handle for ``profile`` without starting it."""
