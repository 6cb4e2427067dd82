"""Core recording logic for Pitchline."""

from .backend import (
    HIGH_QUALITY,
    LOW_QUALITY,
    AudioBackend,
    AudioModeOptions,
    BackendError,
    CaptureHandle,
    CaptureStatus,
    RecordingProfile,
    get_profile,
)
from .config import AppConfig
from .controller import RecordingController
from .processing import calculate_metering_db, detect_driver_type, format_time, normalize_pitch
from .recording import PyAudioBackend, PyAudioCapture
from .session import ControllerEvent, EventKind, RecordingSession, RecordingState, RecordingSummary
from .timers import TimerGroup
from .window import SampleWindow

__all__ = [
    "AppConfig",
    "AudioBackend",
    "AudioModeOptions",
    "BackendError",
    "CaptureHandle",
    "CaptureStatus",
    "ControllerEvent",
    "EventKind",
    "HIGH_QUALITY",
    "LOW_QUALITY",
    "PyAudioBackend",
    "PyAudioCapture",
    "RecordingController",
    "RecordingProfile",
    "RecordingSession",
    "RecordingState",
    "RecordingSummary",
    "SampleWindow",
    "TimerGroup",
    "calculate_metering_db",
    "detect_driver_type",
    "format_time",
    "get_profile",
    "normalize_pitch",
]
