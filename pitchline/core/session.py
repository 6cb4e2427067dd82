"""Session state and controller events for Pitchline."""

import enum
from dataclasses import dataclass, field
from typing import Optional, Tuple


class RecordingState(str, enum.Enum):
    """Lifecycle of a recording session.

    ``STOPPED`` only lasts while the capture handle is being finalized; the
    controller always settles back to ``IDLE``.
    """

    IDLE = 'idle'
    RECORDING = 'recording'
    STOPPED = 'stopped'


class EventKind(str, enum.Enum):
    STARTED = 'started'
    STOPPED = 'stopped'
    ACQUISITION_FAILED = 'acquisition_failed'
    FINALIZATION_FAILED = 'finalization_failed'


@dataclass(frozen=True)
class ControllerEvent:
    """Notification published by the controller to display-layer subscribers."""

    kind: EventKind
    message: str = ''
    error: Optional[BaseException] = None


@dataclass
class RecordingSession:
    """Mutable state of the one session owned by a controller."""

    state: RecordingState = RecordingState.IDLE
    started_at: Optional[float] = None
    elapsed_ms: float = 0.0

    def begin(self, now: float) -> None:
        self.state = RecordingState.RECORDING
        self.started_at = now
        self.elapsed_ms = 0.0

    def update_elapsed(self, now: float, limit_ms: float) -> None:
        """Recompute elapsed time from the start timestamp, capped at ``limit_ms``."""
        if self.started_at is None:
            return
        self.elapsed_ms = min(max(0.0, (now - self.started_at) * 1000), limit_ms)

    def reset(self) -> None:
        self.state = RecordingState.IDLE
        self.started_at = None
        self.elapsed_ms = 0.0


@dataclass(frozen=True)
class RecordingSummary:
    """Result of accepting a session.

    Attributes:
        samples: Normalized values in arrival order, oldest first
        elapsed_ms: Recorded time, capped at the time limit
        peak: Largest sample (0 when no samples were recorded)
        mean: Average sample (0 when no samples were recorded)
    """

    samples: Tuple[float, ...] = field(default_factory=tuple)
    elapsed_ms: float = 0.0
    peak: float = 0.0
    mean: float = 0.0

    @classmethod
    def from_samples(cls, samples: Tuple[float, ...], elapsed_ms: float) -> 'RecordingSummary':
        if not samples:
            return cls(samples=(), elapsed_ms=elapsed_ms)
        return cls(
            samples=samples,
            elapsed_ms=elapsed_ms,
            peak=max(samples),
            mean=sum(samples) / len(samples),
        )
