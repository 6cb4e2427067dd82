"""Rolling window of normalized loudness samples."""

from collections import deque
from typing import Optional, Tuple

from .config import MAX_DATA_POINTS


class SampleWindow:
    """Keeps the most recent samples in arrival order, oldest first.

    Once ``capacity`` samples are held, every append evicts the oldest one.
    Not thread-safe: the controller mutates it from a single event loop.

    Args:
        capacity: Maximum number of samples retained
    """

    def __init__(self, capacity: int = MAX_DATA_POINTS) -> None:
        if capacity <= 0:
            raise ValueError(f"Window capacity must be positive, got {capacity}")
        self._samples: deque = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    @property
    def latest(self) -> Optional[float]:
        """Most recently appended sample, or ``None`` when empty."""
        return self._samples[-1] if self._samples else None

    def append(self, sample: float) -> None:
        self._samples.append(float(sample))

    def clear(self) -> None:
        self._samples.clear()

    def snapshot(self) -> Tuple[float, ...]:
        """Return the current samples as an immutable tuple."""
        return tuple(self._samples)

    def __len__(self) -> int:
        return len(self._samples)
