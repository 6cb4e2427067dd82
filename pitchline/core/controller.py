"""Recording session controller for Pitchline.

:class:`RecordingController` drives one recording session at a time on the
running asyncio event loop::

    controller = RecordingController(PyAudioBackend())
    async with controller:
        await controller.start()
        ...
        summary = await controller.accept()

While recording, three timers run:

- a sampling tick (``refresh_interval_ms``) which reads the capture status,
  normalizes the metering value and appends it to the :class:`SampleWindow`;
- an elapsed-time tick (``elapsed_interval_ms``) for the display;
- a one-shot deadline (``time_limit_ms``) which stops the session.

All three live in a single :class:`TimerGroup` and are cancelled together by
:meth:`RecordingController.stop`.  Backend failures never propagate out of
the controller: they are logged and published as :class:`ControllerEvent`
notifications to subscribers.
"""

import asyncio
import math
import time
from typing import Callable, List, Optional, Tuple

from loguru import logger

from .backend import (
    HIGH_QUALITY,
    AudioBackend,
    AudioModeOptions,
    CaptureHandle,
    CaptureStatus,
    RecordingProfile,
)
from .config import (
    ELAPSED_INTERVAL_MS,
    MAX_DATA_POINTS,
    RECORDING_TIME_LIMIT_MS,
    REFRESH_INTERVAL_MS,
)
from .processing import normalize_pitch
from .session import (
    ControllerEvent,
    EventKind,
    RecordingSession,
    RecordingState,
    RecordingSummary,
)
from .timers import TimerGroup
from .window import SampleWindow

EventListener = Callable[[ControllerEvent], None]


def read_metering(status: CaptureStatus) -> Optional[float]:
    """Return the usable metering value of ``status`` or ``None``.

    Ticks from a capture that is not recording, and readings that are
    missing, non-numeric or non-finite, yield ``None``.
    """
    if not status.is_recording:
        return None
    metering = status.metering_db
    if isinstance(metering, bool) or not isinstance(metering, (int, float)):
        return None
    if not math.isfinite(metering):
        return None
    return float(metering)


class RecordingController:
    """Owns the lifecycle of one recording session.

    Args:
        backend: Audio backend providing capture handles
        profile: Recording profile passed to the backend
        time_limit_ms: Hard ceiling on the session length
        refresh_interval_ms: Sampling tick interval
        elapsed_interval_ms: Elapsed-time tick interval
        max_data_points: Capacity of the sample window
        clock: Monotonic clock in seconds, used for elapsed time
    """

    def __init__(
        self,
        backend: AudioBackend,
        profile: RecordingProfile = HIGH_QUALITY,
        time_limit_ms: int = RECORDING_TIME_LIMIT_MS,
        refresh_interval_ms: int = REFRESH_INTERVAL_MS,
        elapsed_interval_ms: int = ELAPSED_INTERVAL_MS,
        max_data_points: int = MAX_DATA_POINTS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._backend = backend
        self._profile = profile
        self._time_limit_ms = time_limit_ms
        self._refresh_interval_ms = refresh_interval_ms
        self._elapsed_interval_ms = elapsed_interval_ms
        self._clock = clock

        self._session = RecordingSession()
        self._window = SampleWindow(max_data_points)
        self._timers = TimerGroup()
        self._handle: Optional[CaptureHandle] = None
        self._starting = False
        self._stop_requested = False
        self._listeners: List[EventListener] = []

    # ------------------------------------------------------------------
    # Display accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> RecordingState:
        return self._session.state

    @property
    def is_recording(self) -> bool:
        return self._session.state is RecordingState.RECORDING

    @property
    def elapsed_ms(self) -> float:
        return self._session.elapsed_ms

    @property
    def time_limit_ms(self) -> int:
        return self._time_limit_ms

    @property
    def current_value(self) -> Optional[float]:
        """Last normalized value, or ``None`` before the first sample."""
        return self._window.latest

    def snapshot(self) -> Tuple[float, ...]:
        """Return the sample window contents, oldest first."""
        return self._window.snapshot()

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register ``listener`` for controller events.

        Returns:
            Callable removing the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def start(self) -> bool:
        """Acquire the microphone and begin a new session.

        Starting while a session is active is a no-op.  A :meth:`stop` that
        arrives while the microphone is still being acquired wins: the
        capture is released and no timers are scheduled.

        Returns:
            ``True`` if the session is now recording
        """
        if self._starting or self._session.state is not RecordingState.IDLE:
            logger.warning('Recording already in progress; start ignored')
            return False

        self._starting = True
        self._stop_requested = False
        handle: Optional[CaptureHandle] = None
        try:
            granted = await self._backend.request_permission()
            if not granted:
                raise PermissionError('Microphone permission denied')
            await self._backend.configure(
                AudioModeOptions(allows_recording=True, plays_in_silent_mode=True)
            )
            handle = await self._backend.open_capture(self._profile)
            await handle.start()
        except asyncio.CancelledError:
            logger.warning('Start cancelled while acquiring the microphone')
            if handle is not None:
                await self._release(handle, publish=False)
            raise
        except Exception as e:
            logger.error(f'Failed to start recording: {e}')
            if handle is not None:
                await self._release(handle, publish=False)
            self._publish(EventKind.ACQUISITION_FAILED, f'Failed to start recording: {e}', e)
            return False
        finally:
            self._starting = False

        if self._stop_requested:
            self._stop_requested = False
            logger.info('Stop requested while starting; releasing the microphone')
            await self._release(handle)
            return False

        self._handle = handle
        self._window.clear()
        self._session.begin(self._clock())

        self._timers.every(self._refresh_interval_ms, self._sample_tick, name='sampling')
        self._timers.every(self._elapsed_interval_ms, self._elapsed_tick, name='elapsed')
        self._timers.after(self._time_limit_ms, self._deadline, name='deadline')

        logger.info(f'Recording started (limit {self._time_limit_ms} ms)')
        self._publish(EventKind.STARTED, 'Recording started')
        return True

    async def stop(self, reason: str = 'user') -> None:
        """Stop the current session; a no-op when nothing is recording.

        Args:
            reason: Why the session ends: ``'user'``, ``'deadline'`` or ``'teardown'``
        """
        if self._starting:
            logger.debug(f'Stop ({reason}) requested while starting')
            self._stop_requested = True
            return
        if self._session.state is RecordingState.STOPPED:
            logger.debug('Stop already in progress')
            return
        handle = self._handle
        if handle is None and self._session.state is RecordingState.IDLE and not len(self._timers):
            return

        # Detach first so a concurrent stop finds nothing left to release
        self._handle = None
        was_recording = self._session.state is RecordingState.RECORDING
        if was_recording:
            self._session.state = RecordingState.STOPPED
            self._session.update_elapsed(self._clock(), self._time_limit_ms)

        cancelled = await self._timers.cancel_all()
        logger.debug(f'Cancelled {cancelled} timer(s)')

        if handle is not None:
            await self._release(handle)

        self._session.state = RecordingState.IDLE
        if was_recording:
            logger.info(f'Recording stopped ({reason}) after {self._session.elapsed_ms:.0f} ms')
            self._publish(EventKind.STOPPED, reason)

    async def toggle(self) -> bool:
        """Start when idle, stop when recording.

        Returns:
            ``True`` if a session is recording afterwards
        """
        if self.is_recording:
            await self.stop()
            return False
        return await self.start()

    async def accept(self) -> RecordingSummary:
        """Stop if needed and return the summary of the recorded samples."""
        await self.stop()
        return RecordingSummary.from_samples(self._window.snapshot(), self._session.elapsed_ms)

    async def discard(self) -> None:
        """Stop if needed and drop the recorded samples."""
        await self.stop()
        self._window.clear()
        self._session.reset()

    async def dispose(self) -> None:
        """Release every timer and handle; call when the screen goes away."""
        await self.stop(reason='teardown')

    async def __aenter__(self) -> 'RecordingController':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def on_sample(self, status: CaptureStatus) -> None:
        """Feed one capture status through the normalization pipeline."""
        metering = read_metering(status)
        if metering is None:
            return
        self._window.append(normalize_pitch(metering))

    async def _sample_tick(self) -> None:
        handle = self._handle
        if handle is None:
            return
        try:
            status = await handle.get_status()
        except Exception as e:
            logger.debug(f'Status query failed: {e}')
            return
        # The session may have been stopped while the query was in flight
        if handle is self._handle:
            self.on_sample(status)

    async def _elapsed_tick(self) -> None:
        self._session.update_elapsed(self._clock(), self._time_limit_ms)

    async def _deadline(self) -> None:
        logger.info('Recording time limit reached')
        await self.stop(reason='deadline')

    async def _release(self, handle: CaptureHandle, publish: bool = True) -> None:
        try:
            await handle.stop_and_release()
        except Exception as e:
            logger.error(f'Error stopping recording: {e}')
            if publish:
                self._publish(EventKind.FINALIZATION_FAILED, f'Error stopping recording: {e}', e)

    def _publish(self, kind: EventKind, message: str = '', error: Optional[BaseException] = None) -> None:
        event = ControllerEvent(kind=kind, message=message, error=error)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f'Event listener failed for {kind.value}: {e}')
