"""PyAudio capture backend for Pitchline.

Main public classes
-------------------
:class:`PyAudioBackend`
    :class:`~pitchline.core.backend.AudioBackend` implementation for desktop
    input devices.  "Permission" means that the requested (or default) input
    device can be opened.

:class:`PyAudioCapture`
    Non-blocking capture: PortAudio delivers audio blocks to a callback
    thread which only updates the latest metering value, so
    :meth:`PyAudioCapture.get_status` is a cheap read.  Audio itself is not
    kept.
"""

import asyncio
from typing import List, Optional

import pyaudio
from loguru import logger

from .backend import (
    AudioBackend,
    AudioModeOptions,
    BackendError,
    CaptureHandle,
    CaptureStatus,
    RecordingProfile,
)
from .processing import calculate_metering_db, detect_driver_type

# Callback block length; shorter than the sampling tick so each tick sees a fresh reading
BLOCK_MS = 50


def _device_info(audio: 'pyaudio.PyAudio', device_id: Optional[int]) -> dict:
    """Return PortAudio info for ``device_id`` or for the default input device."""
    if device_id is None:
        return audio.get_default_input_device_info()
    return audio.get_device_info_by_index(device_id)


class PyAudioCapture(CaptureHandle):
    """Capture handle streaming from one PyAudio input device."""

    def __init__(self, profile: RecordingProfile, device_id: Optional[int] = None) -> None:
        self._profile = profile
        self._device_id = device_id
        self._rate = profile.sample_rate
        self._channels = profile.channels

        self._audio_interface: Optional[pyaudio.PyAudio] = None
        self._audio_stream = None

        self._recording = False
        self._metering_db: Optional[float] = None
        self._frames_captured = 0

    @property
    def channels(self) -> int:
        return self._channels

    async def start(self) -> None:
        await asyncio.to_thread(self._open_stream)

    async def get_status(self) -> CaptureStatus:
        stream = self._audio_stream
        is_recording = self._recording and stream is not None and stream.is_active()
        return CaptureStatus(
            is_recording=is_recording,
            metering_db=self._metering_db if self._profile.metering_enabled else None,
            duration_ms=self._frames_captured / self._rate * 1000,
        )

    async def stop_and_release(self) -> None:
        await asyncio.to_thread(self._close_stream)

    def _open_stream(self) -> None:
        """Open and start the PortAudio stream."""
        if self._audio_stream is not None:
            raise BackendError('Capture already started')

        self._audio_interface = pyaudio.PyAudio()
        try:
            device_info = _device_info(self._audio_interface, self._device_id)
            max_channels = int(device_info.get('maxInputChannels', 0))
            if max_channels <= 0:
                raise BackendError(f"Device {device_info.get('name', 'Unknown')} has no input channels")

            # Many microphones are mono; fall back rather than fail
            self._channels = max(1, min(self._profile.channels, max_channels))
            self._audio_stream = self._audio_interface.open(
                format=pyaudio.paInt16,
                channels=self._channels,
                rate=self._rate,
                input=True,
                input_device_index=int(device_info['index']),
                frames_per_buffer=int(self._rate * BLOCK_MS / 1000),
                stream_callback=self._fill_buffer,
            )
        except BackendError:
            self._terminate()
            raise
        except Exception as e:
            self._terminate()
            raise BackendError(f'Failed to open capture: {e}') from e

        self._recording = True
        logger.info(
            f"Capture started on {device_info.get('name', 'Unknown')} "
            f"({self._rate} Hz, {self._channels} ch, profile={self._profile.name})"
        )

    def _close_stream(self) -> None:
        """Stop the stream and release PortAudio."""
        self._recording = False
        if self._audio_stream is None and self._audio_interface is None:
            return
        try:
            if self._audio_stream is not None:
                self._audio_stream.stop_stream()
                self._audio_stream.close()
        except Exception as e:
            raise BackendError(f'Failed to stop capture: {e}') from e
        finally:
            self._audio_stream = None
            self._terminate()
        logger.info('Microphone has been closed')

    def _terminate(self) -> None:
        if self._audio_interface is not None:
            self._audio_interface.terminate()
            self._audio_interface = None

    def _fill_buffer(
        self,
        in_data: bytes,
        frame_count: int,
        time_info: object,
        status_flags: object,
    ) -> tuple:
        """Update the metering value from one block of captured audio.

        Args:
            in_data: The audio data as a bytes object
            frame_count: The number of frames captured
            time_info: The time information
            status_flags: The status flags

        Returns:
            Tuple of (data, status_flag)
        """
        if self._profile.metering_enabled:
            self._metering_db = calculate_metering_db(in_data)
        self._frames_captured += frame_count
        return None, pyaudio.paContinue


class PyAudioBackend(AudioBackend):
    """Desktop audio backend built on PyAudio.

    Args:
        device_id: Input device index; ``None`` selects the system default
    """

    def __init__(self, device_id: Optional[int] = None) -> None:
        self._device_id = device_id
        self._options: Optional[AudioModeOptions] = None

    async def request_permission(self) -> bool:
        await asyncio.to_thread(self._check_device)
        return True

    async def configure(self, options: AudioModeOptions) -> None:
        if not options.allows_recording:
            raise BackendError('Audio mode does not allow recording')
        if options.plays_in_silent_mode:
            logger.debug('Silent-mode playback has no effect on desktop audio')
        self._options = options

    async def open_capture(self, profile: RecordingProfile) -> CaptureHandle:
        if self._options is None:
            raise BackendError('Audio mode must be configured before opening a capture')
        return PyAudioCapture(profile, device_id=self._device_id)

    def _check_device(self) -> None:
        audio = pyaudio.PyAudio()
        try:
            device_info = _device_info(audio, self._device_id)
        except (IOError, OSError) as e:
            raise BackendError(f'No usable input device: {e}') from e
        finally:
            audio.terminate()

        if int(device_info.get('maxInputChannels', 0)) <= 0:
            raise BackendError(f"Device {device_info.get('name', 'Unknown')} has no input channels")
        logger.debug(f"Input device available: {device_info.get('name', 'Unknown')}")

    @staticmethod
    def list_input_devices(driver_filter: Optional[str] = None) -> List[dict]:
        """List all available input audio devices.

        Args:
            driver_filter: Optional driver type to filter by ('pulse', 'alsa', 'jack', 'usb', 'default')

        Returns:
            List of dicts with keys: id, name, driver, channels, rate, is_default
        """
        audio = pyaudio.PyAudio()
        try:
            try:
                default_device_id = int(audio.get_default_input_device_info()['index'])
            except (IOError, OSError):
                default_device_id = -1

            input_devices = []
            for i in range(audio.get_device_count()):
                device_info = audio.get_device_info_by_index(i)
                if device_info.get('maxInputChannels', 0) <= 0:
                    continue
                device_name = device_info.get('name', 'Unknown')
                driver_type = detect_driver_type(device_name)
                if driver_filter and driver_type != driver_filter.lower():
                    continue
                input_devices.append({
                    'id': i,
                    'name': device_name,
                    'driver': driver_type,
                    'channels': int(device_info.get('maxInputChannels', 0)),
                    'rate': int(device_info.get('defaultSampleRate', 0)),
                    'is_default': i == default_device_id,
                })
            return input_devices
        finally:
            audio.terminate()
