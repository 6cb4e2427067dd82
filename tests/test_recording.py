"""PyAudio backend tests for Pitchline, run against a fake PortAudio."""

import asyncio

import numpy as np
import pytest

from pitchline.core import recording
from pitchline.core.backend import HIGH_QUALITY, AudioModeOptions, BackendError

DEVICES = [
    {"index": 0, "name": "HDMI Output", "maxInputChannels": 0, "defaultSampleRate": 48000.0},
    {"index": 1, "name": "USB PnP Audio Device", "maxInputChannels": 1, "defaultSampleRate": 44100.0},
    {"index": 2, "name": "pulse", "maxInputChannels": 32, "defaultSampleRate": 44100.0},
]


class FakeStream:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.active = True
        self.closed = False

    def is_active(self):
        return self.active

    def stop_stream(self):
        self.active = False

    def close(self):
        self.closed = True


class FakePyAudio:
    instances = []

    def __init__(self):
        self.terminated = False
        self.streams = []
        FakePyAudio.instances.append(self)

    def get_device_count(self):
        return len(DEVICES)

    def get_device_info_by_index(self, index):
        if index >= len(DEVICES):
            raise IOError("Invalid device index")
        return DEVICES[index]

    def get_default_input_device_info(self):
        return DEVICES[1]

    def open(self, **kwargs):
        stream = FakeStream(**kwargs)
        self.streams.append(stream)
        return stream

    def terminate(self):
        self.terminated = True


@pytest.fixture
def fake_pyaudio(monkeypatch):
    FakePyAudio.instances = []
    monkeypatch.setattr(recording.pyaudio, "PyAudio", FakePyAudio)
    return FakePyAudio


def test_capture_reports_metering(fake_pyaudio):
    """The PortAudio callback feeds the status metering value."""
    capture = recording.PyAudioCapture(HIGH_QUALITY)

    async def scenario():
        await capture.start()
        before = await capture.get_status()
        block = np.full(2205, 16384, dtype=np.int16).tobytes()
        capture._fill_buffer(block, 2205, None, 0)
        after = await capture.get_status()
        await capture.stop_and_release()
        stopped = await capture.get_status()
        return before, after, stopped

    before, after, stopped = asyncio.run(scenario())

    assert before.is_recording is True
    assert before.metering_db is None
    assert after.metering_db == pytest.approx(-6.02, abs=0.05)
    assert after.duration_ms == pytest.approx(50.0)
    assert stopped.is_recording is False

    audio = fake_pyaudio.instances[0]
    stream = audio.streams[0]
    assert stream.kwargs["input_device_index"] == 1
    assert stream.kwargs["rate"] == 44100
    assert stream.closed is True
    assert audio.terminated is True


def test_capture_clamps_channels_to_device(fake_pyaudio):
    """A stereo profile falls back to mono on a mono microphone."""
    capture = recording.PyAudioCapture(HIGH_QUALITY)

    async def scenario():
        await capture.start()
        await capture.stop_and_release()

    asyncio.run(scenario())

    assert capture.channels == 1
    assert fake_pyaudio.instances[0].streams[0].kwargs["channels"] == 1


def test_capture_rejects_device_without_inputs(fake_pyaudio):
    capture = recording.PyAudioCapture(HIGH_QUALITY, device_id=0)

    with pytest.raises(BackendError):
        asyncio.run(capture.start())

    assert fake_pyaudio.instances[0].terminated is True


def test_release_without_start_is_harmless(fake_pyaudio):
    capture = recording.PyAudioCapture(HIGH_QUALITY)
    asyncio.run(capture.stop_and_release())
    assert fake_pyaudio.instances == []


def test_backend_permission_and_capture(fake_pyaudio):
    backend = recording.PyAudioBackend(device_id=2)

    async def scenario():
        granted = await backend.request_permission()
        await backend.configure(AudioModeOptions())
        return granted, await backend.open_capture(HIGH_QUALITY)

    granted, capture = asyncio.run(scenario())

    assert granted is True
    assert isinstance(capture, recording.PyAudioCapture)
    assert fake_pyaudio.instances[0].terminated is True


def test_backend_permission_fails_without_input(fake_pyaudio):
    backend = recording.PyAudioBackend(device_id=7)
    with pytest.raises(BackendError):
        asyncio.run(backend.request_permission())


def test_backend_requires_configuration(fake_pyaudio):
    backend = recording.PyAudioBackend()
    with pytest.raises(BackendError):
        asyncio.run(backend.open_capture(HIGH_QUALITY))
    with pytest.raises(BackendError):
        asyncio.run(backend.configure(AudioModeOptions(allows_recording=False)))


def test_list_input_devices(fake_pyaudio):
    devices = recording.PyAudioBackend.list_input_devices()

    assert [d["id"] for d in devices] == [1, 2]
    assert devices[0]["driver"] == "usb"
    assert devices[0]["is_default"] is True
    assert devices[1]["is_default"] is False

    pulse_only = recording.PyAudioBackend.list_input_devices(driver_filter="pulse")
    assert [d["id"] for d in pulse_only] == [2]
