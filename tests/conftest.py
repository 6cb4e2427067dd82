"""Shared test fixtures for Pitchline tests."""

import asyncio

import pytest

from pitchline.core.backend import (
    AudioBackend,
    BackendError,
    CaptureHandle,
    CaptureStatus,
)


class FakeCapture(CaptureHandle):
    """Capture handle replaying scripted statuses."""

    def __init__(self, statuses=None, fail_on_start=False, fail_on_release=False, fail_status=False, start_delay=0.0):
        self.statuses = list(statuses or [])
        self.fail_on_start = fail_on_start
        self.fail_on_release = fail_on_release
        self.fail_status = fail_status
        self.start_delay = start_delay
        self.started = False
        self.status_calls = 0
        self.release_calls = 0

    async def start(self):
        if self.start_delay:
            await asyncio.sleep(self.start_delay)
        if self.fail_on_start:
            raise BackendError("stream refused to start")
        self.started = True

    async def get_status(self):
        self.status_calls += 1
        if self.fail_status:
            raise BackendError("status unavailable")
        if self.statuses:
            return self.statuses.pop(0)
        return CaptureStatus(is_recording=True, metering_db=None)

    async def stop_and_release(self):
        self.release_calls += 1
        self.started = False
        if self.fail_on_release:
            raise BackendError("device vanished")


class FakeBackend(AudioBackend):
    """Backend handing out a single :class:`FakeCapture`."""

    def __init__(self, capture=None, permission=True, fail_permission=False):
        self.capture = capture if capture is not None else FakeCapture()
        self.permission = permission
        self.fail_permission = fail_permission
        self.options = None
        self.profiles = []

    @property
    def opened(self):
        return len(self.profiles)

    async def request_permission(self):
        if self.fail_permission:
            raise BackendError("no input device")
        return self.permission

    async def configure(self, options):
        self.options = options

    async def open_capture(self, profile):
        self.profiles.append(profile)
        return self.capture


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def fake_capture():
    return FakeCapture()


@pytest.fixture
def fake_backend(fake_capture):
    return FakeBackend(fake_capture)


@pytest.fixture
def fake_clock():
    return FakeClock()
