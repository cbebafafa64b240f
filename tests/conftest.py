"""Shared fixtures for HeartPing tests."""

import asyncio
import os

import pytest

from heartping.connection.errors import ProbeFailure
from heartping.connection.prober import ProbeResult


class FakeProber:
    """Scripted prober: waits `delay` seconds then succeeds, fails or raises."""

    def __init__(self):
        self.delay = 0.0
        self.fail = False
        self.raise_error = None
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled = 0

    async def probe(self, target, port=None):
        self.calls.append((target, port))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1

        if self.raise_error is not None:
            raise self.raise_error
        if self.fail:
            return ProbeResult(error=ProbeFailure(target, "connection refused"))
        return ProbeResult(elapsed_ms=self.delay * 1000, status=200)


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms / 1000


@pytest.fixture
def fake_prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def clean_env():
    """Remove HEARTPING_* variables before and after the test."""
    names = [
        "HEARTPING_TARGET",
        "HEARTPING_PORT",
        "HEARTPING_INTERVAL_MS",
        "HEARTPING_TIMEOUT_MS",
        "HEARTPING_LOG_LEVEL",
    ]
    saved = {name: os.environ.pop(name) for name in names if name in os.environ}
    yield
    for name in names:
        os.environ.pop(name, None)
    os.environ.update(saved)
