# Heartbeat Manager - Periodic Liveness Probing
# Recurring probe schedule with a per-cycle timeout watchdog

"""
Heartbeat Manager Module

Responsibilities:
- Probe a target every `interval` ms
- Arm a one-shot watchdog per tick that fires on_timeout after `timeout` ms
- Disarm the watchdog before reporting success/failure of the cycle
- Answer has_timed_out() from the last successful probe time
- Keep beating through probe failures until stop()/reset()

All durations are milliseconds. Timers run on the asyncio event loop the
manager was started from; the manager is not thread-safe.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set

from ..utils.logger import setup_logger
from .errors import AlreadyRunningError, InvalidArgumentError, ProbeFailure
from .prober import Prober, ProbeResult, resolve_target

DEFAULT_INTERVAL_MS = 3000
DEFAULT_TIMEOUT_MS = 5000


def _noop():
    pass


class BeatState(Enum):
    """Heartbeat manager states"""
    IDLE = "idle"
    BEATING = "beating"


@dataclass
class Watchdog:
    """Armed timeout timer and the cycle that armed it"""
    cycle: int
    handle: asyncio.TimerHandle


def _validate_duration(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not value > 0:
        raise InvalidArgumentError(f"{name} must be a positive number of milliseconds, got {value!r}")


class HeartbeatManager:
    """
    Heartbeat monitor for a single target.

    Each tick launches one probe task and arms one watchdog. A successful
    probe updates the last-success time, disarms its watchdog and calls
    on_success(elapsed_ms); a failed probe disarms its watchdog and calls
    on_failure(). If the watchdog fires first, the currently registered
    on_timeout callback runs (read at fire time, so the latest one
    registered always wins).

    Callbacks may be plain functions or coroutine functions.
    """

    DEFAULT_INTERVAL = DEFAULT_INTERVAL_MS
    DEFAULT_TIMEOUT = DEFAULT_TIMEOUT_MS

    def __init__(
        self,
        prober: Optional[Prober] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize heartbeat manager

        Args:
            prober: Object with `async probe(target, port) -> ProbeResult`
            clock: Monotonic clock in seconds (defaults to time.monotonic)
        """
        self.prober = prober or Prober()
        self._clock = clock or time.monotonic

        self._interval = self.DEFAULT_INTERVAL
        self._timeout = self.DEFAULT_TIMEOUT
        self._on_timeout: Callable = _noop
        self._last_success: Optional[float] = None

        # Schedule state
        self.state = BeatState.IDLE
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._schedule_handle: Optional[asyncio.TimerHandle] = None
        self._next_tick_at = 0.0
        self._watchdog: Optional[Watchdog] = None
        self._generation = 0
        self._cycle_seq = 0
        self._cycles: Dict[int, asyncio.Task] = {}
        self._callback_tasks: Set[asyncio.Task] = set()

        # Current run
        self._target: Optional[str] = None
        self._port: Optional[int] = None
        self._on_success: Optional[Callable] = None
        self._on_failure: Optional[Callable] = None
        self.last_error: Optional[ProbeFailure] = None

        self._stats = {
            "ticks": 0,
            "successes": 0,
            "failures": 0,
            "timeouts": 0,
            "last_rtt_ms": None,
            "last_error": None,
        }

        self.logger = setup_logger("HeartbeatManager", "INFO")

    # Interval / timeout

    def get_beat_interval(self) -> float:
        return self._interval

    def set_beat_interval(self, interval: float):
        """Set the tick period (ms); the already pending tick keeps its time"""
        _validate_duration("interval", interval)
        self._interval = interval

    def get_beat_timeout(self) -> float:
        return self._timeout

    def set_beat_timeout(self, timeout: float):
        """
        Set the timeout threshold (ms).

        Affects has_timed_out() immediately. An armed watchdog is cancelled
        and re-armed `timeout` ms from now for the same cycle, even when the
        value is unchanged.
        """
        _validate_duration("timeout", timeout)
        self._timeout = timeout
        if self._watchdog is not None:
            self._arm_watchdog(self._watchdog.cycle)

    # Liveness

    def has_timed_out(self) -> bool:
        """True if no successful probe happened within the timeout (always True when stopped)"""
        if self._last_success is None:
            return True
        return (self._clock() - self._last_success) * 1000 > self._timeout

    def set_on_timeout(self, callback: Callable):
        """Replace the timeout callback; also applies to an already armed watchdog"""
        self._on_timeout = callback if callback is not None else _noop

    def is_beating(self) -> bool:
        return self._schedule_handle is not None

    @property
    def watchdog_armed(self) -> bool:
        return self._watchdog is not None

    @property
    def last_success_time(self) -> Optional[float]:
        return self._last_success

    # Lifecycle

    def start(
        self,
        target: str,
        port: Optional[int] = None,
        on_success: Optional[Callable] = None,
        on_failure: Optional[Callable] = None,
    ):
        """
        Start beating against target. Must be called from a running event loop.

        Args:
            target: "https://host", "http://host" or "host"
            port: Optional port (defaults to 443 for https, 80 otherwise)
            on_success: Called with the round-trip time in ms
            on_failure: Called with no arguments when a probe fails

        Raises:
            AlreadyRunningError: already beating
            InvalidArgumentError: target/port cannot be resolved
        """
        if self.is_beating():
            raise AlreadyRunningError(f"Already beating against {self._target}")

        resolve_target(target, port)
        loop = asyncio.get_running_loop()

        self._loop = loop
        self._target = target
        self._port = port
        self._on_success = on_success
        self._on_failure = on_failure
        self.last_error = None
        self._last_success = self._clock()

        self._schedule_tick(loop.time())
        self.state = BeatState.BEATING
        self.logger.info(
            f"Heartbeat started: target={target}, interval={self._interval}ms, "
            f"timeout={self._timeout}ms"
        )

    def stop(self):
        """Stop beating and clear all run state (idempotent)"""
        was_beating = self.is_beating()
        self._generation += 1

        if self._schedule_handle is not None:
            self._schedule_handle.cancel()
        self._schedule_handle = None

        self._cancel_watchdog()

        # A callback may call stop() from inside its own cycle task
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        for task in list(self._cycles.values()):
            if task is not current:
                task.cancel()
        self._cycles.clear()

        for task in list(self._callback_tasks):
            if task is not current:
                task.cancel()
        self._callback_tasks.clear()

        self._last_success = None
        self.state = BeatState.IDLE
        if was_beating:
            self.logger.info(f"Heartbeat stopped: target={self._target}")

    def reset(self):
        """Stop, then restore interval, timeout and timeout callback to defaults"""
        self.stop()
        self._interval = self.DEFAULT_INTERVAL
        self._timeout = self.DEFAULT_TIMEOUT
        self._on_timeout = _noop

    def get_stats(self) -> dict:
        """Get heartbeat statistics."""
        return dict(self._stats)

    # Schedule

    def _schedule_tick(self, base: float):
        # Fixed period from the previous scheduled time, no drift compensation
        self._next_tick_at = base + self._interval / 1000
        self._schedule_handle = self._loop.call_at(self._next_tick_at, self._tick)

    def _tick(self):
        if self._schedule_handle is None:
            return
        self._schedule_tick(self._next_tick_at)

        self._cycle_seq += 1
        cycle = self._cycle_seq
        self._stats["ticks"] += 1
        self.logger.debug(f"Tick #{cycle}: probing {self._target}")

        self._arm_watchdog(cycle)
        task = self._loop.create_task(self._run_cycle(cycle, self._generation))
        self._cycles[cycle] = task
        task.add_done_callback(lambda _t, c=cycle: self._cycles.pop(c, None))

    async def _run_cycle(self, cycle: int, generation: int):
        try:
            result = await self.prober.probe(self._target, self._port)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            result = ProbeResult(error=ProbeFailure(self._target, str(e) or type(e).__name__, e))

        # Stopped (and possibly restarted) while the probe was in flight
        if generation != self._generation:
            return

        if result.ok:
            self._last_success = self._clock()
            self._disarm_watchdog(cycle)
            self._stats["successes"] += 1
            self._stats["last_rtt_ms"] = result.elapsed_ms
            self.logger.debug(f"Beat #{cycle} ok: {result.elapsed_ms:.1f}ms")
            await self._invoke(self._on_success, result.elapsed_ms)
        else:
            self._disarm_watchdog(cycle)
            self.last_error = result.error
            self._stats["failures"] += 1
            self._stats["last_error"] = str(result.error)
            self.logger.warning(f"Beat #{cycle} failed: {result.error}")
            await self._invoke(self._on_failure)

    # Watchdog

    def _arm_watchdog(self, cycle: int):
        self._cancel_watchdog()
        handle = self._loop.call_later(self._timeout / 1000, self._fire_watchdog, cycle)
        self._watchdog = Watchdog(cycle=cycle, handle=handle)

    def _disarm_watchdog(self, cycle: int):
        # Only the cycle that armed the watchdog may disarm it
        if self._watchdog is not None and self._watchdog.cycle == cycle:
            self._cancel_watchdog()

    def _cancel_watchdog(self):
        if self._watchdog is not None:
            self._watchdog.handle.cancel()
        self._watchdog = None

    def _fire_watchdog(self, cycle: int):
        self._watchdog = None
        self._stats["timeouts"] += 1
        self.logger.warning(f"Heartbeat timeout: no response from {self._target} within {self._timeout}ms")

        try:
            result = self._on_timeout()
        except Exception as e:
            self.logger.error(f"Timeout callback error: {e}")
            return
        if inspect.isawaitable(result):
            task = self._loop.create_task(self._await_callback(result))
            self._callback_tasks.add(task)
            task.add_done_callback(self._callback_tasks.discard)

    # Callbacks

    async def _invoke(self, callback: Optional[Callable], *args: Any):
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.logger.error(f"Callback error: {e}")

    async def _await_callback(self, awaitable):
        try:
            await awaitable
        except Exception as e:
            self.logger.error(f"Timeout callback error: {e}")
