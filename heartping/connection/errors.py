# Errors - HeartPing exception types

"""
Errors Module

Exception hierarchy shared by the prober and the heartbeat manager.
A missed heartbeat is not an exception: it is reported through the
on_timeout callback only.
"""

from typing import Optional


class HeartPingError(Exception):
    """Base class for all HeartPing errors"""


class InvalidArgumentError(HeartPingError, ValueError):
    """Non-positive interval/timeout, malformed target or port"""


class AlreadyRunningError(HeartPingError, RuntimeError):
    """start() called on a manager that is already beating"""


class ProbeFailure(HeartPingError):
    """
    A single probe could not complete its round trip

    elapsed_ms is always -1: a failed probe has no round-trip time.
    """

    elapsed_ms = -1

    def __init__(self, target: str, reason: str, cause: Optional[BaseException] = None):
        super().__init__(f"Probe to {target} failed: {reason}")
        self.target = target
        self.reason = reason
        self.cause = cause
