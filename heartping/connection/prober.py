# Prober - Single HTTP(S) Round Trip
# Latency probe used by the heartbeat manager, also usable standalone

"""
Prober Module

Responsibilities:
- Resolve a target ("https://host", "http://host:8080", "host") to scheme/host/port
- Issue one GET / and time it until the response headers arrive
- Turn transport errors into a failed ProbeResult instead of raising
- Close the connection before returning (no keep-alive across probes)

Default ports:
- https -> 443
- http (or no scheme) -> 80
An explicit port argument always wins over a port written in the URL.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

import aiohttp

from ..utils.logger import setup_logger
from .errors import InvalidArgumentError, ProbeFailure

DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class ProbeTarget:
    """Resolved probe destination (path is always /)"""
    scheme: str
    host: str
    port: int

    @property
    def secure(self) -> bool:
        return self.scheme == "https"

    @property
    def url(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}/"


@dataclass
class ProbeResult:
    """Outcome of one probe: either elapsed_ms or error is set"""
    elapsed_ms: Optional[float] = None
    status: Optional[int] = None      # HTTP status of the response, if any
    error: Optional[ProbeFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.elapsed_ms is not None


def _validate_port(port, source: str) -> int:
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise InvalidArgumentError(f"{source} must be an integer in 1..65535, got {port!r}")
    return port


def resolve_target(target: str, port: Optional[int] = None) -> ProbeTarget:
    """
    Resolve a target string and optional port to a ProbeTarget

    Args:
        target: "https://host", "http://host[:port]" or bare "host"
        port: Optional explicit port, overrides URL and scheme default

    Returns:
        ProbeTarget

    Raises:
        InvalidArgumentError: empty or malformed host, unsupported scheme or bad port
    """
    if not isinstance(target, str) or not target.strip():
        raise InvalidArgumentError("target must be a non-empty string")

    raw = target.strip()
    if "://" not in raw:
        raw = f"http://{raw}"

    parts = urlsplit(raw)
    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        raise InvalidArgumentError(f"Unsupported scheme '{parts.scheme}' in target {target!r}")

    host = parts.hostname
    if not host:
        raise InvalidArgumentError(f"No host in target {target!r}")
    try:
        host.encode("idna")
    except UnicodeError as exc:
        raise InvalidArgumentError(f"Invalid host {host!r} in target {target!r}") from exc

    if port is not None:
        resolved_port = _validate_port(port, "port")
    else:
        try:
            url_port = parts.port
        except ValueError as exc:
            raise InvalidArgumentError(f"Invalid port in target {target!r}") from exc
        resolved_port = url_port or DEFAULT_PORTS[scheme]

    return ProbeTarget(scheme=scheme, host=host, port=resolved_port)


class Prober:
    """
    Performs one round trip per call against a target.

    The clock starts when the request is issued and stops as soon as the
    status line and headers are in; the body is never read. Every call
    uses its own session with a non-keep-alive connector, closed before
    the call returns.
    """

    def __init__(self, request_timeout: float = 30.0):
        """
        Initialize prober.

        Args:
            request_timeout: Seconds before a single request is abandoned
        """
        if isinstance(request_timeout, bool) or not isinstance(request_timeout, (int, float)) \
                or not request_timeout > 0:
            raise InvalidArgumentError(f"request_timeout must be positive, got {request_timeout!r}")
        self.request_timeout = request_timeout
        self.logger = setup_logger("Prober", "INFO")

    async def probe(self, target: str, port: Optional[int] = None) -> ProbeResult:
        """
        Probe the target once.

        Returns:
            ProbeResult with elapsed_ms on any HTTP response, error otherwise

        Raises:
            InvalidArgumentError: target/port cannot be resolved
        """
        probe_target = resolve_target(target, port)
        url = probe_target.url

        try:
            async with aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(force_close=True),
                timeout=aiohttp.ClientTimeout(total=self.request_timeout),
            ) as session:
                started = time.perf_counter()
                async with session.get(url, allow_redirects=False) as resp:
                    elapsed_ms = (time.perf_counter() - started) * 1000
                    status = resp.status
        except asyncio.TimeoutError as e:
            self.logger.warning(f"Probe to {url} timed out after {self.request_timeout}s")
            return ProbeResult(error=ProbeFailure(url, "request timed out", e))
        except (aiohttp.ClientError, OSError) as e:
            self.logger.warning(f"Probe to {url} failed: {e}")
            return ProbeResult(error=ProbeFailure(url, str(e) or type(e).__name__, e))

        self.logger.debug(f"Probe to {url}: HTTP {status} in {elapsed_ms:.1f}ms")
        return ProbeResult(elapsed_ms=elapsed_ms, status=status)

    async def ping(self, target: str, port: Optional[int] = None) -> float:
        """
        Probe once and return the round-trip time in milliseconds.

        Raises:
            ProbeFailure: the round trip did not complete
        """
        result = await self.probe(target, port)
        if not result.ok:
            raise result.error
        return result.elapsed_ms


async def ping(target: str, port: Optional[int] = None, request_timeout: float = 30.0) -> float:
    """Standalone single-shot probe; returns elapsed ms or raises ProbeFailure"""
    return await Prober(request_timeout=request_timeout).ping(target, port)
