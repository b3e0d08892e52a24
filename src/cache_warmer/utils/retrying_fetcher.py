"""Fetch one URL with a bounded, fixed-delay retry on transient failures.

Transient failures are connection-level problems (timeouts, resets,
dropped connections) and gateway responses (502, 503, 504). Everything
else, including DNS and TLS failures, ends the URL after one attempt.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
import logging
import socket
import ssl
import time

import httpx

from ..domain.cache_status import classify_cache_status
from ..domain.model import FetchOutcome
from ..observability.metrics import WARM_RETRIES


logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = frozenset({502, 503, 504})

Sleep = Callable[[float], Awaitable[None]]


def _root_causes(exc: BaseException):
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def is_transient(exc: BaseException) -> bool:
    """Return True when a failed attempt is worth repeating."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in TRANSIENT_STATUS_CODES
    if isinstance(exc, httpx.TimeoutException):
        return True
    if isinstance(exc, (httpx.NetworkError, httpx.RemoteProtocolError, httpx.ProxyError)):
        # httpx reports DNS and certificate failures as ConnectError too
        return not any(isinstance(cause, (socket.gaierror, ssl.SSLError)) for cause in _root_causes(exc))
    return False


def describe_error(exc: BaseException) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        return f"HTTP {response.status_code} {response.reason_phrase}".strip()
    message = str(exc).strip().splitlines()[0] if str(exc).strip() else ""
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


class RetryingFetcher:
    """Issue warm GET requests through a site-bound client."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        site_label: str = "",
        max_attempts: int = 3,
        retry_delay_seconds: float = 3.0,
        sleep: Sleep = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.site_label = site_label
        self.max_attempts = max_attempts
        self.retry_delay_seconds = retry_delay_seconds
        self._sleep = sleep

    async def fetch(self, url: str, max_attempts: int | None = None) -> FetchOutcome:
        """Fetch ``url`` and classify its cache status.

        Latency spans the first attempt's start to the last attempt's end,
        retry sleeps included. Never raises for HTTP or network failures.
        """
        attempts_allowed = self.max_attempts if max_attempts is None else max_attempts
        if attempts_allowed < 1:
            raise ValueError("max_attempts must be at least 1")
        started = time.perf_counter()
        last_error: BaseException | None = None
        attempt = 0

        while attempt < attempts_allowed:
            attempt += 1
            try:
                response = await self.client.get(url)
                response.raise_for_status()
            except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
                last_error = exc
                if attempt >= attempts_allowed or not is_transient(exc):
                    break
                WARM_RETRIES.labels(site=self.site_label).inc()
                logger.warning(
                    "Transient failure for %s (%s), retry %d/%d in %.1fs",
                    url,
                    describe_error(exc),
                    attempt,
                    attempts_allowed - 1,
                    self.retry_delay_seconds,
                )
                await self._sleep(self.retry_delay_seconds)
                continue

            return FetchOutcome.success(
                url=url,
                http_status=response.status_code,
                cache_status=classify_cache_status(response.headers),
                latency_ms=self._elapsed_ms(started),
                attempts=attempt,
            )

        assert last_error is not None
        return FetchOutcome.failure(
            url=url,
            error_message=describe_error(last_error),
            latency_ms=self._elapsed_ms(started),
            attempts=attempt,
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int(round((time.perf_counter() - started) * 1000))
