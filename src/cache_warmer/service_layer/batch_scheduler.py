"""Batched warm-request scheduler for one site.

URLs are split into contiguous batches. A batch's URLs run concurrently;
batches run one after another with a fixed pause in between, which is the
only rate limit applied to the origin. Per-URL lifecycle:

    Pending -> InFlight -> Succeeded | Failed -> Logged

A succeeded URL is classified, checked against the purge policy, purged
when the policy says so, then logged. A failed URL is logged with its
error and never purged. No URL failure aborts the batch.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
import logging
from typing import Protocol

from ..adapters.purge_client import PurgeInvoker
from ..domain.model import FetchOutcome, LogRow
from ..domain.purge_policy import PurgePolicy
from ..observability.metrics import PURGE_REQUESTS, WARM_LATENCY, WARM_REQUESTS
from ..observability.tracing import create_span
from .run_log_buffer import RunLogBuffer


logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class Fetcher(Protocol):
    async def fetch(self, url: str) -> FetchOutcome: ...


def partition_batches(urls: Sequence[str], batch_size: int) -> list[list[str]]:
    """Split ``urls`` into contiguous batches of at most ``batch_size``."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    return [list(urls[i : i + batch_size]) for i in range(0, len(urls), batch_size)]


@dataclass(slots=True, frozen=True)
class UrlResult:
    outcome: FetchOutcome
    purge_requested: bool = False
    purged: bool = False


@dataclass(slots=True)
class BatchRunReport:
    """Totals for one site's run through the scheduler."""

    site: str
    urls: int = 0
    batches: int = 0
    succeeded: int = 0
    failed: int = 0
    purge_requested: int = 0
    purged: int = 0

    def record(self, result: UrlResult) -> None:
        if result.outcome.succeeded:
            self.succeeded += 1
        else:
            self.failed += 1
        if result.purge_requested:
            self.purge_requested += 1
        if result.purged:
            self.purged += 1

    def to_dict(self) -> dict[str, int | str]:
        return {
            "site": self.site,
            "urls": self.urls,
            "batches": self.batches,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "purge_requested": self.purge_requested,
            "purged": self.purged,
        }


class BatchScheduler:
    """Warm a site's URLs batch by batch."""

    def __init__(
        self,
        fetcher: Fetcher,
        purger: PurgeInvoker,
        policy: PurgePolicy,
        log_buffer: RunLogBuffer,
        *,
        site_label: str,
        batch_size: int = 3,
        batch_delay_seconds: float = 7.0,
        origin_miss_cooldown_seconds: float = 0.0,
        sleep: Sleep = asyncio.sleep,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.fetcher = fetcher
        self.purger = purger
        self.policy = policy
        self.log_buffer = log_buffer
        self.site_label = site_label
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self.origin_miss_cooldown_seconds = origin_miss_cooldown_seconds
        self._sleep = sleep

    async def run(self, urls: Sequence[str]) -> BatchRunReport:
        batches = partition_batches(urls, self.batch_size)
        report = BatchRunReport(site=self.site_label, urls=len(urls), batches=len(batches))

        for index, batch in enumerate(batches, start=1):
            with create_span(
                "warm.batch",
                attributes={"site": self.site_label, "batch.index": index, "batch.size": len(batch)},
            ):
                results = await asyncio.gather(*(self._process_url(url) for url in batch))
            for result in results:
                report.record(result)
            logger.debug("Batch %d/%d done for %s", index, len(batches), self.site_label)

            if index < len(batches) and self.batch_delay_seconds > 0:
                await self._sleep(self.batch_delay_seconds)

        return report

    async def _process_url(self, url: str) -> UrlResult:
        try:
            outcome = await self.fetcher.fetch(url)
        except Exception as exc:
            logger.error("Unexpected error warming %s: %s", url, exc, exc_info=True)
            outcome = FetchOutcome.failure(url=url, error_message=str(exc) or type(exc).__name__, latency_ms=0)

        WARM_REQUESTS.labels(site=self.site_label, outcome="success" if outcome.succeeded else "failure").inc()
        WARM_LATENCY.labels(site=self.site_label).observe(outcome.latency_ms / 1000)

        if not outcome.succeeded:
            logger.warning("Failed %s: %s", url, outcome.error_message)
            await self.log_buffer.append(LogRow.from_outcome(self.log_buffer.run, self.site_label, outcome))
            return UrlResult(outcome=outcome)

        status = outcome.cache_status
        assert status is not None
        logger.info(
            "[%s] %s edge=%s origin=%s - %s",
            status.edge_node_id,
            outcome.http_status,
            status.edge_cache_state,
            status.origin_cache_header,
            url,
        )

        purge_requested = self.policy.should_purge(status)
        purged = False
        if purge_requested:
            purged = await self._purge(url)

        if not status.origin_hit and self.origin_miss_cooldown_seconds > 0:
            await self._sleep(self.origin_miss_cooldown_seconds)

        await self.log_buffer.append(LogRow.from_outcome(self.log_buffer.run, self.site_label, outcome))
        return UrlResult(outcome=outcome, purge_requested=purge_requested, purged=purged)

    async def _purge(self, url: str) -> bool:
        try:
            result = await self.purger.purge(url)
        except Exception as exc:
            logger.warning("Purge raised for %s: %s", url, exc)
            PURGE_REQUESTS.labels(site=self.site_label, result="error").inc()
            return False

        PURGE_REQUESTS.labels(site=self.site_label, result="success" if result.success else "failure").inc()
        if not result.success:
            logger.info("Purge not applied for %s: %s", url, result.message)
        return result.success
