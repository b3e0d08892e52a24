"""Warming orchestrator: every configured site, one run, one log flush.

For each site, in order:
1. Resolve the egress proxy (fail fast when a required proxy is missing)
2. Discover page URLs from the site's sitemap
3. Warm them through the batch scheduler

Whatever happens, the run log is finalized and flushed exactly once when
the run ends.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
import logging

from ..adapters.log_sink import LogSink
from ..adapters.purge_client import PurgeInvoker
from ..config import Settings
from ..deployment_config import SiteConfig
from ..domain.model import Run
from ..domain.purge_policy import PurgePolicy
from ..observability.context import bind_log_context
from ..observability.metrics import SITE_URLS
from ..observability.tracing import create_span
from ..utils.http_client import ClientFactory, create_site_client
from ..utils.retrying_fetcher import RetryingFetcher, Sleep
from ..utils.sitemap_fetcher import SitemapFetcher
from .batch_scheduler import BatchRunReport, BatchScheduler
from .run_log_buffer import FlushResult, RunLogBuffer


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RunReport:
    run_id: str
    sites: list[BatchRunReport] = field(default_factory=list)
    flush: FlushResult | None = None

    @property
    def succeeded(self) -> int:
        return sum(report.succeeded for report in self.sites)

    @property
    def failed(self) -> int:
        return sum(report.failed for report in self.sites)

    @property
    def purged(self) -> int:
        return sum(report.purged for report in self.sites)


class CacheWarmer:
    """Run the warming pipeline across sites with a shared run log."""

    def __init__(
        self,
        settings: Settings,
        purger: PurgeInvoker,
        *,
        log_sink: LogSink | None = None,
        run: Run | None = None,
        client_factory: ClientFactory = create_site_client,
        sleep: Sleep = asyncio.sleep,
    ):
        self.settings = settings
        self.purger = purger
        self.run = run or Run()
        self.log_buffer = RunLogBuffer(self.run, log_sink)
        self.policy = PurgePolicy(settings.purge_trigger)
        self._client_factory = client_factory
        self._sleep = sleep

    async def warm(self, sites: Sequence[SiteConfig]) -> RunReport:
        """Warm every site, then finalize and flush the run log once."""
        report = RunReport(run_id=self.run.run_id)
        logger.info(
            "Cache warm run %s started at %s (%d sites, purge trigger: %s)",
            self.run.run_id,
            self.run.started_at.isoformat(),
            len(sites),
            self.policy.trigger,
        )

        with bind_log_context(run_id=self.run.run_id), create_span("warm.run", attributes={"run.id": self.run.run_id}):
            try:
                for site in sites:
                    with bind_log_context(site=site.label), create_span("warm.site", attributes={"site": site.label}):
                        site_report = await self.warm_site(site)
                    report.sites.append(site_report)
                    logger.info("Site %s done: %s", site.label, site_report.to_dict())
            finally:
                await self.log_buffer.finalize()
                report.flush = await self.log_buffer.flush()
                logger.info(
                    "Cache warm run %s finished: %d succeeded, %d failed, %d purged",
                    self.run.run_id,
                    report.succeeded,
                    report.failed,
                    report.purged,
                )

        return report

    async def warm_site(self, site: SiteConfig) -> BatchRunReport:
        proxy = site.resolve_proxy()

        async with self._client_factory(site, proxy, self.settings.request_timeout) as client:
            sitemap = SitemapFetcher(client, timeout=self.settings.sitemap_timeout)
            urls = await sitemap.discover(site.sitemap_url)
            SITE_URLS.labels(site=site.label).set(len(urls))
            logger.info("Found %d URLs for %s", len(urls), site.label)

            fetcher = RetryingFetcher(
                client,
                site_label=site.label,
                max_attempts=self.settings.max_attempts,
                retry_delay_seconds=self.settings.retry_delay_seconds,
                sleep=self._sleep,
            )
            scheduler = BatchScheduler(
                fetcher,
                self.purger,
                self.policy,
                self.log_buffer,
                site_label=site.label,
                batch_size=self.settings.batch_size,
                batch_delay_seconds=self.settings.batch_delay_seconds,
                origin_miss_cooldown_seconds=self.settings.origin_miss_cooldown_seconds,
                sleep=self._sleep,
            )
            return await scheduler.run(urls)
