"""Shared test fixtures and configuration."""

from collections.abc import Callable
import os
from typing import Any

import httpx
import pytest


# Complete test environment that overrides ALL settings read from the environment
TEST_ENV = {
    # Run log sink and purge API disabled unless a test opts in
    "APPS_SCRIPT_URL": "",
    "LOG_SINK_TOKEN": "",
    "CLOUDFLARE_ZONE_ID": "",
    "CLOUDFLARE_API_TOKEN": "",
    "PURGE_TRIGGER": "origin",
    # Scheduling and retries
    "BATCH_SIZE": "3",
    "BATCH_DELAY_SECONDS": "7",
    "ORIGIN_MISS_COOLDOWN_SECONDS": "3",
    "MAX_ATTEMPTS": "3",
    "RETRY_DELAY_SECONDS": "3",
    "REQUEST_TIMEOUT": "30",
    "SITEMAP_TIMEOUT": "15",
    # Sites
    "SITES_CONFIG": "tests-missing-sites.json",
    "SITE_LABEL": "",
    "SITE_BASE_URL": "",
    "SITE_PROXY_ENV": "",
    # Observability
    "LOG_LEVEL": "info",
    "LOG_JSON": "true",
    "METRICS_TEXTFILE": "",
    "OTLP_ENABLED": "false",
    # Proxy settings - ensure they're cleared for tests
    "http_proxy": "",
    "https_proxy": "",
    "all_proxy": "",
    "no_proxy": "",
}


# Set environment variables immediately when conftest.py is loaded
for key, value in TEST_ENV.items():
    os.environ[key] = value

from cache_warmer.adapters.purge_client import PurgeResult
from cache_warmer.deployment_config import SiteConfig


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Clean environment variables before each test and set test defaults."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)


class RecordingSleep:
    """Async sleep stand-in that records requested delays without waiting."""

    def __init__(self, on_sleep: Callable[[float], None] | None = None):
        self.calls: list[float] = []
        self._on_sleep = on_sleep

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        if self._on_sleep is not None:
            self._on_sleep(seconds)


class RecordingSink:
    """Log sink that keeps every upload in memory."""

    def __init__(self, error: Exception | None = None):
        self.calls: list[tuple[str, list[list[Any]]]] = []
        self._error = error

    async def send(self, label: str, rows: list[list[Any]]) -> None:
        self.calls.append((label, rows))
        if self._error is not None:
            raise self._error


class RecordingPurger:
    """Purge invoker that records URLs and reports a fixed result."""

    def __init__(self, success: bool = True, message: str = ""):
        self.urls: list[str] = []
        self._success = success
        self._message = message

    async def purge(self, url: str) -> PurgeResult:
        self.urls.append(url)
        return PurgeResult(url=url, success=self._success, message=self._message)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def recording_purger():
    return RecordingPurger()


@pytest.fixture
def site():
    """Site without an egress proxy requirement."""
    return SiteConfig(
        label="fr",
        base_url="https://example.test",
        user_agent="Warmer-FR/1.0",
        accept_language="fr-FR,fr;q=0.9",
        require_proxy=False,
    )


@pytest.fixture
def mock_client_factory():
    """Build a ``ClientFactory`` whose clients route every request to ``handler``."""

    def _build(handler: Callable[[httpx.Request], httpx.Response], calls: list | None = None):
        def factory(site_config: SiteConfig, proxy: str | None, timeout: float) -> httpx.AsyncClient:
            if calls is not None:
                calls.append((site_config.label, proxy, timeout))
            return httpx.AsyncClient(
                transport=httpx.MockTransport(handler),
                headers=site_config.request_headers(),
                timeout=timeout,
            )

        return factory

    return _build


@pytest.fixture
def make_sleep():
    return RecordingSleep


@pytest.fixture
def make_sink():
    return RecordingSink


@pytest.fixture
def make_purger():
    return RecordingPurger
