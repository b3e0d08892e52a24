"""HTTP client construction for a single target site."""

from __future__ import annotations

from collections.abc import Callable
import logging

import httpx

from ..deployment_config import SiteConfig


logger = logging.getLogger(__name__)

ClientFactory = Callable[[SiteConfig, str | None, float], httpx.AsyncClient]


def create_site_client(site: SiteConfig, proxy: str | None, timeout: float) -> httpx.AsyncClient:
    """Create an async client bound to the site's egress proxy.

    Every request carries the site's fixed User-Agent (and Accept-Language
    when configured). No cache-bypass headers are sent: warm requests must
    look like ordinary visitor traffic.
    """
    if proxy:
        logger.debug("Routing %s through its egress proxy", site.label)
    else:
        logger.debug("No proxy configured for %s", site.label)

    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=10.0),
        headers=site.request_headers(),
        follow_redirects=True,
        verify=True,
        proxy=proxy,
    )
