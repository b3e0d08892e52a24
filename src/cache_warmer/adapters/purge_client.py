"""Edge cache purge invokers.

A purge is a single side-effecting call per URL. It is never retried and
its failure never stops the run: callers receive a ``PurgeResult`` and log
it. Purging the same URL repeatedly is harmless.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Protocol

import httpx


logger = logging.getLogger(__name__)

CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"


@dataclass(slots=True, frozen=True)
class PurgeResult:
    url: str
    success: bool
    message: str = ""


class PurgeInvoker(Protocol):
    """Anything able to invalidate one URL in the edge cache."""

    async def purge(self, url: str) -> PurgeResult: ...


class DisabledPurgeClient:
    """Invoker used when purging is not configured or in dry-run mode."""

    def __init__(self, reason: str = "purge disabled"):
        self.reason = reason

    async def purge(self, url: str) -> PurgeResult:
        logger.debug("Skipping purge of %s: %s", url, self.reason)
        return PurgeResult(url=url, success=False, message=self.reason)


class CloudflarePurgeClient:
    """Purge single files through the Cloudflare zone API."""

    def __init__(
        self,
        zone_id: str,
        api_token: str,
        *,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
        api_base: str = CLOUDFLARE_API_BASE,
    ):
        if not zone_id or not api_token:
            raise ValueError("zone_id and api_token are required")
        self.endpoint = f"{api_base}/zones/{zone_id}/purge_cache"
        self._api_token = api_token
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def purge(self, url: str) -> PurgeResult:
        try:
            response = await self.client.post(
                self.endpoint,
                json={"files": [url]},
                headers={"Authorization": f"Bearer {self._api_token}"},
            )
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Purge request failed for %s: %s", url, exc)
            return PurgeResult(url=url, success=False, message=str(exc) or type(exc).__name__)

        if isinstance(payload, dict) and payload.get("success") is True:
            logger.info("Purge triggered: %s", url)
            return PurgeResult(url=url, success=True)

        message = self._error_message(payload, response.status_code)
        logger.warning("Purge rejected for %s: %s", url, message)
        return PurgeResult(url=url, success=False, message=message)

    @staticmethod
    def _error_message(payload: object, status_code: int) -> str:
        if isinstance(payload, dict):
            errors = payload.get("errors") or []
            messages = [str(error.get("message", error)) for error in errors if isinstance(error, dict)]
            if messages:
                return "; ".join(messages)
        return f"HTTP {status_code}"
