"""Upload a run's log rows to the spreadsheet web app in one request."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx


logger = logging.getLogger(__name__)


class LogSink(Protocol):
    async def send(self, label: str, rows: list[list[Any]]) -> None:
        """Deliver every row at once. Raises on failure."""
        ...


class AppsScriptLogSink:
    """POST ``{"label": ..., "rows": [...]}`` to an Apps Script endpoint."""

    def __init__(
        self,
        url: str,
        *,
        token: str = "",
        timeout: float = 20.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self._token = token
        self.timeout = timeout
        self._client = client

    async def send(self, label: str, rows: list[list[Any]]) -> None:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        payload = {"label": label, "rows": rows}

        if self._client is not None:
            response = await self._client.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        else:
            # Apps Script answers with a redirect to the script's output
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                response = await client.post(self.url, json=payload, headers=headers)
        response.raise_for_status()
        logger.debug("Log sink accepted %d rows for %s", len(rows), label)
