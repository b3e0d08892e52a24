"""Run-scoped buffer of log rows, flushed once at the end of the run."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
import logging

from ..adapters.log_sink import LogSink
from ..domain.model import LogRow, Run
from ..observability.metrics import LOG_FLUSHES


logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class FlushResult:
    success: bool
    rows: int
    message: str = ""


class RunLogBuffer:
    """Accumulate one ``LogRow`` per URL outcome for the lifetime of a run.

    ``append`` may be awaited concurrently by every task of a batch.
    ``finalize`` stamps the run's ``finished_at`` into every row, and
    ``flush`` ships the rows to the sink in a single request. Flush errors
    are logged and returned, never raised.
    """

    def __init__(self, run: Run, sink: LogSink | None = None):
        self.run = run
        self._sink = sink
        self._rows: list[LogRow] = []
        self._lock = asyncio.Lock()
        self._flushed = False

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def rows(self) -> list[LogRow]:
        """Snapshot of the buffered rows."""
        return list(self._rows)

    @property
    def flushed(self) -> bool:
        return self._flushed

    async def append(self, row: LogRow) -> None:
        async with self._lock:
            if self.run.finished_at is not None:
                row.finished_at = self.run.finished_at
            self._rows.append(row)

    async def finalize(self, when: datetime | None = None) -> datetime:
        """Set the run's ``finished_at`` once and back-fill every buffered row."""
        async with self._lock:
            finished_at = self.run.finish(when)
            for row in self._rows:
                row.finished_at = finished_at
        return finished_at

    async def flush(self) -> FlushResult:
        async with self._lock:
            if self._flushed:
                logger.warning("Run log already flushed; ignoring repeated flush")
                return FlushResult(success=False, rows=0, message="already flushed")
            self._flushed = True
            rows, self._rows = self._rows, []

        if self._sink is None:
            logger.info("No log sink configured; dropping %d rows", len(rows))
            LOG_FLUSHES.labels(result="skipped").inc()
            return FlushResult(success=False, rows=len(rows), message="log sink disabled")
        if not rows:
            LOG_FLUSHES.labels(result="skipped").inc()
            return FlushResult(success=True, rows=0, message="nothing to flush")

        logger.info("Logging %d rows to the run log sink", len(rows))
        try:
            await self._sink.send(self.run.label, [row.to_values() for row in rows])
        except Exception as exc:
            logger.error("Run log upload failed (%d rows lost): %s", len(rows), exc)
            LOG_FLUSHES.labels(result="error").inc()
            return FlushResult(success=False, rows=len(rows), message=str(exc) or type(exc).__name__)

        logger.info("Run log sent")
        LOG_FLUSHES.labels(result="success").inc()
        return FlushResult(success=True, rows=len(rows))
