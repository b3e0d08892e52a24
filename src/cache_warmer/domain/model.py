"""Domain model - runs, cache status records, fetch outcomes and log rows.

Value objects (``CacheStatus``, ``FetchOutcome``) are frozen. ``Run`` and
``LogRow`` are entities whose only mutable field is ``finished_at``, which
moves from unset to set exactly once when the run ends.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import secrets
from typing import Any


# Sentinel written wherever a header is missing or unparseable. Log sheets
# filter on this exact string.
UNKNOWN = "N/A"


class OriginCacheState(str, Enum):
    """Normalized state of the origin (application-layer) cache."""

    HIT = "HIT"
    MISS = "MISS"
    UNKNOWN = "N/A"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_run_id() -> str:
    return secrets.token_hex(8)


def _isoformat(value: datetime | None) -> str:
    if value is None:
        return ""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(slots=True, frozen=True)
class CacheStatus:
    """Cache state of one response, as reported by its headers."""

    edge_cache_state: str = UNKNOWN
    origin_cache_state: OriginCacheState = OriginCacheState.UNKNOWN
    edge_node_id: str = UNKNOWN
    origin_cache_header: str = UNKNOWN

    @property
    def origin_hit(self) -> bool:
        return self.origin_cache_state is OriginCacheState.HIT

    @property
    def edge_hit(self) -> bool:
        return self.edge_cache_state.upper() == "HIT"


@dataclass(slots=True, frozen=True)
class FetchOutcome:
    """Result of fetching one URL, retries included."""

    url: str
    succeeded: bool
    latency_ms: int
    attempts: int = 1
    http_status: int | None = None
    cache_status: CacheStatus | None = None
    error_message: str | None = None

    @classmethod
    def success(
        cls,
        url: str,
        http_status: int,
        cache_status: CacheStatus,
        latency_ms: int,
        attempts: int = 1,
    ) -> FetchOutcome:
        return cls(
            url=url,
            succeeded=True,
            latency_ms=latency_ms,
            attempts=attempts,
            http_status=http_status,
            cache_status=cache_status,
        )

    @classmethod
    def failure(cls, url: str, error_message: str, latency_ms: int, attempts: int = 1) -> FetchOutcome:
        return cls(
            url=url,
            succeeded=False,
            latency_ms=latency_ms,
            attempts=attempts,
            error_message=error_message or "request failed",
        )


@dataclass(slots=True)
class Run:
    """One execution of the warming pipeline across all configured sites."""

    run_id: str = field(default_factory=_new_run_id)
    started_at: datetime = field(default_factory=_utcnow)
    finished_at: datetime | None = None

    @property
    def label(self) -> str:
        """Partition key of the log destination (one sheet per UTC day)."""
        return self.started_at.astimezone(timezone.utc).strftime("%Y-%m-%d")

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None

    def finish(self, when: datetime | None = None) -> datetime:
        """Stamp ``finished_at``; later calls keep the first value."""
        if self.finished_at is None:
            self.finished_at = when or _utcnow()
        return self.finished_at


@dataclass(slots=True)
class LogRow:
    """Flattened, write-once record of one URL outcome."""

    run_id: str
    started_at: datetime
    segment: str
    url: str
    latency_ms: int
    error: bool
    finished_at: datetime | None = None
    http_status: int | None = None
    edge_cache_state: str = ""
    origin_cache_state: str = ""
    edge_node_id: str = ""
    message: str = ""

    @classmethod
    def from_outcome(cls, run: Run, segment: str, outcome: FetchOutcome) -> LogRow:
        status = outcome.cache_status
        return cls(
            run_id=run.run_id,
            started_at=run.started_at,
            finished_at=run.finished_at,
            segment=segment,
            url=outcome.url,
            http_status=outcome.http_status,
            edge_cache_state=status.edge_cache_state if status else "",
            origin_cache_state=status.origin_cache_header if status else "",
            edge_node_id=status.edge_node_id if status else "",
            latency_ms=outcome.latency_ms,
            error=not outcome.succeeded,
            message=outcome.error_message or "",
        )

    def to_values(self) -> list[Any]:
        """Render the fixed 12-column tuple expected by the log sheet."""
        return [
            self.run_id,
            _isoformat(self.started_at),
            _isoformat(self.finished_at),
            self.segment,
            self.url,
            self.http_status if self.http_status is not None else "",
            self.edge_cache_state,
            self.origin_cache_state,
            self.edge_node_id,
            self.latency_ms,
            1 if self.error else 0,
            self.message,
        ]
