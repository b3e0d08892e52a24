"""Decide whether a warmed URL should be purged from the edge cache."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from .model import CacheStatus


PurgeTrigger = Literal["origin", "edge"]


def origin_not_hit(status: CacheStatus) -> bool:
    """Purge whenever the origin cache did not serve the page."""
    return not status.origin_hit


def edge_not_hit(status: CacheStatus) -> bool:
    """Purge whenever the edge cache did not serve the page."""
    return not status.edge_hit


_PREDICATES: dict[str, Callable[[CacheStatus], bool]] = {
    "origin": origin_not_hit,
    "edge": edge_not_hit,
}


@dataclass(slots=True, frozen=True)
class PurgePolicy:
    """A single purge predicate selected by configuration."""

    trigger: PurgeTrigger = "origin"

    def __post_init__(self) -> None:
        if self.trigger not in _PREDICATES:
            raise ValueError(f"Unknown purge trigger: {self.trigger!r}")

    def should_purge(self, status: CacheStatus) -> bool:
        return _PREDICATES[self.trigger](status)
