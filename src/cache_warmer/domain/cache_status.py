"""Classify a response's cache status from its headers.

Pure functions only: missing or malformed headers degrade to ``UNKNOWN``
instead of raising.
"""

from __future__ import annotations

from collections.abc import Mapping

from .model import UNKNOWN, CacheStatus, OriginCacheState


EDGE_CACHE_HEADER = "cf-cache-status"
EDGE_TRACE_HEADER = "cf-ray"
ORIGIN_CACHE_HEADER = "x-litespeed-cache"


def _header(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup that treats blank values as absent."""
    value = headers.get(name)
    if value is None:
        for key, candidate in headers.items():
            if key.lower() == name:
                value = candidate
                break
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def extract_edge_node_id(trace: str | None) -> str:
    """Return the token following the first hyphen of an edge-trace header.

    >>> extract_edge_node_id("abc-edge42")
    'edge42'
    >>> extract_edge_node_id("noHyphenHere")
    'N/A'
    """
    if not trace or "-" not in trace:
        return UNKNOWN
    return trace.split("-", 1)[1] or UNKNOWN


def classify_origin_state(value: str | None) -> OriginCacheState:
    if value is None:
        return OriginCacheState.UNKNOWN
    if value.lower() == "hit":
        return OriginCacheState.HIT
    return OriginCacheState.MISS


def classify_cache_status(headers: Mapping[str, str]) -> CacheStatus:
    """Build a ``CacheStatus`` from a response header set."""
    edge_state = _header(headers, EDGE_CACHE_HEADER)
    origin_raw = _header(headers, ORIGIN_CACHE_HEADER)
    return CacheStatus(
        edge_cache_state=edge_state or UNKNOWN,
        origin_cache_state=classify_origin_state(origin_raw),
        edge_node_id=extract_edge_node_id(_header(headers, EDGE_TRACE_HEADER)),
        origin_cache_header=origin_raw or UNKNOWN,
    )
