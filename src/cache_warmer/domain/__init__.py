"""Domain layer: cache status records, purge policy and run log rows."""

from .cache_status import classify_cache_status, extract_edge_node_id
from .model import UNKNOWN, CacheStatus, FetchOutcome, LogRow, OriginCacheState, Run
from .purge_policy import PurgePolicy


__all__ = [
    "UNKNOWN",
    "CacheStatus",
    "FetchOutcome",
    "LogRow",
    "OriginCacheState",
    "PurgePolicy",
    "Run",
    "classify_cache_status",
    "extract_edge_node_id",
]
