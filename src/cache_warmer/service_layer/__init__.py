"""Service layer: batch scheduling, run log buffering and the warming orchestrator."""

from .batch_scheduler import BatchRunReport, BatchScheduler, partition_batches
from .run_log_buffer import FlushResult, RunLogBuffer
from .warming_service import CacheWarmer, RunReport


__all__ = [
    "BatchRunReport",
    "BatchScheduler",
    "CacheWarmer",
    "FlushResult",
    "RunLogBuffer",
    "RunReport",
    "partition_batches",
]
