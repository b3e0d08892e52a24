"""Adapters for the external purge API and run log sink."""

from .log_sink import AppsScriptLogSink, LogSink
from .purge_client import CloudflarePurgeClient, DisabledPurgeClient, PurgeInvoker, PurgeResult


__all__ = [
    "AppsScriptLogSink",
    "CloudflarePurgeClient",
    "DisabledPurgeClient",
    "LogSink",
    "PurgeInvoker",
    "PurgeResult",
]
