"""Command-line entrypoint: one warm run over the configured sites.

Usage:
    # Warm every site in sites.json
    cache-warmer

    # Warm only the French and German segments
    cache-warmer --site fr de

    # Warm without purging anything
    cache-warmer --dry-run --plain-logs

Exit codes: 0 when the run completed, 1 on an unexpected error, 2 on a
configuration error (invalid settings, sites file, site filter or a missing
egress proxy).
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
import logging
from pathlib import Path
import sys

from pydantic import ValidationError

from .adapters.log_sink import AppsScriptLogSink
from .adapters.purge_client import CloudflarePurgeClient, DisabledPurgeClient, PurgeInvoker
from .config import Settings
from .deployment_config import MissingProxyError, ObservabilityCollectorConfig, SiteConfig, SitesConfig
from .observability.logging import configure_logging
from .observability.metrics import configure_metrics_exporter, shutdown_metrics, write_metrics_textfile
from .observability.tracing import configure_trace_exporter, init_tracing, shutdown_tracing
from .service_layer.warming_service import CacheWarmer, RunReport


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cache-warmer",
        description="Warm CDN edge caches from site sitemaps and purge stale origin entries",
    )
    parser.add_argument(
        "--sites-file",
        type=Path,
        help="Path to the sites JSON file (defaults to SITES_CONFIG)",
    )
    parser.add_argument(
        "--site",
        dest="sites",
        nargs="+",
        metavar="LABEL",
        help="Only warm the sites with these segment labels",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Warm and log, but never call the purge API",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        help="URLs fetched concurrently per batch (defaults to BATCH_SIZE)",
    )
    parser.add_argument(
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL)",
    )
    parser.add_argument(
        "--plain-logs",
        action="store_true",
        help="Human-readable log lines instead of JSON",
    )
    return parser


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    update: dict[str, object] = {}
    if args.sites_file is not None:
        update["sites_config"] = str(args.sites_file)
    if args.batch_size is not None:
        if args.batch_size < 1:
            raise ValueError("--batch-size must be >= 1")
        update["batch_size"] = args.batch_size
    if args.log_level:
        update["log_level"] = args.log_level
    if args.plain_logs:
        update["log_json"] = False
    return settings.model_copy(update=update) if update else settings


def _build_purger(settings: Settings, *, dry_run: bool) -> PurgeInvoker:
    if dry_run:
        logger.info("Dry run: purging disabled")
        return DisabledPurgeClient("dry run")
    if not settings.purge_enabled():
        logger.warning("CLOUDFLARE_ZONE_ID/CLOUDFLARE_API_TOKEN not set: purging disabled")
        return DisabledPurgeClient()
    return CloudflarePurgeClient(
        settings.cloudflare_zone_id,
        settings.cloudflare_api_token,
        timeout=settings.purge_timeout,
    )


def _build_log_sink(settings: Settings) -> AppsScriptLogSink | None:
    if not settings.log_sink_enabled():
        logger.warning("APPS_SCRIPT_URL not set: run log will not be uploaded")
        return None
    return AppsScriptLogSink(
        settings.apps_script_url,
        token=settings.log_sink_token,
        timeout=settings.log_sink_timeout,
    )


async def run_warm(settings: Settings, sites: Sequence[SiteConfig], *, dry_run: bool = False) -> RunReport:
    """Build the collaborators from settings and warm ``sites`` once."""
    purger = _build_purger(settings, dry_run=dry_run)
    warmer = CacheWarmer(settings, purger, log_sink=_build_log_sink(settings))
    try:
        return await warmer.warm(sites)
    finally:
        if isinstance(purger, CloudflarePurgeClient):
            await purger.aclose()


def _setup_telemetry(settings: Settings) -> None:
    collector = ObservabilityCollectorConfig.from_settings(settings)
    configure_metrics_exporter(collector)
    provider = init_tracing()
    configure_trace_exporter(collector, provider)


def _shutdown_telemetry(settings: Settings) -> None:
    if settings.metrics_textfile:
        try:
            write_metrics_textfile(settings.metrics_textfile)
        except OSError as exc:
            logger.error("Failed to write metrics to %s: %s", settings.metrics_textfile, exc)
    shutdown_tracing()
    shutdown_metrics()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    try:
        settings = _apply_overrides(Settings(), args)
    except (ValidationError, ValueError) as exc:
        configure_logging(args.log_level or "INFO", json_output=not args.plain_logs)
        logger.error("Invalid settings: %s", exc)
        return EXIT_CONFIG_ERROR

    configure_logging(settings.log_level, json_output=settings.log_json)

    try:
        sites = SitesConfig.from_settings(settings).select(args.sites)
    except FileNotFoundError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG_ERROR
    except (ValidationError, ValueError) as exc:
        logger.error("Invalid sites config: %s", exc)
        return EXIT_CONFIG_ERROR

    _setup_telemetry(settings)
    try:
        report = asyncio.run(run_warm(settings, sites, dry_run=args.dry_run))
    except MissingProxyError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIG_ERROR
    except Exception as exc:
        logger.exception("Cache warm run failed: %s", exc)
        return EXIT_ERROR
    finally:
        _shutdown_telemetry(settings)

    logger.info(
        "Run %s complete: %d succeeded, %d failed, %d purged",
        report.run_id,
        report.succeeded,
        report.failed,
        report.purged,
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
