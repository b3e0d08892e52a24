"""Centralized configuration for cache-warmer using Pydantic Settings."""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Credentials for the purge API and the log sink live here, together with
    the knobs that shape a run (batching, retries, timeouts). Per-site
    values (domain, proxy, user agent) are kept in ``SiteConfig`` instead.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",  # Ignore extra env vars not defined in model
    )

    # Run log sink (spreadsheet web app)
    apps_script_url: str = Field(default="", description="Endpoint receiving the batched run log rows")
    log_sink_token: str = Field(default="", description="Optional bearer token sent to the log sink")
    log_sink_timeout: float = Field(default=20.0, gt=0, description="Log sink request timeout in seconds")

    # Cloudflare purge API
    cloudflare_zone_id: str = Field(default="", description="Zone holding the warmed hostnames")
    cloudflare_api_token: str = Field(default="", description="API token with Cache Purge permission")
    purge_timeout: float = Field(default=15.0, gt=0, description="Purge request timeout in seconds")
    purge_trigger: Literal["origin", "edge"] = Field(
        default="origin",
        description="Cache layer whose non-HIT state triggers a purge",
    )

    # Scheduling
    batch_size: int = Field(default=3, ge=1, description="URLs fetched concurrently per batch")
    batch_delay_seconds: float = Field(default=7.0, ge=0, description="Pause between consecutive batches")
    origin_miss_cooldown_seconds: float = Field(
        default=3.0,
        ge=0,
        description="Pause after a warm request whose origin cache was not a HIT (0 disables)",
    )

    # HTTP/Request settings
    max_attempts: int = Field(default=3, ge=1, description="Attempts per URL, first attempt included")
    retry_delay_seconds: float = Field(default=3.0, ge=0, description="Fixed delay between attempts")
    request_timeout: float = Field(default=30.0, gt=0, description="Warm request timeout in seconds")
    sitemap_timeout: float = Field(default=15.0, gt=0, description="Sitemap request timeout in seconds")

    # Sites
    sites_config: str = Field(default="sites.json", description="Path to the JSON file listing target sites")
    site_label: str = Field(default="", description="Segment label of the single env-configured site")
    site_base_url: str = Field(default="", description="Base URL of the single env-configured site")
    site_user_agent: str = Field(default="CacheWarmer/1.0", description="User-Agent of the env-configured site")
    site_accept_language: str = Field(default="", description="Accept-Language of the env-configured site")
    site_proxy_env: str = Field(default="", description="Env var holding the env-configured site's proxy URL")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    # Metrics and tracing
    metrics_textfile: str = Field(default="", description="Write Prometheus metrics to this file at exit")
    otlp_enabled: bool = Field(default=False, description="Export traces and metrics over OTLP")
    otlp_protocol: Literal["http", "grpc"] = Field(default="http", description="OTLP transport protocol")
    otlp_endpoint: str = Field(default="http://localhost:4318/v1/traces", description="OTLP collector endpoint")

    @model_validator(mode="after")
    def _check_env_site(self) -> "Settings":
        if self.site_base_url and not self.site_label:
            raise ValueError("SITE_LABEL must be set when SITE_BASE_URL is configured")
        return self

    def purge_enabled(self) -> bool:
        """Check whether both Cloudflare credentials are present."""
        return bool(self.cloudflare_zone_id and self.cloudflare_api_token)

    def log_sink_enabled(self) -> bool:
        return bool(self.apps_script_url)
