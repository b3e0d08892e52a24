"""Per-site deployment configuration using Pydantic.

This module defines the schema of ``sites.json``, the file listing every
site a run warms. Each site is an immutable value handed to the warming
service; nothing here is looked up from module-level tables.

Example:
    {
        "sites": [
            {
                "label": "fr",
                "base_url": "https://divinglembongan.fr",
                "user_agent": "DivingLembongan-FR-CacheWarmer/1.0",
                "accept_language": "fr-FR,fr;q=0.9,en;q=0.8",
                "proxy_env": "BRD_PROXY_FR"
            }
        ]
    }

The proxy URL carries credentials, so the file only names the environment
variable holding it.
"""

import json
import os
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Literal

from pydantic import BaseModel, Field, field_validator, model_validator


if TYPE_CHECKING:
    from cache_warmer.config import Settings


class MissingProxyError(ValueError):
    """Raised when a site requires an egress proxy and none is configured."""


class SiteConfig(BaseModel):
    """Configuration for a single target site."""

    model_config = {"extra": "forbid", "frozen": True}

    label: Annotated[
        str,
        Field(
            min_length=1,
            pattern=r"^[a-z0-9][a-z0-9_-]*$",
            description="Segment label written to every log row (usually a country code)",
            examples=["fr"],
        ),
    ]

    base_url: Annotated[
        str,
        Field(
            pattern=r"^https?://",
            description="Scheme and host of the site; the sitemap is read from <base_url>/sitemap.xml",
            examples=["https://divinglembongan.fr"],
        ),
    ]

    user_agent: Annotated[
        str,
        Field(
            min_length=1,
            description="Fixed User-Agent identifying the warmer to the origin",
        ),
    ] = "CacheWarmer/1.0"

    accept_language: Annotated[
        str,
        Field(
            description="Accept-Language sent with every request (empty to omit)",
            examples=["fr-FR,fr;q=0.9,en;q=0.8"],
        ),
    ] = ""

    proxy_env: Annotated[
        str | None,
        Field(
            description="Environment variable that stores the egress proxy URL for this site",
            pattern=r"^[A-Z_][A-Z0-9_]*$",
        ),
    ] = None

    require_proxy: Annotated[
        bool,
        Field(
            description="Refuse to warm the site without an egress proxy",
        ),
    ] = True

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def sitemap_url(self) -> str:
        return f"{self.base_url}/sitemap.xml"

    def resolve_proxy(self) -> str | None:
        """Return the egress proxy URL for this site.

        Raises:
            MissingProxyError: If the site requires a proxy and the
                environment variable is unset or empty.
        """
        proxy = os.environ.get(self.proxy_env, "").strip() if self.proxy_env else ""
        if proxy:
            return proxy
        if self.require_proxy:
            source = self.proxy_env or "proxy_env"
            raise MissingProxyError(f"Missing proxy for {self.label} (set {source})")
        return None

    def request_headers(self) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        if self.accept_language:
            headers["Accept-Language"] = self.accept_language
        return headers


class SitesConfig(BaseModel):
    """Every site warmed by one run, in run order."""

    model_config = {"extra": "forbid"}

    sites: Annotated[
        list[SiteConfig],
        Field(
            min_length=1,
            description="Sites to warm, processed sequentially",
        ),
    ]

    @model_validator(mode="after")
    def validate_unique_labels(self) -> "SitesConfig":
        labels = [site.label for site in self.sites]
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise ValueError(f"Duplicate site labels found: {duplicates}")
        return self

    @classmethod
    def from_json_file(cls, path: Path) -> "SitesConfig":
        """Load configuration from JSON file.

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config is invalid
        """
        if not path.exists():
            raise FileNotFoundError(f"Sites config not found: {path}")

        with path.open(encoding="utf-8") as f:
            data = json.load(f)

        return cls.model_validate(data)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "SitesConfig":
        """Load the sites file, or fall back to the single SITE_* site."""
        path = Path(settings.sites_config)
        if path.exists():
            return cls.from_json_file(path)
        if not settings.site_base_url:
            raise FileNotFoundError(f"Sites config not found: {path} (and SITE_BASE_URL is not set)")

        site = SiteConfig(
            label=settings.site_label,
            base_url=settings.site_base_url,
            user_agent=settings.site_user_agent,
            accept_language=settings.site_accept_language,
            proxy_env=settings.site_proxy_env or None,
        )
        return cls(sites=[site])

    def get_site(self, label: str) -> SiteConfig | None:
        for site in self.sites:
            if site.label == label:
                return site
        return None

    def select(self, labels: list[str] | None) -> list[SiteConfig]:
        """Return the sites named in ``labels`` (all sites when empty).

        Raises:
            ValueError: If a label does not match any configured site.
        """
        if not labels:
            return list(self.sites)
        unknown = [label for label in labels if self.get_site(label) is None]
        if unknown:
            available = ", ".join(self.list_labels())
            raise ValueError(f"Unknown site label(s) {unknown}. Available: {available}")
        return [site for site in self.sites if site.label in labels]

    def list_labels(self) -> list[str]:
        return [site.label for site in self.sites]


class ObservabilityCollectorConfig(BaseModel):
    """Configuration for OTLP trace and metric export."""

    model_config = {"extra": "forbid"}

    enabled: Annotated[
        bool,
        Field(
            description="Enable OTLP export to an external collector",
        ),
    ] = False

    otlp_protocol: Annotated[
        Literal["http", "grpc"],
        Field(
            description="OTLP transport protocol",
        ),
    ] = "http"

    collector_endpoint: Annotated[
        str,
        Field(
            description="OTLP collector endpoint (HTTP uses /v1/traces)",
            examples=["http://localhost:4317", "http://localhost:4318/v1/traces"],
        ),
    ] = "http://localhost:4318/v1/traces"

    headers: Annotated[
        dict[str, str],
        Field(
            description="Optional headers to include with OTLP requests",
        ),
    ] = Field(default_factory=dict)

    timeout_seconds: Annotated[
        int,
        Field(
            ge=1,
            le=60,
            description="OTLP exporter timeout in seconds",
        ),
    ] = 10

    grpc_insecure: Annotated[
        bool,
        Field(
            description="Allow insecure gRPC (plaintext) connections",
        ),
    ] = True

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ObservabilityCollectorConfig":
        return cls(
            enabled=settings.otlp_enabled,
            otlp_protocol=settings.otlp_protocol,
            collector_endpoint=settings.otlp_endpoint,
        )
