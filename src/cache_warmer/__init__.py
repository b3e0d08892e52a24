"""Edge cache warmer: sitemap-driven warm requests with origin-miss purging."""

__version__ = "0.1.0"
