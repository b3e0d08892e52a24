"""HTTP helpers: site clients, sitemap discovery and retrying fetches."""
