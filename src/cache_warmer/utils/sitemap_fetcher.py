"""Deep helper for sitemap fetching and parsing.

Encapsulates sitemap discovery behind a single call:
- Sitemap index -> child sitemaps fetched concurrently
- XML parsing with lxml (namespaces ignored)
- Flattening and de-duplication of page URLs

Simple interface: discover(sitemap_url) -> list[str]
Any unreachable or malformed document contributes no URLs instead of
failing the run.
"""

import asyncio
import logging

import httpx
from lxml import etree  # type: ignore[import-untyped]


logger = logging.getLogger(__name__)

SITEMAP_ACCEPT = "application/xml,text/xml;q=0.9,*/*;q=0.8"


class SitemapFetcher:
    """Discover page URLs from a two-level sitemap structure."""

    def __init__(self, client: httpx.AsyncClient, *, timeout: float = 15.0, max_depth: int = 2):
        self.client = client
        self.timeout = timeout
        self.max_depth = max_depth

    async def discover(self, sitemap_url: str) -> list[str]:
        """Return every page URL reachable from ``sitemap_url``, in document order."""
        urls = await self._collect(sitemap_url, depth=1)

        unique: list[str] = []
        seen: set[str] = set()
        for url in urls:
            if url not in seen:
                seen.add(url)
                unique.append(url)

        logger.info(f"Sitemap {sitemap_url}: {len(unique)} URLs")
        return unique

    async def _collect(self, sitemap_url: str, depth: int) -> list[str]:
        root = await self._fetch_document(sitemap_url)
        if root is None:
            return []

        tag = etree.QName(root).localname
        if tag == "urlset":
            return self._locs(root, "url")

        if tag == "sitemapindex":
            children = self._locs(root, "sitemap")
            if depth >= self.max_depth:
                logger.warning(f"Ignoring {len(children)} nested sitemaps below {sitemap_url} (max depth reached)")
                return []
            logger.info(f"Sitemap index {sitemap_url} lists {len(children)} sitemaps")
            results = await asyncio.gather(*(self._collect(child, depth + 1) for child in children))
            return [url for urls in results for url in urls]

        logger.warning(f"Unexpected sitemap root <{tag}> in {sitemap_url}")
        return []

    async def _fetch_document(self, sitemap_url: str):
        try:
            resp = await self.client.get(
                sitemap_url,
                headers={"Accept": SITEMAP_ACCEPT},
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            # ValueError covers IDNA failures on malformed hostnames
            logger.warning(f"Error fetching sitemap {sitemap_url}: {e}")
            return None

        if not resp.content:
            logger.warning(f"Empty response for sitemap {sitemap_url}")
            return None

        try:
            parser = etree.XMLParser(resolve_entities=False, no_network=True)
            return etree.fromstring(resp.content, parser=parser)
        except etree.XMLSyntaxError as xml_err:
            content_preview = resp.content[:100].decode("utf-8", errors="ignore")
            logger.warning(f"XML syntax error parsing sitemap {sitemap_url}: {xml_err} (starts with {content_preview!r})")
            return None

    @staticmethod
    def _locs(root, element: str) -> list[str]:
        locs = []
        for elem in root.findall(f"{{*}}{element}"):
            loc = elem.find("{*}loc")
            if loc is not None and loc.text and loc.text.strip():
                locs.append(loc.text.strip())
        return locs
