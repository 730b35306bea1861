"""Manual import of single articles by URL."""

import asyncio
from dataclasses import dataclass
from datetime import UTC, datetime

import aiohttp
from selectolax.parser import HTMLParser

from ..config import Settings, get_settings
from ..logging import get_logger
from ..processing.normalize import normalize_item
from ..utils import extract_domain, is_valid_url, retry_async
from .articles import CUSTOM_SOURCE_NAME, Article

logger = get_logger(__name__)

CUSTOM_CATEGORY = "Manuell hinzugefügt"
MAX_PAGE_TEXT = 1000


@dataclass
class PageMetadata:
    """Metadata scraped from an article page."""
    title: str = ""
    description: str = ""
    image_url: str | None = None
    content: str = ""


def parse_page_metadata(html: str) -> PageMetadata:
    """Extract Open Graph / HTML metadata and leading paragraph text."""
    parser = HTMLParser(html)

    def meta(*selectors: str) -> str:
        for selector in selectors:
            node = parser.css_first(selector)
            if node is not None:
                value = (node.attributes.get("content") or "").strip()
                if value:
                    return value
        return ""

    title = meta('meta[property="og:title"]', 'meta[name="twitter:title"]')
    if not title:
        title_node = parser.css_first("title")
        title = title_node.text(strip=True) if title_node else ""

    description = meta(
        'meta[property="og:description"]',
        'meta[name="description"]',
        'meta[name="twitter:description"]',
    )
    image_url = meta('meta[property="og:image"]', 'meta[name="twitter:image"]') or None

    paragraphs = []
    length = 0
    for node in parser.css("article p, main p, p"):
        text = node.text(strip=True)
        if len(text) < 40 or text in paragraphs:
            continue
        paragraphs.append(text)
        length += len(text)
        if length >= MAX_PAGE_TEXT:
            break
    content = "\n\n".join(paragraphs)[:MAX_PAGE_TEXT]

    return PageMetadata(title=title, description=description, image_url=image_url, content=content)


def format_custom_content(title: str, description: str, page_text: str, url: str) -> str:
    """Build the Markdown body stored for a manually imported article."""
    parts = [f"# {title}\n\n"]
    if description:
        parts.append(f"{description}\n\n")
    if page_text and page_text != description:
        parts.append(f"{page_text}\n\n")
    parts.append(f"**Quelle:** [{extract_domain(url)}]({url})")
    return "".join(parts)


class CustomArticleImporter:
    """Turns a URL submitted by the curator into a normalized article."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    async def fetch_metadata(self, url: str) -> PageMetadata:
        """Download a page and parse its metadata."""
        timeout = aiohttp.ClientTimeout(total=self.settings.feed_timeout_seconds)
        headers = {'User-Agent': self.settings.user_agent}

        async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
            async def fetch_page():
                async with session.get(url) as response:
                    response.raise_for_status()
                    return await response.text()

            html = await retry_async(
                fetch_page,
                max_retries=1,
                exceptions=(aiohttp.ClientError, asyncio.TimeoutError),
            )

        return parse_page_metadata(html)

    async def import_article(
        self,
        url: str,
        title: str | None = None,
        description: str | None = None,
        now: datetime | None = None,
    ) -> Article:
        """Import an article, preferring curator-provided title and description.

        Raises:
            ValueError: If the URL is invalid or no usable article results
        """
        url = (url or "").strip()
        if not is_valid_url(url):
            raise ValueError(f"Invalid URL: {url}")

        try:
            metadata = await self.fetch_metadata(url)
        except (aiohttp.ClientError, asyncio.TimeoutError, UnicodeDecodeError) as e:
            logger.warning("Metadata fetch failed, using provided values", url=url, error=str(e))
            metadata = PageMetadata()

        final_title = title or metadata.title or "Custom Article"
        final_description = description or metadata.description or f"Manually imported article from {url}"

        record = {
            "title": final_title,
            "description": final_description,
            "link": url,
            "guid": url,
            "isoDate": (now or datetime.now(UTC)).isoformat(),
            "categories": [CUSTOM_CATEGORY],
            "image_url": metadata.image_url,
        }

        article = normalize_item(record, CUSTOM_SOURCE_NAME, now)
        if article is None:
            raise ValueError(f"Could not build an article from {url}")

        # Set after normalization, which would flatten the Markdown line breaks
        article.content = format_custom_content(article.title, article.description, metadata.content, url)

        logger.info("Custom article imported", url=url, title=article.title)
        return article
