"""
Normalization of raw feed entries into articles.

Raw entries arrive as one of the feed entry variants (or a plain mapping)
and leave as ``Article`` objects with cleaned text, a parsed publication
date and a resolved guid. Entries that cannot yield a usable article are
dropped; one bad entry never aborts a batch.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from ..ingest.articles import Article
from ..ingest.entries import RawFeedEntry, UnknownEntry
from ..utils import parse_date_string
from .text_utils import clean_rss_text

logger = logging.getLogger(__name__)

DATE_FIELDS = ("pubDate", "isoDate", "date")


def _as_record(raw: RawFeedEntry | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(raw, Mapping):
        raw = UnknownEntry(raw)
    return raw.extract()


def _text(value: Any) -> str:
    """Coerce an optional field value to a string."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def resolve_pub_date(record: Mapping[str, Any], now: datetime | None = None) -> datetime:
    """Return the first parseable date field, falling back to now."""
    for field_name in DATE_FIELDS:
        value = record.get(field_name)
        if isinstance(value, datetime):
            return value if value.tzinfo else value.replace(tzinfo=UTC)
        parsed = parse_date_string(_text(value))
        if parsed is not None:
            return parsed
    return now or datetime.now(UTC)


def normalize_item(
    raw: RawFeedEntry | Mapping[str, Any],
    source_name: str,
    now: datetime | None = None,
) -> Article | None:
    """Turn one raw feed entry into an article.

    Returns None when the entry has neither title nor description, or when
    the cleaned title or the link ends up empty.
    """
    try:
        record = _as_record(raw)

        raw_title = _text(record.get("title"))
        raw_description = _text(record.get("description"))
        raw_content = _text(record.get("content"))

        if not raw_title and not raw_description:
            return None

        title = clean_rss_text(raw_title or "Untitled")
        link = (_text(record.get("link")) or _text(record.get("url"))).strip()

        if not title or not link:
            logger.debug(f"Skipping entry with missing title or link from {source_name}")
            return None

        categories = record.get("categories") or []
        if isinstance(categories, str):
            categories = [categories]

        return Article(
            title=title,
            link=link,
            description=clean_rss_text(raw_description or raw_content),
            content=clean_rss_text(raw_content) if raw_content else None,
            guid=_text(record.get("guid")) or _text(record.get("id")) or link,
            pub_date=resolve_pub_date(record, now),
            source_name=source_name,
            categories=[_text(category) for category in categories if category],
            creator=clean_rss_text(_text(record.get("creator")) or _text(record.get("author"))),
            image_url=_text(record.get("image_url")) or None,
        )

    except Exception as e:
        logger.warning(f"Dropping unprocessable entry from {source_name}: {e}")
        return None


def normalize_items(
    raws: Iterable[RawFeedEntry | Mapping[str, Any]],
    source_name: str,
    now: datetime | None = None,
) -> list[Article]:
    """Normalize a batch of entries, keeping input order and dropping rejects."""
    articles = []
    total = 0
    for raw in raws:
        total += 1
        article = normalize_item(raw, source_name, now)
        if article is not None:
            articles.append(article)

    logger.info(f"Normalized {len(articles)}/{total} entries from {source_name}")
    return articles
