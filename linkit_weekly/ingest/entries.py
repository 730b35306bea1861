"""Raw feed entry variants produced by the feed parser.

Every variant exposes ``extract()``, which maps its fields onto the common
record keys read by the normalizer (``title``, ``description``, ``content``,
``link``, ``url``, ``pubDate``, ``isoDate``, ``date``, ``creator``,
``author``, ``categories``, ``guid``, ``id``).
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


def _first_content(entry: Mapping[str, Any]) -> str | None:
    """Return the first full-content block of a feedparser entry."""
    blocks = entry.get("content") or []
    for block in blocks:
        value = block.get("value") if isinstance(block, Mapping) else None
        if value:
            return value
    return None


def _tag_terms(entry: Mapping[str, Any]) -> list[str]:
    terms = []
    for tag in entry.get("tags") or []:
        term = tag.get("term") if isinstance(tag, Mapping) else None
        if term:
            terms.append(term)
    return terms


@dataclass
class RssItem:
    """An RSS 0.9x/1.0/2.0 <item>."""
    title: str | None = None
    link: str | None = None
    description: str | None = None
    content: str | None = None
    pub_date: str | None = None
    creator: str | None = None
    categories: list[str] = field(default_factory=list)
    guid: str | None = None

    @classmethod
    def from_feedparser(cls, entry: Mapping[str, Any]) -> "RssItem":
        return cls(
            title=entry.get("title"),
            link=entry.get("link"),
            description=entry.get("summary") or entry.get("description"),
            content=_first_content(entry),
            pub_date=entry.get("published"),
            creator=entry.get("author"),
            categories=_tag_terms(entry),
            guid=entry.get("id"),
        )

    def extract(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "link": self.link,
            "description": self.description,
            "content": self.content,
            "pubDate": self.pub_date,
            "creator": self.creator,
            "categories": self.categories,
            "guid": self.guid,
        }


@dataclass
class AtomEntry:
    """An Atom <entry>."""
    title: str | None = None
    link: str | None = None
    summary: str | None = None
    content: str | None = None
    published: str | None = None
    updated: str | None = None
    author: str | None = None
    categories: list[str] = field(default_factory=list)
    entry_id: str | None = None

    @classmethod
    def from_feedparser(cls, entry: Mapping[str, Any]) -> "AtomEntry":
        return cls(
            title=entry.get("title"),
            link=entry.get("link"),
            summary=entry.get("summary"),
            content=_first_content(entry),
            published=entry.get("published"),
            updated=entry.get("updated"),
            author=entry.get("author"),
            categories=_tag_terms(entry),
            entry_id=entry.get("id"),
        )

    def extract(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "link": self.link,
            "description": self.summary,
            "content": self.content,
            "isoDate": self.published,
            "date": self.updated,
            "author": self.author,
            "categories": self.categories,
            "id": self.entry_id,
        }


@dataclass
class UnknownEntry:
    """A record of unknown shape, read through the common keys only."""
    data: Mapping[str, Any] = field(default_factory=dict)

    def extract(self) -> dict[str, Any]:
        return dict(self.data)


RawFeedEntry = RssItem | AtomEntry | UnknownEntry


def entry_from_feedparser(entry: Mapping[str, Any], feed_version: str | None) -> RawFeedEntry:
    """Wrap a feedparser entry in the variant matching the feed format."""
    version = (feed_version or "").lower()
    if version.startswith("rss"):
        return RssItem.from_feedparser(entry)
    if version.startswith("atom"):
        return AtomEntry.from_feedparser(entry)
    return UnknownEntry(dict(entry))
