"""Article data structure shared by ingestion, curation and rendering."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

CUSTOM_SOURCE_NAME = "Eigener"


@dataclass
class Article:
    """Normalized news article."""
    title: str
    link: str
    description: str = ""
    content: str | None = None
    guid: str = ""
    pub_date: datetime = field(default_factory=lambda: datetime.now(UTC))
    source_name: str = ""
    categories: list[str] = field(default_factory=list)
    creator: str = ""
    image_url: str | None = None

    @property
    def article_id(self) -> str:
        """Identifier used by curator actions."""
        return self.guid or self.link

    @property
    def is_custom(self) -> bool:
        return self.source_name == CUSTOM_SOURCE_NAME

    def matches(self, other: "Article") -> bool:
        """Check whether two articles refer to the same item."""
        if self.guid and self.guid == other.guid:
            return True
        return bool(self.link) and self.link == other.link

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "link": self.link,
            "description": self.description,
            "content": self.content,
            "guid": self.guid,
            "pub_date": self.pub_date.isoformat(),
            "source_name": self.source_name,
            "categories": list(self.categories),
            "creator": self.creator,
            "image_url": self.image_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Article":
        """Rebuild an article stored with ``to_dict``."""
        pub_date = datetime.fromisoformat(data["pub_date"])
        if pub_date.tzinfo is None:
            pub_date = pub_date.replace(tzinfo=UTC)
        return cls(
            title=data["title"],
            link=data["link"],
            description=data.get("description", ""),
            content=data.get("content"),
            guid=data.get("guid", ""),
            pub_date=pub_date,
            source_name=data.get("source_name", ""),
            categories=list(data.get("categories") or []),
            creator=data.get("creator", ""),
            image_url=data.get("image_url"),
        )
