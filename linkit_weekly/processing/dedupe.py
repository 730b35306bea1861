"""
Deduplication of normalized articles.

Two articles are duplicates when their lowercased, whitespace-normalized
titles and their links are identical. The first occurrence is kept as is,
later ones are dropped without merging any fields, and input order is
preserved, so running the pass twice changes nothing.
"""

import logging
from dataclasses import dataclass, field

from ..ingest.articles import Article
from .text_utils import canonical_title

logger = logging.getLogger(__name__)


def dedup_key(article: Article) -> str:
    """Identity key of an article: canonical title plus exact link."""
    return f"{canonical_title(article.title)}|{article.link}"


@dataclass
class DuplicateGroup:
    """Articles sharing one identity key."""
    canonical_article: Article
    duplicates: list[Article] = field(default_factory=list)


class ArticleDeduplicator:
    """Stable first-occurrence-wins deduplication."""

    def find_groups(self, articles: list[Article]) -> list[DuplicateGroup]:
        """Group articles by identity key, in order of first occurrence."""
        groups: dict[str, DuplicateGroup] = {}
        for article in articles:
            key = dedup_key(article)
            if key in groups:
                groups[key].duplicates.append(article)
            else:
                groups[key] = DuplicateGroup(canonical_article=article)
        return list(groups.values())

    def deduplicate(self, articles: list[Article]) -> list[Article]:
        """Remove duplicates, keeping the first occurrence of each key."""
        groups = self.find_groups(articles)
        unique = [group.canonical_article for group in groups]

        removed = len(articles) - len(unique)
        if removed:
            logger.info(f"Removed {removed} duplicate articles, {len(unique)} remain")
        return unique

    def unique_by_id(self, articles: list[Article]) -> list[Article]:
        """Keep the first article per curator id (guid or link)."""
        seen: set[str] = set()
        unique = []
        for article in articles:
            if article.article_id in seen:
                continue
            seen.add(article.article_id)
            unique.append(article)
        return unique


def deduplicate_articles(articles: list[Article]) -> list[Article]:
    """Convenience function for article deduplication."""
    return ArticleDeduplicator().deduplicate(articles)
