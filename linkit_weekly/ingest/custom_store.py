"""Persistent store of manually imported articles."""

from pathlib import Path

import orjson

from ..logging import get_logger
from .articles import CUSTOM_SOURCE_NAME, Article

logger = get_logger(__name__)


class CustomArticleStore:
    """Imported articles persisted as JSON in the data directory.

    Stored articles join the feed articles of every pipeline run; the weekly
    filter decides which of them land in a given newsletter.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._articles: list[Article] = []
        self.load()

    def load(self) -> None:
        """Load articles from disk; a missing or unreadable store is empty."""
        if not self.path.exists():
            self._articles = []
            return

        try:
            data = orjson.loads(self.path.read_bytes())
            self._articles = [Article.from_dict(item) for item in data]
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Custom article store unreadable, starting empty", path=str(self.path), error=str(e))
            self._articles = []

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(
            orjson.dumps([article.to_dict() for article in self._articles], option=orjson.OPT_INDENT_2)
        )

    def list_articles(self) -> list[Article]:
        return list(self._articles)

    def get(self, article_id: str) -> Article | None:
        for article in self._articles:
            if article.article_id == article_id:
                return article
        return None

    def add(self, article: Article) -> Article:
        """Store an imported article, replacing an earlier import of the same item."""
        article.source_name = CUSTOM_SOURCE_NAME
        self._articles = [existing for existing in self._articles if not existing.matches(article)]
        self._articles.append(article)
        self.save()
        logger.info("Custom article stored", url=article.link, title=article.title)
        return article

    def remove(self, article_id: str) -> bool:
        before = len(self._articles)
        self._articles = [article for article in self._articles if article.article_id != article_id]
        if len(self._articles) < before:
            self.save()
            logger.info("Custom article removed", article_id=article_id)
            return True
        return False
