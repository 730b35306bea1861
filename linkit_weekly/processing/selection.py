"""
Top-N selection and curator overrides.

The automatic selection is the pool sorted by descending score (stable,
so equal scores keep pool order) and cut to N. A curator override is an
explicit ordered list that replaces the automatic selection until it is
cleared; the automatic top-N can always be recomputed from the pool.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from ..ingest.articles import Article
from .scoring import ArticleScorer, get_scorer

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 10


@dataclass
class ScoredArticle:
    """Article paired with its score at ranking time."""
    article: Article
    score: int


def rank_articles(
    articles: list[Article],
    scorer: ArticleScorer | None = None,
    now: datetime | None = None,
) -> list[ScoredArticle]:
    """Score every article once and sort by descending score, stable."""
    scorer = scorer or get_scorer()
    scored = [ScoredArticle(article, scorer.score(article, now)) for article in articles]
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored


def select_top(
    articles: list[Article],
    n: int = DEFAULT_TOP_N,
    scorer: ArticleScorer | None = None,
    now: datetime | None = None,
) -> list[Article]:
    """Return the n highest-scoring articles."""
    if n <= 0:
        return []
    return [item.article for item in rank_articles(articles, scorer, now)[:n]]


class ArticleSelection:
    """Article pool with automatic top-N selection and curator overrides."""

    def __init__(
        self,
        pool: list[Article] | None = None,
        limit: int = DEFAULT_TOP_N,
        scorer: ArticleScorer | None = None,
    ):
        self._pool: list[Article] = list(pool or [])
        self.limit = limit
        self.scorer = scorer or get_scorer()
        self._override: list[Article] | None = None

    @property
    def pool(self) -> list[Article]:
        return list(self._pool)

    @property
    def has_override(self) -> bool:
        return self._override is not None

    def set_pool(self, articles: list[Article]) -> None:
        """Replace the pool, dropping override entries that left it."""
        self._pool = list(articles)
        if self._override is not None:
            self._override = [a for a in self._override if self._find(self._pool, a.article_id)]

    def top_n(self, now: datetime | None = None) -> list[Article]:
        """Automatic selection recomputed from the current pool."""
        return select_top(self._pool, self.limit, self.scorer, now)

    def selected(self, now: datetime | None = None) -> list[Article]:
        """Curator override if set, otherwise the automatic top-N."""
        if self._override is not None:
            return list(self._override)
        return self.top_n(now)

    def is_selected(self, article_id: str) -> bool:
        return self._find(self.selected(), article_id) is not None

    def set_override(self, articles: list[Article]) -> None:
        self._override = list(articles)
        logger.debug(f"Curator override set with {len(articles)} articles")

    def clear_override(self) -> None:
        self._override = None

    def _find(self, articles: list[Article], article_id: str) -> Article | None:
        for article in articles:
            if article.article_id == article_id or article.link == article_id:
                return article
        return None

    def _materialize(self) -> list[Article]:
        # First manual change starts from what the curator currently sees.
        if self._override is None:
            self._override = self.top_n()
        return self._override

    def _pool_article(self, article_id: str) -> Article:
        article = self._find(self._pool, article_id)
        if article is None:
            raise KeyError(f"Unknown article: {article_id}")
        return article

    def select(self, article_id: str) -> None:
        """Append a pool article to the selection."""
        article = self._pool_article(article_id)
        selection = self._materialize()
        if self._find(selection, article_id) is None:
            selection.append(article)

    def deselect(self, article_id: str) -> None:
        """Remove an article from the selection, leaving the pool untouched."""
        selection = self._materialize()
        article = self._find(selection, article_id)
        if article is not None:
            selection.remove(article)

    def toggle(self, article_id: str) -> bool:
        """Flip selection state of an article; returns the new state."""
        if self.is_selected(article_id):
            self.deselect(article_id)
            return False
        self.select(article_id)
        return True

    def _move(self, article_id: str, offset: int) -> None:
        selection = self._materialize()
        article = self._find(selection, article_id)
        if article is None:
            raise KeyError(f"Article not selected: {article_id}")
        index = selection.index(article)
        target = index + offset
        if 0 <= target < len(selection):
            selection[index], selection[target] = selection[target], selection[index]

    def move_up(self, article_id: str) -> None:
        self._move(article_id, -1)

    def move_down(self, article_id: str) -> None:
        self._move(article_id, 1)

    def remove_from_pool(self, article_id: str) -> Article | None:
        """Delete an article from the pool and from any override."""
        article = self._find(self._pool, article_id)
        if article is None:
            return None
        self._pool.remove(article)
        if self._override is not None:
            selected = self._find(self._override, article_id)
            if selected is not None:
                self._override.remove(selected)
        return article
