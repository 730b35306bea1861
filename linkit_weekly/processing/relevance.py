"""
Pre-ranking filters: recency cut-off, date ordering and the student
relevance filter used by the student news view.
"""

import logging
from datetime import UTC, datetime, timedelta

from ..config import ModelConfig, get_model_config
from ..ingest.articles import Article
from ..utils import ensure_utc
from .text_utils import contains_any

logger = logging.getLogger(__name__)


def sort_articles_by_date(articles: list[Article]) -> list[Article]:
    """Return articles ordered newest first."""
    return sorted(articles, key=lambda a: ensure_utc(a.pub_date), reverse=True)


def filter_recent_articles(
    articles: list[Article],
    max_days_old: int = 7,
    now: datetime | None = None,
) -> list[Article]:
    """Keep articles published within the last max_days_old days."""
    now = ensure_utc(now) if now else datetime.now(UTC)
    cutoff = now - timedelta(days=max_days_old)
    recent = [a for a in articles if ensure_utc(a.pub_date) >= cutoff]
    logger.debug(f"Recency filter kept {len(recent)}/{len(articles)} articles")
    return recent


class StudentRelevanceFilter:
    """Keeps articles that mention student topics or come from tech outlets."""

    def __init__(self, keywords: list[str] | None = None, tech_sources: list[str] | None = None,
                 model_config: ModelConfig | None = None):
        if keywords is None or tech_sources is None:
            config = (model_config or get_model_config()).get_student_filter()
            keywords = keywords if keywords is not None else config.get("keywords", [])
            tech_sources = tech_sources if tech_sources is not None else config.get("tech_sources", [])
        self.keywords = keywords
        self.tech_sources = tech_sources

    def is_relevant(self, article: Article) -> bool:
        search_text = " ".join([article.title, article.description or "", " ".join(article.categories)])
        if contains_any(search_text, self.keywords):
            return True
        # Source names are matched case-sensitively, as feeds label them.
        return any(source in article.source_name for source in self.tech_sources)

    def filter(self, articles: list[Article]) -> list[Article]:
        relevant = [a for a in articles if self.is_relevant(a)]
        logger.info(f"Student filter kept {len(relevant)}/{len(articles)} articles")
        return relevant


def filter_student_relevant(articles: list[Article]) -> list[Article]:
    """Convenience function for the student relevance filter."""
    return StudentRelevanceFilter().filter(articles)
