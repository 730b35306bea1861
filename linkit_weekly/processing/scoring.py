"""
Heuristic relevance scoring for newsletter candidates.

The score is an integer of at least 1 built from:
- keyword hits in title and description
- recency in whole days
- a bonus for manually imported articles
- a bonus for well-known tech publications

Scoring never mutates an article and depends only on the article and the
reference time, which callers may inject.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from ..config import ModelConfig, get_model_config
from ..ingest.articles import CUSTOM_SOURCE_NAME, Article
from ..utils import ensure_utc

logger = logging.getLogger(__name__)

DEFAULT_KEYWORDS = (
    "KI", "AI", "künstliche intelligenz", "machine learning", "deep learning",
    "chatgpt", "openai", "google", "microsoft", "meta", "tesla", "nvidia",
    "startup", "tech", "innovation", "digitalisierung", "automation",
    "robotik", "algorithmus", "daten", "software", "hardware",
)

DEFAULT_RELIABLE_SOURCES = ("techcrunch", "wired", "ars technica", "the verge")


class RelevanceLevel(Enum):
    """Relevance bands shown to the curator."""
    VERY_HIGH = "very_high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


RELEVANCE_LABELS = {
    "de": {
        RelevanceLevel.VERY_HIGH: "Sehr relevant",
        RelevanceLevel.HIGH: "Relevant",
        RelevanceLevel.MEDIUM: "Mäßig relevant",
        RelevanceLevel.LOW: "Weniger relevant",
    },
    "en": {
        RelevanceLevel.VERY_HIGH: "Very relevant",
        RelevanceLevel.HIGH: "Relevant",
        RelevanceLevel.MEDIUM: "Moderately relevant",
        RelevanceLevel.LOW: "Less relevant",
    },
}


@dataclass
class ScoringWeights:
    """Keyword list and point values used by the scorer."""
    keywords: tuple[str, ...] = DEFAULT_KEYWORDS
    reliable_sources: tuple[str, ...] = DEFAULT_RELIABLE_SOURCES
    title_keyword: int = 3
    description_keyword: int = 1
    # (max age in days, points), checked in order
    recency_bands: tuple[tuple[int, int], ...] = ((1, 5), (3, 3), (7, 1))
    custom_source: str = CUSTOM_SOURCE_NAME
    custom_source_bonus: int = 2
    reliable_source_bonus: int = 2
    minimum_score: int = 1


@dataclass
class ArticleScore:
    """Scoring breakdown for an article."""
    total_score: int
    keyword_score: int
    recency_score: int
    source_score: int
    matched_keywords: list[str] = field(default_factory=list)

    @property
    def reasoning(self) -> str:
        return (
            f"Keywords: {self.keyword_score} | Recency: {self.recency_score} "
            f"| Source: {self.source_score}"
        )


def relevance_level(score: int) -> RelevanceLevel:
    """Map a score onto its relevance band."""
    if score >= 8:
        return RelevanceLevel.VERY_HIGH
    if score >= 5:
        return RelevanceLevel.HIGH
    if score >= 3:
        return RelevanceLevel.MEDIUM
    return RelevanceLevel.LOW


def relevance_label(score: int, language: str = "de") -> str:
    """Human-readable relevance band for a score."""
    labels = RELEVANCE_LABELS.get(language, RELEVANCE_LABELS["de"])
    return labels[relevance_level(score)]


class ArticleScorer:
    """Keyword, recency and source based article scorer."""

    def __init__(self, weights: ScoringWeights | None = None, model_config: ModelConfig | None = None):
        """Initialize scorer with explicit weights or those from the model config."""
        self.weights = weights or self._load_weights_from_config(model_config or get_model_config())
        self._keywords = [keyword.lower() for keyword in self.weights.keywords]
        self._reliable_sources = [source.lower() for source in self.weights.reliable_sources]

    def _load_weights_from_config(self, model_config: ModelConfig) -> ScoringWeights:
        """Load keyword lists from configuration, keeping default point values."""
        scoring_config = model_config.get_scoring_config()
        return ScoringWeights(
            keywords=tuple(scoring_config.get("keywords") or DEFAULT_KEYWORDS),
            reliable_sources=tuple(scoring_config.get("reliable_sources") or DEFAULT_RELIABLE_SOURCES),
        )

    def _keyword_score(self, article: Article) -> tuple[int, list[str]]:
        title = article.title.lower()
        description = (article.description or "").lower()

        score = 0
        matched = []
        for keyword in self._keywords:
            hit = False
            if keyword in title:
                score += self.weights.title_keyword
                hit = True
            if keyword in description:
                score += self.weights.description_keyword
                hit = True
            if hit:
                matched.append(keyword)
        return score, matched

    def _recency_score(self, article: Article, now: datetime) -> int:
        age_days = math.floor((now - ensure_utc(article.pub_date)).total_seconds() / 86400)
        for max_days, points in self.weights.recency_bands:
            if age_days <= max_days:
                return points
        return 0

    def _source_score(self, article: Article) -> int:
        score = 0
        if article.source_name == self.weights.custom_source:
            score += self.weights.custom_source_bonus

        source = article.source_name.lower()
        if any(reliable in source for reliable in self._reliable_sources):
            score += self.weights.reliable_source_bonus
        return score

    def score_article(self, article: Article, now: datetime | None = None) -> ArticleScore:
        """Calculate the score breakdown for an article."""
        now = ensure_utc(now) if now else datetime.now(UTC)

        keyword_score, matched = self._keyword_score(article)
        recency_score = self._recency_score(article, now)
        source_score = self._source_score(article)

        total = keyword_score + recency_score + source_score
        return ArticleScore(
            total_score=max(total, self.weights.minimum_score),
            keyword_score=keyword_score,
            recency_score=recency_score,
            source_score=source_score,
            matched_keywords=matched,
        )

    def score(self, article: Article, now: datetime | None = None) -> int:
        """Relevance score of an article, at least 1."""
        return self.score_article(article, now).total_score


_default_scorer: ArticleScorer | None = None


def get_scorer() -> ArticleScorer:
    """Get the shared scorer built from the model config."""
    global _default_scorer
    if _default_scorer is None:
        _default_scorer = ArticleScorer()
    return _default_scorer


def score_article(article: Article, now: datetime | None = None) -> int:
    """Convenience function for scoring one article."""
    return get_scorer().score(article, now)
