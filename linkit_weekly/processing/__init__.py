"""Content processing module."""

from .dedupe import ArticleDeduplicator, DuplicateGroup, dedup_key, deduplicate_articles
from .normalize import normalize_item, normalize_items
from .relevance import StudentRelevanceFilter, filter_recent_articles, sort_articles_by_date
from .scoring import ArticleScorer, RelevanceLevel, ScoringWeights, relevance_label, score_article
from .selection import ArticleSelection, rank_articles, select_top
from .text_utils import canonical_title, clean_rss_text

__all__ = [
    'normalize_item',
    'normalize_items',
    'deduplicate_articles',
    'dedup_key',
    'ArticleDeduplicator',
    'DuplicateGroup',
    'score_article',
    'relevance_label',
    'ArticleScorer',
    'RelevanceLevel',
    'ScoringWeights',
    'select_top',
    'rank_articles',
    'ArticleSelection',
    'sort_articles_by_date',
    'filter_recent_articles',
    'StudentRelevanceFilter',
    'clean_rss_text',
    'canonical_title',
]
