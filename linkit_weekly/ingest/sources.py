"""RSS feed fetching and the fetch-normalize-dedupe ingestion pass."""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import aiohttp
import feedparser

from ..config import Settings, get_settings
from ..logging import StageTimer, get_logger, log_feed_stage
from ..processing.dedupe import deduplicate_articles
from ..processing.normalize import normalize_items
from ..processing.relevance import filter_recent_articles, sort_articles_by_date
from ..utils import is_valid_url, retry_async
from .articles import Article
from .entries import entry_from_feedparser
from .source_store import FeedSource

logger = get_logger(__name__)


class FeedError(Exception):
    """Raised when a feed cannot be fetched or parsed."""


@dataclass
class FetchReport:
    """Outcome of fetching a set of feeds."""
    articles: list[Article] = field(default_factory=list)
    source_counts: dict[str, int] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)


@dataclass
class FeedValidationResult:
    """Result of checking that a feed yields usable articles."""
    is_valid: bool
    message: str
    articles: list[Article] = field(default_factory=list)


def generate_validation_result(
    articles: list[Article],
    source_name: str,
    error: str | None = None,
) -> FeedValidationResult:
    """Build the validation verdict for a feed."""
    if error:
        return FeedValidationResult(False, f"RSS feed validation failed: {error}")

    if not articles:
        return FeedValidationResult(False, f"No valid articles found in RSS feed for {source_name}")

    return FeedValidationResult(
        True,
        f"RSS feed for {source_name} is valid - {len(articles)} articles found",
        articles,
    )


class FeedFetcher:
    """Fetches RSS/Atom feeds over a shared aiohttp session."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self):
        """Async context manager entry."""
        timeout = aiohttp.ClientTimeout(total=self.settings.feed_timeout_seconds)
        connector = aiohttp.TCPConnector(limit=self.settings.global_parallel, limit_per_host=2)

        self.session = aiohttp.ClientSession(
            timeout=timeout,
            connector=connector,
            headers={
                'User-Agent': self.settings.user_agent,
                'Accept': 'application/rss+xml, application/atom+xml, application/xml, text/xml, */*',
            }
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.session:
            await self.session.close()

    async def _fetch_url(self, url: str, retry_count: int = 2) -> bytes:
        """Fetch raw feed bytes with retry logic.

        Raises:
            FeedError: If the request fails after all retries
        """
        if not self.session:
            raise RuntimeError("Session not initialized. Use async context manager.")

        async def fetch_with_session():
            async with self.session.get(url) as response:
                response.raise_for_status()
                body = await response.read()
                logger.debug("Feed fetched", url=url, status=response.status, content_length=len(body))
                return body

        try:
            return await retry_async(
                fetch_with_session,
                max_retries=retry_count,
                backoff_factor=2.0,
                exceptions=(aiohttp.ClientError, asyncio.TimeoutError)
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FeedError(f"Failed to fetch {url}: {e}") from e

    def parse_feed(self, body: bytes | str, source_name: str) -> list[Article]:
        """Parse feed content and normalize its entries.

        Raises:
            FeedError: If the content is not a readable feed
        """
        parsed = feedparser.parse(body)
        if parsed.bozo and not parsed.entries:
            raise FeedError(f"Unreadable feed for {source_name}: {parsed.get('bozo_exception')}")

        entries = [entry_from_feedparser(entry, parsed.get("version")) for entry in parsed.entries]
        return normalize_items(entries, source_name)

    async def fetch_feed(self, source: FeedSource) -> list[Article]:
        """Fetch one feed and return its normalized articles."""
        body = await self._fetch_url(source.url)
        return self.parse_feed(body, source.name)

    async def fetch_all(self, sources: list[FeedSource]) -> FetchReport:
        """Fetch feeds concurrently; failed sources are logged and skipped."""
        semaphore = asyncio.Semaphore(self.settings.global_parallel)

        async def fetch_source(source: FeedSource) -> list[Article]:
            async with semaphore:
                with StageTimer("fetch_feed", logger, source=source.name):
                    return await self.fetch_feed(source)

        results = await asyncio.gather(
            *(fetch_source(source) for source in sources), return_exceptions=True
        )

        report = FetchReport()
        # Results are combined in source order regardless of completion order.
        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                logger.error("Failed to fetch from source", source=source.name, url=source.url, error=str(result))
                report.errors[source.name] = str(result)
                report.source_counts[source.name] = 0
                continue
            report.source_counts[source.name] = len(result)
            report.articles.extend(result)

        return report


async def fetch_news(
    sources: list[FeedSource],
    settings: Settings | None = None,
    max_days_old: int | None = None,
    now: datetime | None = None,
) -> FetchReport:
    """Fetch enabled feeds, deduplicate and sort newest first.

    Args:
        sources: Feed sources to read (disabled ones are skipped)
        settings: Application settings
        max_days_old: Optional recency cut-off in days
        now: Reference time for the recency cut-off

    Returns:
        Fetch report with the combined article list
    """
    settings = settings or get_settings()
    enabled = [source for source in sources if source.enabled]
    if not enabled:
        logger.warning("No enabled feed sources configured")
        return FetchReport()

    async with FeedFetcher(settings) as fetcher:
        with StageTimer("fetch_all_sources", logger, sources=len(enabled)):
            report = await fetcher.fetch_all(enabled)

    fetched = len(report.articles)
    articles = sort_articles_by_date(deduplicate_articles(report.articles))
    if max_days_old is not None:
        articles = filter_recent_articles(articles, max_days_old, now)
    report.articles = articles

    logger.info(
        **log_feed_stage(
            stage="fetch_news",
            input_count=fetched,
            output_count=len(articles),
            sources=len(enabled),
            failed_sources=len(report.errors),
        )
    )
    return report


async def validate_feed(url: str, name: str, settings: Settings | None = None) -> FeedValidationResult:
    """Fetch a feed once and report whether it yields articles."""
    if not is_valid_url(url):
        return generate_validation_result([], name, error=f"Invalid URL: {url}")

    try:
        async with FeedFetcher(settings) as fetcher:
            articles = await fetcher.fetch_feed(FeedSource(url=url, name=name))
    except FeedError as e:
        return generate_validation_result([], name, error=str(e))

    return generate_validation_result(articles, name)


async def gather_articles(
    sources: list[FeedSource],
    settings: Settings | None = None,
    mock: bool = False,
    now: datetime | None = None,
) -> FetchReport:
    """Gather recent articles from feeds, or mock articles for offline runs.

    Mock articles are dated relative to ``now`` so that scoring and week
    filtering see the same clock as a live run.
    """
    settings = settings or get_settings()
    if mock or settings.mock:
        articles = sort_articles_by_date(_generate_mock_articles(now))
        return FetchReport(articles=articles, source_counts={"Mock": len(articles)})

    return await fetch_news(sources, settings, max_days_old=settings.max_days_old, now=now)


def _generate_mock_articles(now: datetime | None = None) -> list[Article]:
    """Generate student-focused mock articles for offline runs."""
    now = now or datetime.now(UTC)
    raw_entries = [
        {
            "title": "PyTorch 2.3 bringt neue Features für studentische ML-Projekte",
            "description": "Die neueste PyTorch-Version führt vereinfachte APIs für Einsteiger ein und verbessert die Performance für typische Uni-Projekte.",
            "link": "https://pytorch.org/blog/pytorch-2-3-release",
            "isoDate": now.isoformat(),
            "source": "PyTorch Blog",
        },
        {
            "title": "Neue Kaggle Learn-Kurse zu Large Language Models kostenlos verfügbar",
            "description": "Kaggle erweitert sein kostenloses Lernangebot um praktische LLM-Kurse zu Fine-Tuning, Prompt Engineering und RAG-Systemen.",
            "link": "https://kaggle.com/learn/large-language-models",
            "isoDate": (now - timedelta(days=1)).isoformat(),
            "source": "Kaggle",
        },
        {
            "title": "OpenAI stellt neues ChatGPT-Modell für Entwickler vor",
            "description": "Das Update verbessert Coding-Aufgaben und senkt die API-Kosten für kleine Software-Projekte.",
            "link": "https://techcrunch.com/openai-new-chatgpt-model",
            "isoDate": (now - timedelta(days=2)).isoformat(),
            "source": "TechCrunch",
        },
        {
            "title": "Nvidia kündigt günstigere GPUs für KI-Forschung an",
            "description": "Neue Hardware soll Deep-Learning-Training an Hochschulen erschwinglicher machen.",
            "link": "https://www.heise.de/news/nvidia-ki-gpus",
            "isoDate": (now - timedelta(days=3)).isoformat(),
            "source": "Heise",
        },
        {
            "title": "Robotik-Startup aus Karlsruhe sammelt Millionen ein",
            "description": "Das Team automatisiert Lagerlogistik mit lernenden Greifarmen und sucht Werkstudierende.",
            "link": "https://t3n.de/news/robotik-startup-karlsruhe",
            "isoDate": (now - timedelta(days=5)).isoformat(),
            "source": "t3n",
        },
    ]

    articles = []
    for entry in raw_entries:
        articles.extend(normalize_items([entry], entry["source"], now))
    return articles
