"""Persistent store of RSS feed sources."""

from dataclasses import asdict, dataclass
from pathlib import Path

import orjson

from ..config import ModelConfig, get_model_config
from ..logging import get_logger
from ..utils import is_valid_url

logger = get_logger(__name__)

DECODER_HOST = "the-decoder.de"


class SourceStoreError(ValueError):
    """Raised when a feed source cannot be added."""


@dataclass
class FeedSource:
    """A configured RSS feed."""
    url: str
    name: str
    enabled: bool = True


def normalize_feed_url(url: str) -> str:
    """Point The Decoder URLs at the site's feed endpoint."""
    url = url.strip()
    if DECODER_HOST in url and "/feed/" not in url:
        url = url + "feed/" if url.endswith("/") else url + "/feed/"
    return url


class FeedSourceStore:
    """Feed sources persisted as JSON in the data directory."""

    def __init__(self, path: Path, model_config: ModelConfig | None = None):
        self.path = Path(path)
        self.model_config = model_config or get_model_config()
        self._sources: list[FeedSource] = []
        self.load()

    def _defaults(self) -> list[FeedSource]:
        return [
            FeedSource(url=str(source.url), name=source.name, enabled=source.enabled)
            for source in self.model_config.get_default_sources()
        ]

    def load(self) -> None:
        """Load sources from disk, seeding defaults when the store is missing or unreadable."""
        if not self.path.exists():
            self._sources = self._defaults()
            self.save()
            return

        try:
            data = orjson.loads(self.path.read_bytes())
            self._sources = [
                FeedSource(url=normalize_feed_url(item["url"]), name=item.get("name", ""),
                           enabled=bool(item.get("enabled", True)))
                for item in data
            ]
        except (orjson.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning("Source store unreadable, restoring defaults", path=str(self.path), error=str(e))
            self._sources = self._defaults()
            self.save()

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(
            orjson.dumps([asdict(source) for source in self._sources], option=orjson.OPT_INDENT_2)
        )

    def list_sources(self) -> list[FeedSource]:
        return list(self._sources)

    def enabled(self) -> list[FeedSource]:
        return [source for source in self._sources if source.enabled]

    def has_enabled(self) -> bool:
        return any(source.enabled for source in self._sources)

    def get(self, url: str) -> FeedSource | None:
        for source in self._sources:
            if source.url == url:
                return source
        return None

    def filter_by_name(self, name: str) -> list[FeedSource]:
        """Sources whose name contains the given text, case-insensitively."""
        needle = name.lower()
        return [source for source in self._sources if needle in source.name.lower()]

    def add(self, url: str, name: str = "") -> FeedSource:
        """Add and persist a new enabled source.

        Raises:
            SourceStoreError: If the URL is invalid or already configured
        """
        if not is_valid_url(url):
            raise SourceStoreError(f"Invalid URL: {url}")

        feed_url = normalize_feed_url(url)
        if self.get(feed_url) is not None:
            raise SourceStoreError(f"Source already exists: {feed_url}")

        source = FeedSource(url=feed_url, name=name or "The Decoder", enabled=True)
        self._sources.append(source)
        self.save()
        logger.info("Feed source added", url=feed_url, name=source.name)
        return source

    def remove(self, url: str) -> bool:
        before = len(self._sources)
        self._sources = [source for source in self._sources if source.url != url]
        if len(self._sources) < before:
            self.save()
            logger.info("Feed source removed", url=url)
            return True
        return False

    def toggle(self, url: str, enabled: bool) -> bool:
        source = self.get(url)
        if source is None:
            return False
        source.enabled = enabled
        self.save()
        logger.info("Feed source toggled", url=url, enabled=enabled)
        return True
