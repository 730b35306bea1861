"""Pytest configuration and fixtures."""

import os
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Generator

import pytest

# Set test environment before the package reads its settings
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="linkit-weekly-tests-")
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["JSON_LOGGING"] = "false"
os.environ["MOCK"] = "false"

# Wednesday of ISO week 16/2025 (14.04.2025–20.04.2025)
FIXED_NOW = datetime(2025, 4, 16, 12, 0, tzinfo=UTC)


class FakeGenerator:
    """Text generator double that records prompts."""

    def __init__(self, response: str = "# Newsletter\n\nGenerated text", error: Exception | None = None):
        self.response = response
        self.error = error
        self.prompts: list[str] = []
        self.calls: list[dict] = []

    async def generate(self, prompt, temperature=None, max_tokens=None):
        self.prompts.append(prompt)
        self.calls.append({"temperature": temperature, "max_tokens": max_tokens})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def test_settings(temp_dir):
    """Settings pointing at a temporary data directory."""
    from linkit_weekly.config import Settings

    return Settings(data_dir=temp_dir / "data", language="de")


@pytest.fixture
def fake_generator():
    """Factory for recording text generators."""
    return FakeGenerator


@pytest.fixture
def make_article():
    """Factory for articles with sensible defaults."""
    from linkit_weekly.ingest.articles import Article

    def _make(title="Test article", link=None, days_old=0, **kwargs):
        link = link or f"https://example.com/{title.lower().replace(' ', '-')}"
        kwargs.setdefault("guid", link)
        kwargs.setdefault("source_name", "Example")
        return Article(
            title=title,
            link=link,
            pub_date=FIXED_NOW - timedelta(days=days_old),
            **kwargs,
        )

    return _make


@pytest.fixture
def sample_articles(make_article):
    """Sample articles list for testing."""
    return [
        make_article(
            "ChatGPT and OpenAI push new AI milestone",
            description="A new model was released.",
            content="Full article text about the release.",
            source_name="Wired",
        ),
        make_article(
            "Gartenarbeit im Frühling",
            description="Tipps für Beete und Rasen.",
            days_old=5,
            source_name="Garten Blog",
        ),
        make_article(
            "Nvidia baut Robotik-Sparte aus",
            description="Neue Hardware für Startups.",
            days_old=2,
            source_name="Heise",
        ),
    ]
