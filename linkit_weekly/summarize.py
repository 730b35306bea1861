"""
Article summarization and headline improvement.

Both operations send a single prompt to the text generator and validate the
returned text before it reaches the curator.
"""

import logging

from .ingest.articles import Article
from .models.llm_client import TextGenerator
from .processing.text_utils import clean_rss_text
from .prompts import PromptLibrary, get_prompt_library

logger = logging.getLogger(__name__)

MAX_SUMMARY_CONTENT = 1000
TITLE_QUOTES = '"\'„“”«»'


class SummaryError(Exception):
    """Raised when a summary or title cannot be produced."""


class ArticleSummarizer:
    """Summarizes articles and rewrites headlines for students."""

    def __init__(
        self,
        generator: TextGenerator,
        prompts: PromptLibrary | None = None,
        language: str = 'de',
    ):
        self.generator = generator
        self.prompts = prompts or get_prompt_library()
        self.language = language

    async def _generate(self, prompt: str, task: str) -> str:
        try:
            text = await self.generator.generate(prompt)
        except Exception as e:
            raise SummaryError(f"{task} failed: {e}") from e

        if not text or not text.strip():
            raise SummaryError(f"{task} returned no content")
        return text.strip()

    async def summarize_article(self, article: Article, language: str | None = None) -> str:
        """Summarize one article.

        The article content (or its description) is cleaned and capped before
        it is placed in the prompt.

        Raises:
            SummaryError: If the generator fails or returns nothing
        """
        content = clean_rss_text(article.content or article.description)[:MAX_SUMMARY_CONTENT]
        prompt = self.prompts.article_summary(article, content, language or self.language)

        summary = await self._generate(prompt, "Article summary")
        logger.info(f"Summarized article: {article.title[:50]}")
        return summary

    async def improve_title(self, article: Article, language: str | None = None) -> str:
        """Rewrite the headline of an article in place and return it."""
        prompt = self.prompts.improve_title(article.title, language or self.language)

        improved = (await self._generate(prompt, "Title improvement")).strip(TITLE_QUOTES).strip()
        if not improved:
            raise SummaryError("Title improvement returned no content")

        logger.info(f"Title improved: {article.title!r} -> {improved!r}")
        article.title = improved
        return improved
