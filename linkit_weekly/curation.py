"""
Curation session for one weekly digest.

A session holds the week's article pool and the curator's selection, and
wires the summarizer, renderer and archive to the curator actions.
"""

import logging
from datetime import datetime

from .archive import NewsletterArchive, NewsletterRecord, archive_title
from .digest import WeeklyDigest
from .ingest.articles import Article
from .processing.dedupe import ArticleDeduplicator
from .processing.selection import ArticleSelection
from .render import NewsletterRenderer, markdown_to_html
from .summarize import ArticleSummarizer

logger = logging.getLogger(__name__)


class CurationSession:
    """Curator actions on a weekly digest."""

    def __init__(
        self,
        digest: WeeklyDigest,
        renderer: NewsletterRenderer,
        archive: NewsletterArchive | None = None,
        summarizer: ArticleSummarizer | None = None,
        selection: ArticleSelection | None = None,
        language: str = "de",
    ):
        self.digest = digest
        self.renderer = renderer
        self.archive = archive
        self.summarizer = summarizer
        self.language = language
        self.selection = selection or ArticleSelection()
        self.selection.set_pool(digest.items)

    def _article(self, article_id: str) -> Article:
        for article in self.digest.items:
            if article.article_id == article_id or article.link == article_id:
                return article
        raise KeyError(f"Unknown article: {article_id}")

    def add_articles(self, articles: list[Article]) -> int:
        """Add articles to the pool; returns how many were new."""
        added = self.digest.add_items(articles)
        self.selection.set_pool(self.digest.items)
        logger.info(f"Added {added} of {len(articles)} articles to {self.digest.week_label}")
        return added

    def delete_article(self, article_id: str) -> Article:
        """Remove an article from the pool and the selection."""
        article = self.digest.remove_item(article_id)
        if article is None:
            raise KeyError(f"Unknown article: {article_id}")
        self.selection.remove_from_pool(article.article_id)
        return article

    async def improve_title(self, article_id: str) -> str:
        if self.summarizer is None:
            raise RuntimeError("No summarizer configured")
        return await self.summarizer.improve_title(self._article(article_id), self.language)

    async def summarize(self, article_id: str) -> str:
        if self.summarizer is None:
            raise RuntimeError("No summarizer configured")
        return await self.summarizer.summarize_article(self._article(article_id), self.language)

    def toggle(self, article_id: str) -> bool:
        return self.selection.toggle(article_id)

    def move_up(self, article_id: str) -> None:
        self.selection.move_up(article_id)

    def move_down(self, article_id: str) -> None:
        self.selection.move_down(article_id)

    def confirm_selection(self, article_ids: list[str]) -> list[Article]:
        """Replace the selection with the given articles, in order, each once."""
        articles = ArticleDeduplicator().unique_by_id([self._article(article_id) for article_id in article_ids])
        self.selection.set_override(articles)
        return articles

    def clear_selection(self) -> None:
        """Return to the automatic top-N selection."""
        self.selection.clear_override()

    def selected_articles(self, now: datetime | None = None) -> list[Article]:
        return self.selection.selected(now)

    async def generate_newsletter(self, fallback: bool = False, now: datetime | None = None) -> str:
        """Draft the newsletter from the current selection.

        Regenerating replaces the previous draft.
        """
        articles = self.selected_articles(now)
        if fallback:
            content = await self.renderer.generate_with_fallback(self.digest, articles, self.language)
        else:
            content = await self.renderer.generate(self.digest, articles, self.language)

        self.digest.set_generated_content(content)
        return content

    async def save_to_archive(self) -> int:
        """Store the current draft in the archive and return its id.

        Raises:
            ValueError: If there is no draft or no articles to save
            ArchiveError: If the archive write fails
        """
        if self.archive is None:
            raise RuntimeError("No archive configured")
        content = self.digest.generated_content
        if not content or not content.strip():
            raise ValueError("No generated newsletter to save")
        if not self.digest.items:
            raise ValueError("Digest has no articles")

        record = NewsletterRecord(
            week_number=self.digest.week_number,
            year=self.digest.year,
            title=archive_title(self.digest.week_number, self.language),
            content=content,
            html_content=markdown_to_html(content),
            date_range=self.digest.date_range,
            article_count=len(self.selected_articles()),
            language=self.language,
        )
        return await self.archive.save(record)
