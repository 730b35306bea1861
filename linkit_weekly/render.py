"""
Newsletter rendering for LINKIT Weekly.

Drafts the weekly newsletter with a text generator, falls back to a fixed
Markdown template when generation is not possible, and converts the result
to simple HTML for the archive.
"""

import asyncio
import logging
import re
from datetime import datetime
from pathlib import Path

from .config import Settings, get_settings
from .digest import WeeklyDigest
from .ingest.articles import Article
from .models.llm_client import TextGenerator
from .prompts import PromptLibrary, get_prompt_library

logger = logging.getLogger(__name__)

PROMO_MARKER = "linkedin.com/company/linkit-karlsruhe"

HEADING_PATTERN = re.compile(r'^(#{1,3}) (.*)$')
BOLD_PATTERN = re.compile(r'\*\*(.+?)\*\*')
ITALIC_PATTERN = re.compile(r'\*(.+?)\*')
LINK_PATTERN = re.compile(r'\[([^\]]+)\]\(([^)]+)\)')


class NewsletterError(Exception):
    """Base error for newsletter rendering."""


class NoArticlesError(NewsletterError, ValueError):
    """Raised when a newsletter is requested without any articles."""


class NewsletterGenerationError(NewsletterError):
    """Raised when the text generator fails or returns nothing."""


FALLBACK_TEXT = {
    'de': {
        'week': 'KW',
        'tagline': 'Dein Update zu KI, Data Science und Industrie 4.0',
        'greeting': 'Hey Leute!',
        'intro': 'Willkommen zur KW {week}! Hier sind die wichtigsten KI-News für euch zusammengefasst:',
        'article': 'Artikel',
        'read_more': 'Mehr dazu',
        'link': 'Link zum Artikel',
        'closing': "Das war's für diese Woche! Bleibt neugierig und experimentiert weiter mit KI.\n\nEuer LINKIT Team 🚀",
        'no_articles': 'Keine Artikel für die Zusammenfassung verfügbar',
    },
    'en': {
        'week': 'Week',
        'tagline': 'Your update on AI, Data Science and Industry 4.0',
        'greeting': 'Hey everyone!',
        'intro': 'Welcome to Week {week}! Here are the most important AI news summarized for you:',
        'article': 'Article',
        'read_more': 'Read more',
        'link': 'Link to article',
        'closing': "That's it for this week! Stay curious and keep experimenting with AI.\n\nYour LINKIT Team 🚀",
        'no_articles': 'No articles available for summary',
    },
}


def _texts(language: str) -> dict[str, str]:
    return FALLBACK_TEXT.get(language, FALLBACK_TEXT['de'])


def promo_block(link: str) -> str:
    """Closing block pointing readers to the community page."""
    return (
        "\n\n---\n\n"
        "**Bleibt connected! 🤝**\n"
        f"Für weitere Updates, Diskussionen und Community-Events folgt uns auf [LinkedIn]({link}). "
        "Dort teilen wir auch Infos zu Workshops, Gastvorträgen und Networking-Möglichkeiten!"
    )


def _inline(text: str) -> str:
    text = BOLD_PATTERN.sub(r'<strong>\1</strong>', text)
    text = ITALIC_PATTERN.sub(r'<em>\1</em>', text)
    return LINK_PATTERN.sub(r'<a href="\2">\1</a>', text)


def markdown_to_html(markdown: str) -> str:
    """Convert newsletter Markdown to simple HTML.

    Handles level 1-3 headings, bold, italic, links and ``- `` list items.
    Consecutive list items are wrapped in one ``<ul>``; other lines are
    joined with ``<br>``.
    """
    blocks: list[str] = []
    list_items: list[str] = []

    def flush_list() -> None:
        if list_items:
            blocks.append("<ul>" + "".join(f"<li>{item}</li>" for item in list_items) + "</ul>")
            list_items.clear()

    for line in markdown.split("\n"):
        if line.startswith("- "):
            list_items.append(_inline(line[2:]))
            continue

        flush_list()
        heading = HEADING_PATTERN.match(line)
        if heading:
            level = len(heading.group(1))
            blocks.append(f"<h{level}>{_inline(heading.group(2))}</h{level}>")
        else:
            blocks.append(_inline(line))

    flush_list()
    return "<br>".join(blocks)


class NewsletterRenderer:
    """Markdown newsletter rendering system."""

    def __init__(
        self,
        settings: Settings | None = None,
        generator: TextGenerator | None = None,
        prompts: PromptLibrary | None = None,
    ):
        """Initialize renderer.

        Args:
            settings: Application settings
            generator: Text generation capability; None means fallback only
            prompts: Prompt template library
        """
        self.settings = settings or get_settings()
        self.generator = generator
        self.prompts = prompts or get_prompt_library()

    def _resolve(
        self,
        digest: WeeklyDigest,
        articles: list[Article] | None,
        language: str | None,
    ) -> tuple[list[Article], str]:
        language = language or self.settings.language
        selected = list(articles) if articles is not None else list(digest.items)
        if not selected:
            raise NoArticlesError(_texts(language)['no_articles'])
        return selected, language

    def build_prompt(
        self,
        digest: WeeklyDigest,
        articles: list[Article] | None = None,
        language: str | None = None,
    ) -> str:
        """Build the generation prompt for the selected articles.

        Raises:
            NoArticlesError: If neither a selection nor digest items are given
        """
        selected, language = self._resolve(digest, articles, language)
        return self.prompts.newsletter(digest, selected, language)

    async def generate(
        self,
        digest: WeeklyDigest,
        articles: list[Article] | None = None,
        language: str | None = None,
    ) -> str:
        """Draft the newsletter with the text generator.

        Raises:
            NoArticlesError: If there is nothing to write about
            NewsletterGenerationError: If generation fails, times out or returns no text
        """
        prompt = self.build_prompt(digest, articles, language)

        if self.generator is None:
            raise NewsletterGenerationError("No text generator configured")

        logger.info(f"Generating newsletter for {digest.week_label}")
        try:
            text = await asyncio.wait_for(
                self.generator.generate(
                    prompt,
                    temperature=self.settings.newsletter_temperature,
                    max_tokens=self.settings.newsletter_max_tokens,
                ),
                timeout=self.settings.generation_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise NewsletterGenerationError(
                f"Newsletter generation timed out after {self.settings.generation_timeout_seconds}s"
            ) from e
        except Exception as e:
            raise NewsletterGenerationError(f"Newsletter generation failed: {e}") from e

        if not text or not text.strip():
            raise NewsletterGenerationError("Newsletter generation returned no content")

        return self.append_promo(text)

    async def generate_with_fallback(
        self,
        digest: WeeklyDigest,
        articles: list[Article] | None = None,
        language: str | None = None,
    ) -> str:
        """Draft the newsletter, using the fixed template when generation is not possible."""
        selected, language = self._resolve(digest, articles, language)

        if self.generator is None:
            logger.info("No text generator configured, using fallback template")
            return self.render_fallback(digest, selected, language)

        try:
            return await self.generate(digest, selected, language)
        except NewsletterGenerationError as e:
            logger.warning(f"Falling back to static newsletter: {e}")
            return self.render_fallback(digest, selected, language)

    def render_fallback(
        self,
        digest: WeeklyDigest,
        articles: list[Article] | None = None,
        language: str | None = None,
    ) -> str:
        """Fallback rendering without a text generator."""
        selected, language = self._resolve(digest, articles, language)
        texts = _texts(language)
        week = f"{texts['week']} {digest.week_number}"

        sections = []
        for i, article in enumerate(selected, 1):
            sections.append(
                f"## {texts['article']} {i}: {article.title}\n\n"
                f"{article.description}\n\n"
                f"👉 **{texts['read_more']}:** [{texts['link']}]({article.link})"
            )

        lines = [
            f"# 📬 LINKIT WEEKLY {week}",
            f"**{texts['tagline']}**",
            "",
            f"{week} · {digest.date_range}",
            "",
            texts['greeting'],
            "",
            texts['intro'].format(week=digest.week_number),
            "",
            "\n\n".join(sections),
            "",
            "---",
            "",
            texts['closing'],
        ]

        return '\n'.join(lines)

    def append_promo(self, text: str) -> str:
        """Append the community block unless the text already links to it."""
        link = self.settings.promo_link
        if not link or PROMO_MARKER in text or link in text:
            return text
        return text + promo_block(link)

    def save_newsletter(self, newsletter_content: str,
                        output_path: Path | None = None) -> Path:
        """Save newsletter to file."""
        if output_path is None:
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            output_path = self.settings.data_dir / f"linkit_weekly_{timestamp}.md"

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(newsletter_content)

        logger.info(f"Newsletter saved to {output_path}")
        return output_path
