"""
Prompt templates for newsletter drafting, summaries and archive Q&A.

Prompts live as Jinja2 templates in the package ``templates`` directory.
Language-specific templates are named ``<prompt>_<language>.md``.
"""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

from .digest import WeeklyDigest
from .ingest.articles import Article
from .ingest.search import SearchResponse

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / 'templates'
SUPPORTED_LANGUAGES = ('de', 'en')


class PromptLibrary:
    """Renders the prompt templates shipped with the package."""

    def __init__(self, template_dir: Path | None = None):
        self.template_dir = Path(template_dir or TEMPLATE_DIR)
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            trim_blocks=True,
            lstrip_blocks=True
        )
        self._register_filters()

    def _register_filters(self) -> None:
        """Register custom Jinja2 filters."""

        def format_date(date_obj, format_str='%d.%m.%Y'):
            """Format date object."""
            if isinstance(date_obj, str):
                try:
                    date_obj = datetime.fromisoformat(date_obj.replace('Z', '+00:00'))
                except ValueError:
                    return date_obj
            return date_obj.strftime(format_str)

        def excerpt(text, length=500):
            """First characters of a text followed by an ellipsis."""
            return f"{(text or '')[:length]}..."

        self.jinja_env.filters['format_date'] = format_date
        self.jinja_env.filters['excerpt'] = excerpt

    def render(self, template_name: str, **context: Any) -> str:
        template = self.jinja_env.get_template(template_name)
        return template.render(**context).strip()

    def _localized(self, name: str, language: str) -> str:
        if language not in SUPPORTED_LANGUAGES:
            logger.warning(f"Unsupported prompt language '{language}', using German")
            language = 'de'
        return f"{name}_{language}.md"

    def newsletter(self, digest: WeeklyDigest, articles: list[Article], language: str = 'de') -> str:
        """Prompt for drafting the weekly newsletter from the selected articles."""
        return self.render(self._localized('newsletter', language), digest=digest, articles=articles)

    def article_summary(self, article: Article, content: str, language: str = 'de') -> str:
        return self.render(self._localized('article_summary', language), article=article, content=content)

    def improve_title(self, title: str, language: str = 'de') -> str:
        return self.render(self._localized('improve_title', language), title=title)

    def archive_qa(self, question: str, context: str, language: str = 'de') -> str:
        return self.render(self._localized('archive_qa', language), question=question, context=context)

    def ask_about(self, question: str, newsletter_content: str | None, articles: list[Article]) -> str:
        """Prompt for questions about one newsletter and the articles behind it."""
        return self.render(
            'ask_about.md',
            question=question,
            newsletter_content=newsletter_content,
            articles=articles,
        )

    def search_analysis(self, question: str, has_context: bool, now: datetime | None = None) -> str:
        year = (now or datetime.now(UTC)).year
        return self.render('search_analysis.md', question=question, has_context=has_context, year=year)

    def search_answer(self, question: str, context: str, search: SearchResponse | None = None) -> str:
        return self.render('search_answer.md', question=question, context=context, search=search)


_prompt_library: PromptLibrary | None = None


def get_prompt_library() -> PromptLibrary:
    """Get the shared prompt library."""
    global _prompt_library
    if _prompt_library is None:
        _prompt_library = PromptLibrary()
    return _prompt_library
