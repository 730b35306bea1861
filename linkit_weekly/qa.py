"""
Question answering over the newsletter archive.

Questions can be answered from archived newsletters, from a single
newsletter with its source articles, or with additional web search results.
"""

from dataclasses import dataclass, field

from .archive import NewsletterArchive, NewsletterRecord
from .ingest.articles import Article
from .ingest.search import BraveSearchClient, SearchError, SearchResponse
from .logging import get_logger
from .models.llm_client import TextGenerator
from .prompts import PromptLibrary, get_prompt_library

logger = get_logger(__name__)

ARCHIVE_QUERY_LIMIT = 15
CONTEXT_CONTENT_LIMIT = 2000
RELATED_LIMIT = 5
CONTEXT_SEPARATOR = "\n\n---\n\n"

CURRENT_EVENT_KEYWORDS = ('latest', 'today', 'current', 'recent', 'new', 'aktuell', 'neueste', 'heute')


class QAError(Exception):
    """Raised when a question cannot be answered."""


@dataclass
class QAAnswer:
    """Answer to an archive question."""
    answer: str
    related: list[NewsletterRecord] = field(default_factory=list)
    search_performed: bool = False
    search_queries: list[str] = field(default_factory=list)
    search: SearchResponse | None = None


@dataclass
class SearchAnalysis:
    """Whether a question benefits from web search, and with which queries."""
    needs_search: bool
    queries: list[str] = field(default_factory=list)
    reasoning: str = ""


def build_archive_context(records: list[NewsletterRecord]) -> str:
    """Concatenate archived newsletters into a prompt context."""
    return CONTEXT_SEPARATOR.join(
        f"Newsletter {record.year}/KW{record.week_number}: {record.title}\n"
        f"{record.content[:CONTEXT_CONTENT_LIMIT]}"
        for record in records
    )


def heuristic_analysis(question: str) -> SearchAnalysis:
    """Assume search is needed for questions about current events."""
    lowered = question.lower()
    needs_search = any(keyword in lowered for keyword in CURRENT_EVENT_KEYWORDS)
    return SearchAnalysis(
        needs_search=needs_search,
        queries=[question] if needs_search else [],
        reasoning="Fallback analysis due to AI service error",
    )


def parse_search_analysis(content: str) -> SearchAnalysis:
    """Interpret the generator's SEARCH_NEEDED / NO_SEARCH_NEEDED verdict."""
    if "NO_SEARCH_NEEDED" in content or "SEARCH_NEEDED" not in content:
        return SearchAnalysis(False, [], "AI determined existing context is sufficient")

    queries = [
        line.strip()[len("QUERY:"):].strip()
        for line in content.splitlines()
        if line.strip().startswith("QUERY:")
    ]
    queries = [query for query in queries if query][:1]
    return SearchAnalysis(True, queries, "AI determined web search would be helpful")


def _require_question(question: str) -> str:
    question = (question or "").strip()
    if not question:
        raise ValueError("Question must not be empty")
    return question


class ArchiveQA:
    """Answers questions using archived newsletters as context."""

    def __init__(
        self,
        archive: NewsletterArchive,
        generator: TextGenerator,
        prompts: PromptLibrary | None = None,
        search_client: BraveSearchClient | None = None,
        analysis_generator: TextGenerator | None = None,
    ):
        self.archive = archive
        self.generator = generator
        self.prompts = prompts or get_prompt_library()
        self.search_client = search_client
        self.analysis_generator = analysis_generator or generator

    async def _answer(self, prompt: str) -> str:
        try:
            answer = await self.generator.generate(prompt)
        except Exception as e:
            raise QAError(f"Answer generation failed: {e}") from e

        if not answer or not answer.strip():
            raise QAError("Answer generation returned no content")
        return answer.strip()

    async def ask(
        self,
        question: str,
        year: int | None = None,
        week: int | None = None,
        language: str = "de",
    ) -> QAAnswer:
        """Answer a question from newsletters in the archive.

        Raises:
            ValueError: If the question is empty
            QAError: If no answer could be generated
        """
        question = _require_question(question)

        records = await self.archive.query(year=year, week=week, limit=ARCHIVE_QUERY_LIMIT)
        if records:
            context = build_archive_context(records)
        else:
            context = f"Newsletter-Archive durchsucht. {len(records)} relevante Newsletter gefunden."

        logger.info("Answering archive question", newsletters=len(records), year=year, week=week)
        answer = await self._answer(self.prompts.archive_qa(question, context, language))
        return QAAnswer(answer=answer, related=records[:RELATED_LIMIT])

    async def ask_about_newsletter(
        self,
        question: str,
        articles: list[Article],
        newsletter_content: str | None = None,
    ) -> QAAnswer:
        """Answer a question about one newsletter and the articles behind it."""
        question = _require_question(question)
        prompt = self.prompts.ask_about(question, newsletter_content, articles)
        return QAAnswer(answer=await self._answer(prompt))

    async def analyze_question(self, question: str, context: str = "") -> SearchAnalysis:
        """Decide whether web search would improve the answer."""
        prompt = self.prompts.search_analysis(question, has_context=bool(context))
        try:
            content = await self.analysis_generator.generate(prompt)
        except Exception as e:
            logger.warning("Question analysis failed, using keyword heuristic", error=str(e))
            return heuristic_analysis(question)

        if not content or not content.strip():
            return heuristic_analysis(question)
        return parse_search_analysis(content)

    async def ask_with_search(self, question: str, context: str = "") -> QAAnswer:
        """Answer a question, adding web search results when they help.

        Only the first search query is sent. Search failures are logged and
        the answer is generated from the context alone.
        """
        question = _require_question(question)
        analysis = await self.analyze_question(question, context)

        search: SearchResponse | None = None
        if analysis.needs_search and analysis.queries:
            if self.search_client is None or not self.search_client.available:
                logger.warning("Web search requested but not configured")
            else:
                try:
                    search = await self.search_client.search_queries(analysis.queries)
                except SearchError as e:
                    logger.warning("Web search failed, answering without it", error=str(e))

        prompt = self.prompts.search_answer(question, context or "No additional context provided.", search)
        answer = await self._answer(prompt)

        return QAAnswer(
            answer=answer,
            search_performed=bool(search and search.total_results),
            search_queries=[search.query] if search else [],
            search=search,
        )
