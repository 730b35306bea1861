import asyncio
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import click

from .archive import ArchiveError, NewsletterArchive, NewsletterRecord, archive_title
from .config import Settings, get_settings, validate_config
from .digest import WeeklyDigest, filter_current_week, iso_week
from .ingest.articles import Article
from .ingest.custom import CustomArticleImporter
from .ingest.custom_store import CustomArticleStore
from .ingest.search import BraveSearchClient
from .ingest.source_store import FeedSourceStore, SourceStoreError
from .ingest.sources import FetchReport, gather_articles, validate_feed
from .logging import StageTimer, get_logger, log_error, log_feed_stage, newsletter_context, setup_logging
from .models.llm_client import LLMClient, LLMError, create_llm_client
from .processing.relevance import filter_student_relevant
from .processing.scoring import get_scorer
from .processing.selection import rank_articles, select_top
from .qa import ARCHIVE_QUERY_LIMIT, ArchiveQA, build_archive_context
from .render import NewsletterError, NewsletterRenderer, markdown_to_html
from .ui import FriendlyUI, init_ui

logger = get_logger(__name__)


@dataclass
class PipelineResult:
    """Outcome of one fetch-to-newsletter run."""
    digest: WeeklyDigest
    report: FetchReport
    selected: list[Article] = field(default_factory=list)
    content: str = ""
    archive_id: int | None = None


@dataclass
class AutoGenerateResult:
    """Outcome of the weekly automatic generation."""
    success: bool
    message: str
    existing: bool = False
    archive_id: int | None = None
    content: str | None = None


def create_generator(route: str, settings: Settings) -> LLMClient | None:
    """LLM client for a route, or None when no provider is configured."""
    try:
        return create_llm_client(route, mock=settings.mock)
    except LLMError as e:
        logger.warning("Text generation unavailable", route=route, error=str(e))
        return None


async def run_pipeline(
    settings: Settings,
    ui: FriendlyUI | None = None,
    renderer: NewsletterRenderer | None = None,
    archive: NewsletterArchive | None = None,
    now: datetime | None = None,
    language: str | None = None,
    save: bool = False,
    custom_articles: list[Article] | None = None,
) -> PipelineResult:
    """Run the complete newsletter generation pipeline.

    Args:
        settings: The application settings.
        ui: Optional friendly UI instance.
        renderer: Renderer to draft with; built from settings when omitted.
        archive: Archive for saving; built from settings when omitted.
        now: Reference time for the week and recency scoring.
        language: Newsletter language, defaults to the configured one.
        save: Whether to store the result in the archive.
        custom_articles: Imported articles; read from the custom article
            store when omitted.

    Returns:
        Pipeline result with the generated newsletter markdown.
    """
    language = language or settings.language
    now = now or datetime.now(UTC)
    digest = WeeklyDigest.for_date(now, language)
    context = newsletter_context(digest.week_number, digest.year, language)

    with StageTimer("full_pipeline", logger, **context):
        # Stage 1: Article ingestion
        sources = FeedSourceStore(settings.sources_path).enabled()
        if ui:
            with ui.stage("Fetching RSS feeds", "📰") as (progress, task):
                report = await gather_articles(sources, settings, mock=settings.mock, now=now)
                ui.complete_progress(progress, task, f"Found {len(report.articles)} articles")
            ui.show_source_results(report)
        else:
            report = await gather_articles(sources, settings, mock=settings.mock, now=now)

        if custom_articles is None:
            custom_articles = CustomArticleStore(settings.custom_articles_path).list_articles()
        pool = report.articles + custom_articles

        # Only this week's articles belong in the digest, unless the week is still empty
        week_articles = filter_current_week(pool, now)
        logger.info(**log_feed_stage(
            stage="current_week", input_count=len(pool), output_count=len(week_articles),
            custom_articles=len(custom_articles), **context,
        ))
        if not week_articles:
            logger.warning("No articles from the current week, using all recent articles", **context)
            week_articles = pool
        digest.add_items(week_articles)

        # Stage 2: Scoring and top-N selection
        selected = select_top(digest.items, settings.max_articles, now=now)
        if ui:
            ui.show_article_table(rank_articles(selected, now=now), language)

        # Stage 3: Newsletter generation
        renderer = renderer or NewsletterRenderer(settings, create_generator("newsletter", settings))
        if ui:
            with ui.stage("Generating newsletter", "📝") as (progress, task):
                content = await renderer.generate_with_fallback(digest, selected, language)
                ui.complete_progress(progress, task, "Newsletter drafted")
        else:
            content = await renderer.generate_with_fallback(digest, selected, language)
        digest.set_generated_content(content)

        result = PipelineResult(digest=digest, report=report, selected=selected, content=content)

        if save:
            archive = archive or NewsletterArchive(settings.archive_path)
            result.archive_id = await archive.save(NewsletterRecord(
                week_number=digest.week_number,
                year=digest.year,
                title=archive_title(digest.week_number, language),
                content=content,
                html_content=markdown_to_html(content),
                date_range=digest.date_range,
                article_count=len(selected),
                language=language,
            ))

    return result


async def auto_generate(
    settings: Settings,
    archive: NewsletterArchive | None = None,
    renderer: NewsletterRenderer | None = None,
    now: datetime | None = None,
    language: str | None = None,
) -> AutoGenerateResult:
    """Generate and archive this week's newsletter unless it already exists."""
    language = language or settings.language
    now = now or datetime.now(UTC)
    archive = archive or NewsletterArchive(settings.archive_path)
    is_german = language == "de"
    week_label = "KW" if is_german else "Week"

    week, year = iso_week(now)
    existing = await archive.find_week(week, year, language)
    if existing is not None:
        message = (
            f"Newsletter für {week_label} {week}/{year} bereits vorhanden"
            if is_german else
            f"Newsletter for {week_label} {week}/{year} already exists"
        )
        logger.info("Newsletter already archived", **newsletter_context(week, year, language))
        return AutoGenerateResult(
            success=True, message=message, existing=True,
            archive_id=existing.id, content=existing.content,
        )

    try:
        result = await run_pipeline(
            settings, renderer=renderer, archive=archive, now=now, language=language, save=True
        )
    except (NewsletterError, ArchiveError) as e:
        logger.error(**log_error(e, context="auto_generate", **newsletter_context(week, year, language)))
        raise

    message = (
        f"Newsletter für {week_label} {week}/{year} erfolgreich generiert und gespeichert"
        if is_german else
        f"Newsletter for {week_label} {week}/{year} successfully generated and saved"
    )
    return AutoGenerateResult(
        success=True, message=message, archive_id=result.archive_id, content=result.content
    )


def _configure_logging(log_level: str, verbose: bool) -> None:
    # Library and module logs stay hidden unless in verbose mode
    setup_logging(log_level="INFO" if verbose else log_level, json_logging=False, quiet=not verbose)


@click.group()
@click.option("--mock", is_flag=True, help="Use mock data and LLM clients")
@click.option("--language", type=click.Choice(["de", "en"]), help="Newsletter language")
@click.option("--log-level", default="ERROR", help="Log level")
@click.option("--verbose", is_flag=True, help="Show detailed progress information")
@click.pass_context
def cli(ctx, mock, language, log_level, verbose):
    """LINKIT Weekly - curate and generate the weekly AI newsletter."""
    _configure_logging(log_level, verbose)

    settings = get_settings()
    if mock:
        settings.mock = True
    if language:
        settings.language = language

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["ui"] = init_ui(verbose=verbose)


def _run(ui: FriendlyUI, coro):
    """Run a coroutine, reporting failures and exiting non-zero."""
    try:
        return asyncio.run(coro)
    except Exception as e:
        logger.error("CLI execution failed", error=str(e))
        ui.error(str(e))
        sys.exit(1)


def _require_valid_config(settings: Settings, ui: FriendlyUI) -> None:
    if not validate_config(settings):
        ui.error("Configuration validation failed")
        sys.exit(1)


@cli.command()
@click.option("--limit", type=int, help="Number of ranked articles to show")
@click.option("--this-week", is_flag=True, help="Only show articles from the current calendar week")
@click.option("--students", is_flag=True, help="Only show articles relevant for students")
@click.pass_context
def fetch(ctx, limit, this_week, students):
    """Fetch enabled feeds and show the ranked articles."""
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    store = FeedSourceStore(settings.sources_path)
    if not store.has_enabled() and not settings.mock:
        ui.warning("No enabled feed sources. Add one with 'linkit-weekly sources add URL'.")
        return

    async def _fetch():
        with ui.stage("Fetching RSS feeds", "📰") as (progress, task):
            report = await gather_articles(store.enabled(), settings, mock=settings.mock)
            ui.complete_progress(progress, task, f"Found {len(report.articles)} articles")
        return report

    report = _run(ui, _fetch())
    ui.show_source_results(report)

    articles = report.articles
    if this_week:
        articles = filter_current_week(articles)
    if students:
        articles = filter_student_relevant(articles)

    ranked = rank_articles(articles, get_scorer())
    top_ids = {item.article.article_id for item in ranked[:settings.max_articles]}
    ui.show_article_table(ranked[:limit] if limit else ranked, settings.language, selected=top_ids)


@cli.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the newsletter to a file instead of the terminal",
)
@click.option("--save", is_flag=True, help="Store the newsletter in the archive")
@click.option("--max-articles", type=int, help="Maximum articles to include")
@click.pass_context
def generate(ctx, output, save, max_articles):
    """Fetch, rank and draft this week's newsletter."""
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    if max_articles:
        settings.max_articles = max_articles
    _require_valid_config(settings, ui)

    ui.show_banner()
    result = _run(ui, run_pipeline(settings, ui=ui, save=save))

    renderer = NewsletterRenderer(settings)
    if output:
        renderer.save_newsletter(result.content, output)
    else:
        ui.show_markdown(result.content, title=result.digest.week_label)

    ui.show_final_summary(
        week_label=result.digest.week_label,
        total_articles=len(result.report.articles),
        selected_articles=len(result.selected),
        archive_id=result.archive_id,
        output_file=str(output) if output else None,
    )


@cli.command("auto-generate")
@click.pass_context
def auto_generate_command(ctx):
    """Generate and archive this week's newsletter if it does not exist yet."""
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    _require_valid_config(settings, ui)

    result = _run(ui, auto_generate(settings))
    if result.existing:
        ui.warning(result.message)
    else:
        ui.success(result.message)


@cli.group()
def sources():
    """Manage RSS feed sources."""


@sources.command("list")
@click.pass_context
def sources_list(ctx):
    """List configured feed sources."""
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    ui.show_sources(FeedSourceStore(settings.sources_path).list_sources())


@sources.command("add")
@click.argument("url")
@click.option("--name", default="", help="Display name of the source")
@click.option("--validate/--no-validate", default=True, help="Fetch the feed once before adding it")
@click.pass_context
def sources_add(ctx, url, name, validate):
    """Add a feed source."""
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    store = FeedSourceStore(settings.sources_path)

    if validate:
        verdict = _run(ui, validate_feed(url, name or url, settings))
        if not verdict.is_valid:
            ui.error(verdict.message)
            sys.exit(1)
        ui.info(verdict.message)

    try:
        source = store.add(url, name)
    except SourceStoreError as e:
        ui.error(str(e))
        sys.exit(1)
    ui.success(f"Added {source.name} ({source.url})")


@sources.command("remove")
@click.argument("url")
@click.pass_context
def sources_remove(ctx, url):
    """Remove a feed source."""
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    if FeedSourceStore(settings.sources_path).remove(url):
        ui.success(f"Removed {url}")
    else:
        ui.warning(f"No source with URL {url}")


def _toggle_source(ctx, url: str, enabled: bool) -> None:
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    if FeedSourceStore(settings.sources_path).toggle(url, enabled):
        ui.success(f"{'Enabled' if enabled else 'Disabled'} {url}")
    else:
        ui.warning(f"No source with URL {url}")


@sources.command("enable")
@click.argument("url")
@click.pass_context
def sources_enable(ctx, url):
    """Enable a feed source."""
    _toggle_source(ctx, url, True)


@sources.command("disable")
@click.argument("url")
@click.pass_context
def sources_disable(ctx, url):
    """Disable a feed source."""
    _toggle_source(ctx, url, False)


@cli.group()
def archive():
    """Browse archived newsletters."""


@archive.command("search")
@click.option("--year", type=int, help="Filter by year")
@click.option("--week", type=int, help="Filter by ISO week number")
@click.option("--text", help="Search title and content")
@click.option("--limit", type=int, default=20, show_default=True)
@click.pass_context
def archive_search(ctx, year, week, text, limit):
    """Search the newsletter archive."""
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    store = NewsletterArchive(settings.archive_path)
    records = _run(ui, store.query(year=year, week=week, text=text, limit=limit))
    if not records:
        ui.warning("No newsletters found")
        return
    ui.show_archive(records)


@archive.command("show")
@click.argument("newsletter_id", type=int)
@click.pass_context
def archive_show(ctx, newsletter_id):
    """Show one archived newsletter."""
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    record = _run(ui, NewsletterArchive(settings.archive_path).get(newsletter_id))
    if record is None:
        ui.error(f"Newsletter {newsletter_id} not found")
        sys.exit(1)
    ui.show_markdown(record.content, title=record.title)


@cli.command()
@click.argument("question")
@click.option("--year", type=int, help="Only use newsletters from this year")
@click.option("--week", type=int, help="Only use newsletters from this week")
@click.option("--search", "use_search", is_flag=True, help="Add web search results when helpful")
@click.pass_context
def ask(ctx, question, year, week, use_search):
    """Ask a question about the newsletter archive."""
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    generator = create_generator("qa", settings)
    if generator is None:
        ui.error("No LLM provider configured")
        sys.exit(1)

    qa = ArchiveQA(
        NewsletterArchive(settings.archive_path),
        generator,
        search_client=BraveSearchClient(settings=settings),
        analysis_generator=create_generator("search_analysis", settings),
    )

    async def _ask():
        if not use_search:
            return await qa.ask(question, year=year, week=week, language=settings.language)
        records = await qa.archive.query(year=year, week=week, limit=ARCHIVE_QUERY_LIMIT)
        return await qa.ask_with_search(question, build_archive_context(records))

    answer = _run(ui, _ask())
    ui.show_markdown(answer.answer, title="Antwort" if settings.language == "de" else "Answer")
    if answer.related:
        ui.show_archive(answer.related)
    if answer.search_performed:
        ui.info(f"Web search used: {', '.join(answer.search_queries)}")


@cli.command("import-article")
@click.argument("url")
@click.option("--title", help="Title to use instead of the page title")
@click.option("--description", help="Description to use instead of the page description")
@click.option("--save/--no-save", default=True, help="Keep the article for the next newsletter")
@click.pass_context
def import_article(ctx, url, title, description, save):
    """Import a single article by URL and add it to this week's pool."""
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    importer = CustomArticleImporter(settings)
    article = _run(ui, importer.import_article(url, title=title, description=description))
    if save:
        CustomArticleStore(settings.custom_articles_path).add(article)
    ui.show_article_table(rank_articles([article]), settings.language)
    ui.success(f"Imported {article.title}" + ("" if save else " (not saved)"))


@cli.group()
def imports():
    """Manage manually imported articles."""


@imports.command("list")
@click.pass_context
def imports_list(ctx):
    """List imported articles with their scores."""
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    articles = CustomArticleStore(settings.custom_articles_path).list_articles()
    if not articles:
        ui.info("No imported articles")
        return
    ui.show_article_table(rank_articles(articles), settings.language)


@imports.command("remove")
@click.argument("article_id")
@click.pass_context
def imports_remove(ctx, article_id):
    """Remove an imported article by its URL."""
    settings, ui = ctx.obj["settings"], ctx.obj["ui"]
    if CustomArticleStore(settings.custom_articles_path).remove(article_id):
        ui.success(f"Removed {article_id}")
    else:
        ui.warning(f"No imported article {article_id}")


if __name__ == "__main__":
    cli()
