"""Tests for the pipeline, weekly auto-generation and the CLI."""

from datetime import UTC, datetime, timedelta

import pytest
from click.testing import CliRunner

from linkit_weekly.archive import NewsletterArchive, NewsletterRecord
from linkit_weekly.digest import iso_week
from linkit_weekly.ingest.articles import CUSTOM_SOURCE_NAME
from linkit_weekly.ingest.custom import CustomArticleImporter, PageMetadata
from linkit_weekly.ingest.custom_store import CustomArticleStore
from linkit_weekly.ingest.sources import FetchReport
from linkit_weekly.models.llm_client import MockLLMClient, create_llm_client
from linkit_weekly.orchestrator import auto_generate, cli, create_generator, run_pipeline
from linkit_weekly.processing.scoring import ArticleScorer, ScoringWeights
from linkit_weekly.prompts import PromptLibrary
from linkit_weekly.render import PROMO_MARKER, NewsletterRenderer


@pytest.fixture
def mock_settings(test_settings):
    return test_settings.model_copy(update={"mock": True})


@pytest.fixture
def archive(temp_dir):
    return NewsletterArchive(temp_dir / "archive.db")


class TestPipeline:
    """Test the fetch-to-newsletter pipeline."""

    @pytest.mark.asyncio
    async def test_run_pipeline_with_mock_articles(self, mock_settings, fake_generator, now):
        generator = fake_generator("# Newsletter KW 16")
        renderer = NewsletterRenderer(mock_settings, generator, PromptLibrary())

        result = await run_pipeline(mock_settings, renderer=renderer, now=now)

        # Mock articles are 0, 1, 2, 3 and 5 days old; three fall into KW 16
        assert result.digest.week_number == 16
        assert len(result.report.articles) == 5
        assert len(result.digest.items) == 3
        assert len(result.selected) == 3
        assert result.content.startswith("# Newsletter KW 16")
        assert result.digest.generated_content == result.content
        assert result.archive_id is None
        assert "**ARTIKEL 3:**" in generator.prompts[0]
        assert "**ARTIKEL 4:**" not in generator.prompts[0]

    @pytest.mark.asyncio
    async def test_digest_only_holds_current_week_on_monday(self, mock_settings, fake_generator):
        monday = datetime(2025, 4, 14, 9, tzinfo=UTC)
        renderer = NewsletterRenderer(mock_settings, fake_generator(), PromptLibrary())

        result = await run_pipeline(mock_settings, renderer=renderer, now=monday)

        assert result.digest.week_number == 16
        assert len(result.digest.items) == 1
        assert all(iso_week(a.pub_date) == (16, 2025) for a in result.digest.items)
        assert result.selected == result.digest.items

    @pytest.mark.asyncio
    async def test_empty_week_falls_back_to_recent_articles(
        self, mock_settings, fake_generator, make_article, now, monkeypatch
    ):
        last_week = [make_article("KI im Studium", days_old=5), make_article("Robotik News", days_old=6)]

        async def fake_gather(sources, settings, mock=False, now=None):
            return FetchReport(articles=list(last_week), source_counts={"Example": 2})

        monkeypatch.setattr("linkit_weekly.orchestrator.gather_articles", fake_gather)
        renderer = NewsletterRenderer(mock_settings, fake_generator(), PromptLibrary())

        result = await run_pipeline(mock_settings, renderer=renderer, now=now, custom_articles=[])

        assert result.digest.items == last_week

    @pytest.mark.asyncio
    async def test_mock_articles_follow_reference_time(self, mock_settings, fake_generator, now):
        renderer = NewsletterRenderer(mock_settings, fake_generator(), PromptLibrary())

        result = await run_pipeline(mock_settings, renderer=renderer, now=now)

        assert max(a.pub_date for a in result.report.articles) == now
        assert min(a.pub_date for a in result.report.articles) == now - timedelta(days=5)

    @pytest.mark.asyncio
    async def test_imported_articles_join_the_digest(self, mock_settings, fake_generator, make_article, now):
        imported = make_article(
            "ChatGPT and OpenAI push new AI milestone",
            link="https://blog.example.com/milestone",
            description="A new model was released.",
            source_name=CUSTOM_SOURCE_NAME,
        )
        CustomArticleStore(mock_settings.custom_articles_path).add(imported)
        generator = fake_generator()
        renderer = NewsletterRenderer(mock_settings, generator, PromptLibrary())

        result = await run_pipeline(mock_settings, renderer=renderer, now=now)

        stored = [a for a in result.digest.items if a.is_custom]
        assert [a.link for a in stored] == [imported.link]
        assert stored[0] in result.selected
        assert ArticleScorer(weights=ScoringWeights()).score_article(stored[0], now).source_score == 2
        assert imported.title in generator.prompts[0]

    @pytest.mark.asyncio
    async def test_run_pipeline_respects_max_articles(self, mock_settings, fake_generator, archive, now):
        settings = mock_settings.model_copy(update={"max_articles": 2})
        renderer = NewsletterRenderer(settings, fake_generator(), PromptLibrary())

        result = await run_pipeline(settings, renderer=renderer, archive=archive, now=now, save=True)

        assert len(result.selected) == 2
        stored = await archive.get(result.archive_id)
        assert stored.article_count == 2
        assert stored.html_content

    @pytest.mark.asyncio
    async def test_generation_failure_uses_fallback(self, mock_settings, fake_generator, now):
        renderer = NewsletterRenderer(mock_settings, fake_generator(error=RuntimeError("down")), PromptLibrary())

        result = await run_pipeline(mock_settings, renderer=renderer, now=now)

        assert result.content.startswith("# 📬 LINKIT WEEKLY KW 16")
        assert PROMO_MARKER not in result.content


class TestAutoGenerate:
    """Test once-per-week generation."""

    @pytest.mark.asyncio
    async def test_generates_then_reports_existing(self, mock_settings, fake_generator, archive, now):
        renderer = NewsletterRenderer(mock_settings, fake_generator("Diese Woche"), PromptLibrary())

        first = await auto_generate(mock_settings, archive=archive, renderer=renderer, now=now)
        second = await auto_generate(mock_settings, archive=archive, renderer=renderer, now=now)

        assert first.success and not first.existing
        assert first.message == "Newsletter für KW 16/2025 erfolgreich generiert und gespeichert"
        assert second.existing
        assert second.message == "Newsletter für KW 16/2025 bereits vorhanden"
        assert second.archive_id == first.archive_id
        assert second.content == first.content
        assert len(await archive.query(year=2025, week=16)) == 1

    @pytest.mark.asyncio
    async def test_english_messages(self, mock_settings, fake_generator, archive, now):
        await archive.save(NewsletterRecord(
            week_number=16, year=2025, title="LINKIT WEEKLY Week 16", content="Old",
            date_range="04/14/2025–04/20/2025", language="en",
        ))

        result = await auto_generate(mock_settings, archive=archive, now=now, language="en")

        assert result.existing
        assert result.message == "Newsletter for Week 16/2025 already exists"

    @pytest.mark.asyncio
    async def test_other_language_is_generated(self, mock_settings, fake_generator, archive, now):
        await archive.save(NewsletterRecord(
            week_number=16, year=2025, title="LINKIT WEEKLY KW 16", content="Alt",
            date_range="14.04.2025–20.04.2025", language="de",
        ))
        renderer = NewsletterRenderer(mock_settings, fake_generator("This week"), PromptLibrary())

        result = await auto_generate(mock_settings, archive=archive, renderer=renderer, now=now, language="en")

        assert not result.existing
        assert result.message == "Newsletter for Week 16/2025 successfully generated and saved"


class TestGenerators:
    """Test LLM client construction."""

    def test_mock_client(self, mock_settings):
        assert isinstance(create_generator("newsletter", mock_settings), MockLLMClient)

    def test_missing_keys_return_none(self, test_settings, monkeypatch):
        monkeypatch.setattr("linkit_weekly.models.llm_client.get_settings", lambda: test_settings.model_copy(
            update={"openai_api_key": None, "google_ai_api_key": None}
        ))
        assert create_generator("newsletter", test_settings) is None

    @pytest.mark.asyncio
    async def test_mock_search_analysis(self):
        client = create_llm_client("search_analysis", mock=True)
        assert await client.generate("Was ist neu?") == "NO_SEARCH_NEEDED"

    @pytest.mark.asyncio
    async def test_mock_generation(self):
        text = await create_llm_client("newsletter", mock=True).generate("Schreibe den Newsletter")
        assert text.startswith("Mock response (newsletter)")


class TestCli:
    """Test the command line interface."""

    @pytest.fixture(autouse=True)
    def isolated_settings(self, test_settings, monkeypatch):
        monkeypatch.setattr("linkit_weekly.orchestrator.get_settings", lambda: test_settings)
        return test_settings

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("fetch", "generate", "auto-generate", "sources", "archive", "ask", "import-article", "imports"):
            assert command in result.output

    def test_sources_list(self):
        result = CliRunner().invoke(cli, ["--mock", "sources", "list"])
        assert result.exit_code == 0
        assert "decoder" in result.output.lower()

    def test_archive_search_empty(self):
        result = CliRunner().invoke(cli, ["--mock", "archive", "search", "--year", "1999"])
        assert result.exit_code == 0
        assert "No newsletters found" in result.output

    def test_generate_to_file(self, temp_dir):
        output = temp_dir / "newsletter.md"
        result = CliRunner().invoke(cli, ["--mock", "generate", "-o", str(output)])
        assert result.exit_code == 0, result.output
        assert output.read_text(encoding="utf-8")

    def test_import_article_is_stored_for_the_pipeline(self, isolated_settings, monkeypatch):
        async def fake_fetch(self, url):
            return PageMetadata(title="Neues KI-Tool für Studierende", description="Hilft beim Lernen")

        monkeypatch.setattr(CustomArticleImporter, "fetch_metadata", fake_fetch)

        result = CliRunner().invoke(cli, ["--mock", "import-article", "https://example.com/tool"])

        assert result.exit_code == 0, result.output
        stored = CustomArticleStore(isolated_settings.custom_articles_path).list_articles()
        assert [a.title for a in stored] == ["Neues KI-Tool für Studierende"]
        assert stored[0].is_custom

        removed = CliRunner().invoke(cli, ["--mock", "imports", "remove", "https://example.com/tool"])
        assert removed.exit_code == 0
        assert not CustomArticleStore(isolated_settings.custom_articles_path).list_articles()

    def test_import_article_without_saving(self, isolated_settings, monkeypatch):
        async def fake_fetch(self, url):
            return PageMetadata(title="Nur anschauen")

        monkeypatch.setattr(CustomArticleImporter, "fetch_metadata", fake_fetch)

        result = CliRunner().invoke(cli, ["--mock", "import-article", "--no-save", "https://example.com/look"])

        assert result.exit_code == 0, result.output
        assert not isolated_settings.custom_articles_path.exists()
