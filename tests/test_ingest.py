"""Tests for the feed source store, manual imports and web search."""

import httpx
import orjson
import pytest

from linkit_weekly.ingest.articles import CUSTOM_SOURCE_NAME, Article
from linkit_weekly.ingest.custom import (
    CUSTOM_CATEGORY,
    CustomArticleImporter,
    PageMetadata,
    format_custom_content,
    parse_page_metadata,
)
from linkit_weekly.ingest.custom_store import CustomArticleStore
from linkit_weekly.ingest.search import BRAVE_SEARCH_URL, BraveSearchClient, SearchError
from linkit_weekly.ingest.source_store import FeedSourceStore, SourceStoreError, normalize_feed_url
from linkit_weekly.ingest.sources import gather_articles, generate_validation_result, validate_feed

ARTICLE_HTML = """
<html>
  <head>
    <title>Fallback Title</title>
    <meta property="og:title" content="Open Graph Title">
    <meta name="description" content="Page description">
    <meta property="og:image" content="https://example.com/image.png">
  </head>
  <body>
    <nav><p>Menu</p></nav>
    <article>
      <p>This is the first long paragraph of the article body with enough text.</p>
      <p>Short.</p>
      <p>This is the second long paragraph that also passes the length check.</p>
    </article>
  </body>
</html>
"""


class TestFeedSourceStore:
    """Test persisted feed sources."""

    def test_seeds_defaults(self, temp_dir):
        path = temp_dir / "sources.json"
        store = FeedSourceStore(path)

        assert path.exists()
        assert store.list_sources()
        assert store.has_enabled()
        assert any("the-decoder.de" in source.url for source in store.list_sources())

    def test_add_normalizes_decoder_url(self, temp_dir):
        store = FeedSourceStore(temp_dir / "sources.json")
        store.remove(store.list_sources()[0].url)

        source = store.add("https://the-decoder.de/")

        assert source.url == "https://the-decoder.de/feed/"
        assert source.name == "The Decoder"
        assert source.enabled

    def test_add_persists(self, temp_dir):
        path = temp_dir / "sources.json"
        store = FeedSourceStore(path)
        store.add("https://example.com/rss", name="Example")

        reloaded = FeedSourceStore(path)

        assert reloaded.get("https://example.com/rss").name == "Example"

    def test_add_rejects_duplicates_and_invalid(self, temp_dir):
        store = FeedSourceStore(temp_dir / "sources.json")
        store.add("https://example.com/rss", name="Example")

        with pytest.raises(SourceStoreError):
            store.add("https://example.com/rss", name="Again")
        with pytest.raises(SourceStoreError):
            store.add("not a url")

    def test_toggle_and_remove(self, temp_dir):
        store = FeedSourceStore(temp_dir / "sources.json")
        store.add("https://example.com/rss", name="Example")

        assert store.toggle("https://example.com/rss", False)
        assert store.get("https://example.com/rss") not in store.enabled()
        assert not store.toggle("https://missing.example.com", True)

        assert store.remove("https://example.com/rss")
        assert not store.remove("https://example.com/rss")

    def test_filter_by_name(self, temp_dir):
        store = FeedSourceStore(temp_dir / "sources.json")
        store.add("https://example.com/rss", name="Heise Online")
        assert [s.name for s in store.filter_by_name("heise")] == ["Heise Online"]

    def test_corrupt_file_restores_defaults(self, temp_dir):
        path = temp_dir / "sources.json"
        path.write_text("{not json")

        store = FeedSourceStore(path)

        assert store.list_sources()
        assert isinstance(orjson.loads(path.read_bytes()), list)

    def test_normalize_feed_url(self):
        assert normalize_feed_url("https://the-decoder.de") == "https://the-decoder.de/feed/"
        assert normalize_feed_url("https://the-decoder.de/feed/") == "https://the-decoder.de/feed/"
        assert normalize_feed_url(" https://example.com/rss ") == "https://example.com/rss"


class TestFeedValidation:
    """Test feed validation verdicts."""

    def test_valid_result(self, make_article):
        result = generate_validation_result([make_article("A")], "Example")
        assert result.is_valid
        assert result.message == "RSS feed for Example is valid - 1 articles found"

    def test_empty_result(self):
        result = generate_validation_result([], "Example")
        assert not result.is_valid
        assert "No valid articles" in result.message

    @pytest.mark.asyncio
    async def test_invalid_url(self, test_settings):
        result = await validate_feed("not a url", "Broken", test_settings)
        assert not result.is_valid
        assert result.message.startswith("RSS feed validation failed")

    @pytest.mark.asyncio
    async def test_mock_gathering(self, test_settings):
        report = await gather_articles([], test_settings, mock=True)

        assert len(report.articles) == 5
        assert report.source_counts == {"Mock": 5}
        dates = [a.pub_date for a in report.articles]
        assert dates == sorted(dates, reverse=True)

    @pytest.mark.asyncio
    async def test_mock_gathering_uses_reference_time(self, test_settings, now):
        report = await gather_articles([], test_settings, mock=True, now=now)

        assert report.articles[0].pub_date == now
        assert all(a.pub_date <= now for a in report.articles)


class TestCustomImport:
    """Test manual article imports."""

    def test_parse_page_metadata(self):
        metadata = parse_page_metadata(ARTICLE_HTML)

        assert metadata.title == "Open Graph Title"
        assert metadata.description == "Page description"
        assert metadata.image_url == "https://example.com/image.png"
        assert "first long paragraph" in metadata.content
        assert "second long paragraph" in metadata.content
        assert "Short." not in metadata.content
        assert "Menu" not in metadata.content

    def test_title_tag_fallback(self):
        assert parse_page_metadata("<html><head><title>Only Title</title></head></html>").title == "Only Title"

    def test_format_custom_content(self):
        content = format_custom_content("Titel", "Beschreibung", "Seitentext", "https://www.example.com/post")
        assert content == (
            "# Titel\n\n"
            "Beschreibung\n\n"
            "Seitentext\n\n"
            "**Quelle:** [www.example.com](https://www.example.com/post)"
        )

    def test_format_custom_content_skips_repeated_description(self):
        content = format_custom_content("Titel", "Gleich", "Gleich", "https://example.com/post")
        assert content.count("Gleich") == 1

    @pytest.mark.asyncio
    async def test_invalid_url_raises(self, test_settings):
        with pytest.raises(ValueError):
            await CustomArticleImporter(test_settings).import_article("example.com/no-scheme")

    @pytest.mark.asyncio
    async def test_import_uses_metadata(self, test_settings, now, monkeypatch):
        importer = CustomArticleImporter(test_settings)

        async def fake_fetch(url):
            return parse_page_metadata(ARTICLE_HTML)

        monkeypatch.setattr(importer, "fetch_metadata", fake_fetch)

        article = await importer.import_article("https://example.com/post", now=now)

        assert article.title == "Open Graph Title"
        assert article.description == "Page description"
        assert article.source_name == CUSTOM_SOURCE_NAME
        assert article.is_custom
        assert article.categories == [CUSTOM_CATEGORY]
        assert article.guid == "https://example.com/post"
        assert article.pub_date == now
        assert article.image_url == "https://example.com/image.png"
        assert article.content.startswith("# Open Graph Title\n\nPage description\n\n")
        assert article.content.endswith("\n\n**Quelle:** [example.com](https://example.com/post)")

    @pytest.mark.asyncio
    async def test_provided_values_win(self, test_settings, now, monkeypatch):
        importer = CustomArticleImporter(test_settings)

        async def fake_fetch(url):
            return PageMetadata(title="Scraped", description="Scraped description")

        monkeypatch.setattr(importer, "fetch_metadata", fake_fetch)

        article = await importer.import_article(
            "https://example.com/post", title="Eigener Titel", description="Eigene Beschreibung", now=now
        )

        assert article.title == "Eigener Titel"
        assert article.description == "Eigene Beschreibung"

    @pytest.mark.asyncio
    async def test_metadata_failure_uses_placeholders(self, test_settings, now, monkeypatch):
        import aiohttp

        importer = CustomArticleImporter(test_settings)

        async def failing_fetch(url):
            raise aiohttp.ClientError("connection refused")

        monkeypatch.setattr(importer, "fetch_metadata", failing_fetch)

        article = await importer.import_article("https://example.com/post", now=now)

        assert article.title == "Custom Article"
        assert article.description == "Manually imported article from https://example.com/post"


class TestCustomArticleStore:
    """Test persisted manual imports."""

    def test_missing_file_is_empty(self, temp_dir):
        store = CustomArticleStore(temp_dir / "custom.json")
        assert store.list_articles() == []
        assert not (temp_dir / "custom.json").exists()

    def test_add_persists_with_markdown_body(self, temp_dir, make_article):
        path = temp_dir / "custom.json"
        article = make_article("Eigener Fund", content="# Eigener Fund\n\n**Quelle:** [example.com](https://example.com)")
        CustomArticleStore(path).add(article)

        reloaded = CustomArticleStore(path).list_articles()

        assert len(reloaded) == 1
        assert reloaded[0].title == "Eigener Fund"
        assert reloaded[0].content == article.content
        assert reloaded[0].pub_date == article.pub_date
        assert reloaded[0].source_name == CUSTOM_SOURCE_NAME

    def test_reimport_replaces_earlier_entry(self, temp_dir, make_article):
        store = CustomArticleStore(temp_dir / "custom.json")
        store.add(make_article("Erster Titel", link="https://example.com/post"))
        store.add(make_article("Neuer Titel", link="https://example.com/post"))

        assert [a.title for a in store.list_articles()] == ["Neuer Titel"]

    def test_remove(self, temp_dir, make_article):
        store = CustomArticleStore(temp_dir / "custom.json")
        article = store.add(make_article("Eigener Fund"))

        assert store.get(article.article_id) is article
        assert store.remove(article.article_id)
        assert not store.remove(article.article_id)
        assert CustomArticleStore(temp_dir / "custom.json").list_articles() == []

    def test_corrupt_file_is_empty(self, temp_dir):
        path = temp_dir / "custom.json"
        path.write_text("[{\"title\": 1}")
        assert CustomArticleStore(path).list_articles() == []

    def test_naive_dates_are_read_as_utc(self, now):
        data = Article(title="A", link="https://example.com/a", pub_date=now).to_dict()
        data["pub_date"] = now.replace(tzinfo=None).isoformat()
        assert Article.from_dict(data).pub_date == now


class TestBraveSearch:
    """Test the web search client."""

    @pytest.mark.asyncio
    async def test_missing_key_raises(self, test_settings):
        client = BraveSearchClient(settings=test_settings.model_copy(update={"brave_api_key": None}))
        assert not client.available
        with pytest.raises(SearchError):
            await client.search("OpenAI")

    @pytest.mark.asyncio
    async def test_only_first_query_is_sent(self, test_settings):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={
                "web": {"results": [
                    {"title": "Result", "description": "About OpenAI", "url": "https://example.com/r"},
                ]}
            })

        client = BraveSearchClient(api_key="test-key", settings=test_settings,
                                   transport=httpx.MockTransport(handler))

        response = await client.search_queries(["first query", "second query"])

        assert len(requests) == 1
        assert requests[0].url.params["q"] == "first query"
        assert requests[0].headers["X-Subscription-Token"] == "test-key"
        assert str(requests[0].url).startswith(BRAVE_SEARCH_URL)
        assert response.query == "first query"
        assert response.skipped_queries == ["second query"]
        assert response.total_results == 1
        assert response.results[0].url == "https://example.com/r"

    @pytest.mark.asyncio
    async def test_http_error_raises(self, test_settings):
        client = BraveSearchClient(
            api_key="test-key",
            settings=test_settings,
            transport=httpx.MockTransport(lambda request: httpx.Response(429)),
        )
        with pytest.raises(SearchError):
            await client.search("OpenAI")

    @pytest.mark.asyncio
    async def test_no_queries_raises(self, test_settings):
        client = BraveSearchClient(api_key="test-key", settings=test_settings)
        with pytest.raises(SearchError):
            await client.search_queries([])
