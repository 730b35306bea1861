"""Tests for feed entry variants, text cleaning and normalization."""

from datetime import UTC, datetime

from linkit_weekly.ingest.entries import AtomEntry, RssItem, UnknownEntry, entry_from_feedparser
from linkit_weekly.ingest.sources import FeedFetcher
from linkit_weekly.processing.normalize import normalize_item, normalize_items, resolve_pub_date
from linkit_weekly.processing.text_utils import canonical_title, clean_rss_text, contains_any
from linkit_weekly.utils import is_valid_url, parse_date_string

RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example Feed</title>
    <link>https://example.com</link>
    <description>Example</description>
    <item>
      <title>KI im Studium</title>
      <link>https://example.com/ki-im-studium</link>
      <description>Wie &lt;b&gt;Studierende&lt;/b&gt; KI nutzen</description>
      <pubDate>Wed, 16 Apr 2025 10:00:00 GMT</pubDate>
      <guid>ki-im-studium-1</guid>
    </item>
    <item>
      <title></title>
      <link>https://example.com/empty</link>
    </item>
  </channel>
</rss>
"""


class TestCleanRssText:
    """Test feed text cleaning."""

    def test_strips_tags_and_whitespace(self):
        assert clean_rss_text("<p>Hello   <b>world</b></p>\n\n") == "Hello world"

    def test_decodes_known_entities(self):
        assert clean_rss_text("Tom &amp; Jerry &quot;live&quot; &#39;now&#39;") == "Tom & Jerry \"live\" 'now'"
        assert clean_rss_text("a&nbsp;b") == "a b"

    def test_double_encoded_entity_decodes_once(self):
        assert clean_rss_text("&amp;lt;") == "&lt;"

    def test_unknown_entities_are_kept(self):
        assert clean_rss_text("Caf&eacute; &mdash; Bar") == "Caf&eacute; &mdash; Bar"

    def test_empty_input(self):
        assert clean_rss_text(None) == ""
        assert clean_rss_text("") == ""

    def test_canonical_title(self):
        assert canonical_title("  OpenAI   Releases\tGPT ") == "openai releases gpt"
        assert canonical_title("") == ""

    def test_contains_any_is_case_insensitive(self):
        assert contains_any("Neues zur KI-Forschung", ["ki"])
        assert not contains_any("", ["ki"])


class TestDateParsing:
    """Test date parsing helpers."""

    def test_rfc2822(self):
        parsed = parse_date_string("Wed, 16 Apr 2025 10:00:00 GMT")
        assert parsed == datetime(2025, 4, 16, 10, 0, tzinfo=UTC)

    def test_iso_with_z(self):
        parsed = parse_date_string("2025-04-16T10:00:00Z")
        assert parsed == datetime(2025, 4, 16, 10, 0, tzinfo=UTC)

    def test_naive_values_become_utc(self):
        parsed = parse_date_string("2025-04-16")
        assert parsed.tzinfo is not None
        assert parsed.date().isoformat() == "2025-04-16"

    def test_invalid_returns_none(self):
        assert parse_date_string("not a date") is None
        assert parse_date_string("") is None

    def test_field_order(self, now):
        record = {
            "pubDate": "garbage",
            "isoDate": "2025-04-10T08:00:00Z",
            "date": "2025-04-01T08:00:00Z",
        }
        assert resolve_pub_date(record, now) == datetime(2025, 4, 10, 8, 0, tzinfo=UTC)

    def test_falls_back_to_now(self, now):
        assert resolve_pub_date({"pubDate": "garbage"}, now) == now


class TestNormalizeItem:
    """Test normalization of single entries."""

    def test_full_entry(self, now):
        article = normalize_item(
            {
                "title": "<b>OpenAI</b> &amp; Microsoft",
                "description": "<p>Neue   Kooperation</p>",
                "content": "<div>Langer Text</div>",
                "link": " https://example.com/a ",
                "pubDate": "Wed, 16 Apr 2025 10:00:00 GMT",
                "creator": "Jane",
                "categories": ["AI", ""],
                "guid": "guid-1",
            },
            "Example",
            now,
        )

        assert article.title == "OpenAI & Microsoft"
        assert article.description == "Neue Kooperation"
        assert article.content == "Langer Text"
        assert article.link == "https://example.com/a"
        assert article.guid == "guid-1"
        assert article.source_name == "Example"
        assert article.categories == ["AI"]
        assert article.creator == "Jane"
        assert article.pub_date == datetime(2025, 4, 16, 10, 0, tzinfo=UTC)

    def test_drops_entry_without_title_and_description(self, now):
        assert normalize_item({"link": "https://example.com/a"}, "Example", now) is None

    def test_drops_entry_without_link(self, now):
        assert normalize_item({"title": "Headline"}, "Example", now) is None

    def test_drops_entry_whose_title_cleans_to_empty(self, now):
        assert normalize_item({"title": "<br/>", "link": "https://example.com/a"}, "Example", now) is None

    def test_description_only_entry_gets_placeholder_title(self, now):
        article = normalize_item({"description": "Only text", "url": "https://example.com/b"}, "Example", now)
        assert article.title == "Untitled"
        assert article.link == "https://example.com/b"
        assert article.guid == "https://example.com/b"

    def test_description_falls_back_to_content(self, now):
        article = normalize_item(
            {"title": "T", "content": "<p>Body</p>", "link": "https://example.com/c"}, "Example", now
        )
        assert article.description == "Body"

    def test_missing_date_uses_now(self, now):
        article = normalize_item({"title": "T", "link": "https://example.com/d"}, "Example", now)
        assert article.pub_date == now

    def test_batch_keeps_order_and_drops_rejects(self, now):
        raws = [
            {"title": "First", "link": "https://example.com/1"},
            {"link": "https://example.com/none"},
            {"title": "Second", "link": "https://example.com/2"},
        ]
        articles = normalize_items(raws, "Example", now)
        assert [a.title for a in articles] == ["First", "Second"]


class TestEntryVariants:
    """Test raw entry variants."""

    def test_rss_item_extract(self):
        item = RssItem(title="T", link="https://example.com", pub_date="Wed, 16 Apr 2025 10:00:00 GMT", guid="g")
        record = item.extract()
        assert record["pubDate"] == "Wed, 16 Apr 2025 10:00:00 GMT"
        assert record["guid"] == "g"

    def test_atom_entry_uses_iso_date_then_updated(self, now):
        entry = AtomEntry(
            title="Atom",
            link="https://example.com/atom",
            summary="Summary",
            updated="2025-04-12T00:00:00Z",
            entry_id="urn:1",
        )
        article = normalize_item(entry, "Atom Feed", now)
        assert article.pub_date == datetime(2025, 4, 12, tzinfo=UTC)
        assert article.guid == "urn:1"
        assert article.description == "Summary"

    def test_entry_from_feedparser_variants(self):
        entry = {
            "title": "T",
            "link": "https://example.com",
            "summary": "S",
            "content": [{"value": "<p>Full</p>"}],
            "tags": [{"term": "AI"}],
            "id": "id-1",
        }
        rss = entry_from_feedparser(entry, "rss20")
        atom = entry_from_feedparser(entry, "atom10")
        unknown = entry_from_feedparser(entry, "")

        assert isinstance(rss, RssItem)
        assert rss.content == "<p>Full</p>"
        assert rss.categories == ["AI"]
        assert isinstance(atom, AtomEntry)
        assert atom.entry_id == "id-1"
        assert isinstance(unknown, UnknownEntry)

    def test_parse_feed(self, test_settings):
        articles = FeedFetcher(test_settings).parse_feed(RSS_FEED, "Example Feed")

        assert len(articles) == 1
        article = articles[0]
        assert article.title == "KI im Studium"
        assert article.description == "Wie Studierende KI nutzen"
        assert article.guid == "ki-im-studium-1"
        assert article.source_name == "Example Feed"


def test_is_valid_url():
    assert is_valid_url("https://example.com/path")
    assert not is_valid_url("ftp://example.com")
    assert not is_valid_url("not a url")
    assert not is_valid_url("")
