"""Weekly digest: the articles and generated text of one ISO calendar week."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

from .ingest.articles import Article
from .processing.dedupe import dedup_key
from .utils import ensure_utc

DATE_FORMATS = {
    "de": "%d.%m.%Y",
    "en": "%m/%d/%Y",
}


def iso_week(moment: date | datetime) -> tuple[int, int]:
    """Return (ISO week number, ISO year) of a date."""
    calendar = moment.isocalendar()
    return calendar.week, calendar.year


def week_bounds(week_number: int, year: int) -> tuple[date, date]:
    """First (Monday) and last (Sunday) day of an ISO week."""
    start = date.fromisocalendar(year, week_number, 1)
    return start, start + timedelta(days=6)


def week_date_range(week_number: int, year: int, language: str = "de") -> str:
    """Format the date range of an ISO week, e.g. "14.04.2025–20.04.2025"."""
    fmt = DATE_FORMATS.get(language, DATE_FORMATS["de"])
    start, end = week_bounds(week_number, year)
    return f"{start.strftime(fmt)}–{end.strftime(fmt)}"


def filter_current_week(articles: list[Article], now: datetime | None = None) -> list[Article]:
    """Keep articles published in the ISO week containing now."""
    now = ensure_utc(now) if now else datetime.now(UTC)
    current = iso_week(now)
    return [a for a in articles if iso_week(ensure_utc(a.pub_date)) == current]


@dataclass
class WeeklyDigest:
    """Articles collected for one calendar week and the newsletter drafted from them."""
    week_number: int
    year: int
    date_range: str
    items: list[Article] = field(default_factory=list)
    generated_content: str | None = None

    @classmethod
    def for_date(cls, moment: datetime | None = None, language: str = "de") -> "WeeklyDigest":
        moment = moment or datetime.now(UTC)
        week_number, year = iso_week(moment)
        return cls(
            week_number=week_number,
            year=year,
            date_range=week_date_range(week_number, year, language),
        )

    def add_items(self, articles: list[Article]) -> int:
        """Append articles not yet in the digest; returns how many were added."""
        known = {dedup_key(a) for a in self.items}
        added = 0
        for article in articles:
            key = dedup_key(article)
            if key in known:
                continue
            known.add(key)
            self.items.append(article)
            added += 1
        return added

    def remove_item(self, article_id: str) -> Article | None:
        for article in self.items:
            if article.article_id == article_id:
                self.items.remove(article)
                return article
        return None

    def set_generated_content(self, content: str) -> None:
        """Replace the generated newsletter text as a whole."""
        self.generated_content = content

    @property
    def week_label(self) -> str:
        return f"{self.year}/KW{self.week_number}"
