"""SQLite archive of generated newsletters."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import aiosqlite

from .logging import get_logger

logger = get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS newsletter_archive (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    week_number INTEGER NOT NULL,
    year INTEGER NOT NULL,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    html_content TEXT,
    date_range TEXT NOT NULL,
    article_count INTEGER NOT NULL DEFAULT 0,
    language TEXT NOT NULL DEFAULT 'de',
    created_at TEXT NOT NULL
)
"""

INDEX = "CREATE INDEX IF NOT EXISTS idx_newsletter_week ON newsletter_archive (year, week_number)"

COLUMNS = (
    "id, week_number, year, title, content, html_content, "
    "date_range, article_count, language, created_at"
)


class ArchiveError(Exception):
    """Raised when the archive cannot be read or written."""


@dataclass
class NewsletterRecord:
    """One archived newsletter."""
    week_number: int
    year: int
    title: str
    content: str
    date_range: str
    article_count: int = 0
    language: str = "de"
    html_content: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: int | None = None

    @classmethod
    def from_row(cls, row: aiosqlite.Row) -> "NewsletterRecord":
        return cls(
            id=row["id"],
            week_number=row["week_number"],
            year=row["year"],
            title=row["title"],
            content=row["content"],
            html_content=row["html_content"],
            date_range=row["date_range"],
            article_count=row["article_count"],
            language=row["language"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


def archive_title(week_number: int, language: str = "de") -> str:
    """Title under which a week's newsletter is archived."""
    label = "KW" if language == "de" else "Week"
    return f"LINKIT WEEKLY {label} {week_number}"


class NewsletterArchive:
    """Newsletter archive stored in a local SQLite database."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._initialized = False

    async def initialize(self) -> None:
        """Create the archive table if needed."""
        if self._initialized:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(self.path) as db:
                await db.execute(SCHEMA)
                await db.execute(INDEX)
                await db.commit()
        except aiosqlite.Error as e:
            raise ArchiveError(f"Failed to initialize archive at {self.path}: {e}") from e
        self._initialized = True

    async def save(self, record: NewsletterRecord) -> int:
        """Insert a newsletter and return its id.

        Saving the same week twice creates two entries.
        """
        await self.initialize()
        try:
            async with aiosqlite.connect(self.path) as db:
                cursor = await db.execute(
                    """
                    INSERT INTO newsletter_archive (
                        week_number, year, title, content, html_content,
                        date_range, article_count, language, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.week_number,
                        record.year,
                        record.title,
                        record.content,
                        record.html_content,
                        record.date_range,
                        record.article_count,
                        record.language,
                        record.created_at.isoformat(),
                    ),
                )
                await db.commit()
                record.id = cursor.lastrowid
        except aiosqlite.Error as e:
            raise ArchiveError(f"Failed to save newsletter: {e}") from e

        logger.info("Newsletter archived", id=record.id, year=record.year, week=record.week_number)
        return record.id

    async def query(
        self,
        year: int | None = None,
        week: int | None = None,
        text: str | None = None,
        limit: int = 20,
    ) -> list[NewsletterRecord]:
        """Newsletters matching the filters, newest first.

        Args:
            year: Restrict to one year
            week: Restrict to one ISO week number
            text: Case-insensitive match on title or content
            limit: Maximum number of records
        """
        await self.initialize()
        clauses = []
        params: list = []
        if year is not None:
            clauses.append("year = ?")
            params.append(year)
        if week is not None:
            clauses.append("week_number = ?")
            params.append(week)
        if text:
            clauses.append("(title LIKE ? OR content LIKE ?)")
            params.extend([f"%{text}%", f"%{text}%"])

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        sql = (
            f"SELECT {COLUMNS} FROM newsletter_archive {where} "
            "ORDER BY created_at DESC, id DESC LIMIT ?"
        )
        params.append(limit)

        try:
            async with aiosqlite.connect(self.path) as db:
                db.row_factory = aiosqlite.Row
                async with db.execute(sql, params) as cursor:
                    rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise ArchiveError(f"Failed to query archive: {e}") from e

        return [NewsletterRecord.from_row(row) for row in rows]

    async def get(self, newsletter_id: int) -> NewsletterRecord | None:
        await self.initialize()
        try:
            async with aiosqlite.connect(self.path) as db:
                db.row_factory = aiosqlite.Row
                async with db.execute(
                    f"SELECT {COLUMNS} FROM newsletter_archive WHERE id = ?", (newsletter_id,)
                ) as cursor:
                    row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise ArchiveError(f"Failed to read newsletter {newsletter_id}: {e}") from e

        return NewsletterRecord.from_row(row) if row else None

    async def find_week(self, week: int, year: int, language: str = "de") -> NewsletterRecord | None:
        """Most recent newsletter for a week and language."""
        await self.initialize()
        try:
            async with aiosqlite.connect(self.path) as db:
                db.row_factory = aiosqlite.Row
                async with db.execute(
                    f"SELECT {COLUMNS} FROM newsletter_archive "
                    "WHERE week_number = ? AND year = ? AND language = ? "
                    "ORDER BY created_at DESC, id DESC LIMIT 1",
                    (week, year, language),
                ) as cursor:
                    row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise ArchiveError(f"Failed to look up week {week}/{year}: {e}") from e

        return NewsletterRecord.from_row(row) if row else None

    async def exists(self, week: int, year: int, language: str = "de") -> bool:
        return await self.find_week(week, year, language) is not None
