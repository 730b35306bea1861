"""Utility functions for LINKIT Weekly."""

import asyncio
import logging
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def extract_domain(url: str) -> str:
    """Extract domain from URL.

    Args:
        url: URL string

    Returns:
        Domain name
    """
    return urlparse(url).netloc.lower()


def is_valid_url(url: str) -> bool:
    """Check if URL is a valid absolute http(s) URL.

    Args:
        url: URL to validate

    Returns:
        True if URL is valid
    """
    if not url or not isinstance(url, str):
        return False
    try:
        result = urlparse(url.strip())
    except ValueError:
        return False
    return result.scheme in ("http", "https") and bool(result.netloc)


def ensure_utc(dt: datetime) -> datetime:
    """Return a timezone-aware UTC datetime."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_date_string(date_str: str) -> datetime | None:
    """Parse various date string formats.

    Args:
        date_str: Date string to parse

    Returns:
        Parsed UTC datetime or None if parsing fails
    """
    if not date_str or not isinstance(date_str, str):
        return None

    date_str = date_str.strip()

    # RFC 2822 first, the usual RSS pubDate format
    # Example: "Thu, 17 Jul 2025 23:17:14 GMT"
    try:
        return ensure_utc(parsedate_to_datetime(date_str))
    except (ValueError, TypeError, IndexError):
        pass

    # ISO 8601, the usual Atom format
    try:
        return ensure_utc(datetime.fromisoformat(date_str.replace("Z", "+00:00")))
    except ValueError:
        pass

    formats = [
        "%Y-%m-%d",
        "%Y-%m-%d %H:%M:%S",
        "%d.%m.%Y",
        "%d/%m/%Y",
        "%m/%d/%Y",
        "%B %d, %Y",
        "%b %d, %Y",
        "%d %B %Y",
        "%d %b %Y",
        "%a, %d %b %Y %H:%M:%S %Z",
        "%a, %d %b %Y %H:%M:%S",
    ]

    for fmt in formats:
        try:
            return ensure_utc(datetime.strptime(date_str, fmt))
        except ValueError:
            continue

    logger.debug(f"Failed to parse date string: {date_str!r}")
    return None


async def retry_async(
    func,
    max_retries: int = 3,
    backoff_factor: float = 2.0,
    exceptions: tuple = (Exception,)
) -> Any:
    """Retry async function with exponential backoff.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retries
        backoff_factor: Backoff multiplier
        exceptions: Exceptions to catch and retry

    Returns:
        Function result

    Raises:
        Last exception if all retries fail
    """
    last_exception = None

    for attempt in range(max_retries + 1):
        try:
            return await func()
        except exceptions as e:
            last_exception = e
            if attempt < max_retries:
                delay = backoff_factor ** attempt
                logger.warning(
                    f"Retry attempt {attempt + 1}/{max_retries} failed, "
                    f"waiting {delay:.1f}s: {e}"
                )
                await asyncio.sleep(delay)
            else:
                logger.error(f"All {max_retries} retry attempts failed: {e}")

    raise last_exception


def ensure_directory(path: str | Path, mode: int = 0o700) -> Path:
    """Ensure directory exists with secure permissions.

    Args:
        path: Directory path
        mode: Directory permissions (default: 0o700 - owner read/write/execute only)

    Returns:
        Path object
    """
    path_obj = Path(path)
    path_obj.mkdir(parents=True, exist_ok=True, mode=mode)

    try:
        path_obj.chmod(mode)
    except (OSError, PermissionError) as e:
        logger.warning(f"Failed to set permissions {oct(mode)} on {path_obj}: {e}")

    return path_obj
