"""Text processing utilities for LINKIT Weekly."""

import re


TAG_PATTERN = re.compile(r'<[^>]*>')
WHITESPACE_PATTERN = re.compile(r'\s+')

# Replacement order matters: "&amp;lt;" decodes to "&lt;", not "<".
HTML_ENTITIES = (
    ('&quot;', '"'),
    ('&apos;', "'"),
    ('&lt;', '<'),
    ('&gt;', '>'),
    ('&amp;', '&'),
    ('&#39;', "'"),
    ('&nbsp;', ' '),
)


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs to a single space and trim.

    Args:
        text: Input text

    Returns:
        Text with normalized whitespace
    """
    return WHITESPACE_PATTERN.sub(' ', text).strip()


def clean_rss_text(text: str | None) -> str:
    """Clean text taken from a feed entry.

    Tags are removed by literal pattern, a fixed set of entities is decoded
    (any other entity is left as is) and whitespace is normalized.

    Args:
        text: Raw feed text, possibly containing HTML

    Returns:
        Cleaned plain text
    """
    if not text:
        return ""

    text = TAG_PATTERN.sub('', str(text))

    for entity, replacement in HTML_ENTITIES:
        text = text.replace(entity, replacement)

    return collapse_whitespace(text)


def canonical_title(title: str) -> str:
    """Lowercase a title and normalize its whitespace for identity checks."""
    if not title:
        return ""
    return collapse_whitespace(title.lower())


def contains_any(text: str, keywords: list[str]) -> bool:
    """Check case-insensitively whether text contains any keyword."""
    if not text:
        return False
    text_lower = text.lower()
    return any(keyword.lower() in text_lower for keyword in keywords)
