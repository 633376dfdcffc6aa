"""
Text helpers shared by chapters, statistics, import and export.

All functions are pure and operate on the markup strings stored in chapter
content.
"""

import html
import math
import re
from dataclasses import dataclass

WORDS_PER_MINUTE = 200
WORDS_PER_PAGE = 250

_TAG_RE = re.compile(r"<[^>]*>")
_BLOCK_END_RE = re.compile(r"</(p|div|h[1-6]|li|blockquote)\s*>", re.IGNORECASE)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_PARAGRAPH_RE = re.compile(r"<p[\s>]", re.IGNORECASE)


@dataclass
class ChapterStats:
    """Counts shown in the editor status bar."""
    words: int
    characters: int
    characters_no_spaces: int
    paragraphs: int
    reading_time: int


def strip_tags(markup: str) -> str:
    """Replace every tag with a space and decode entities."""
    return html.unescape(_TAG_RE.sub(" ", markup or "")).strip()


def html_to_text(markup: str) -> str:
    """Convert chapter markup to plain text, keeping paragraph breaks."""
    if not markup:
        return ""
    text = _BR_RE.sub("\n", markup)
    text = _BLOCK_END_RE.sub("\n\n", text)
    text = html.unescape(_TAG_RE.sub("", text))
    # Collapse runs of blank lines left behind by nested blocks
    text = re.sub(r"[ \t]+\n", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def text_to_html(text: str) -> str:
    """Wrap plain text into paragraphs: blank lines split, single newlines break."""
    if not text or not text.strip():
        return "<p></p>"
    escaped = html.escape(text.strip().replace("\r\n", "\n"), quote=False)
    escaped = re.sub(r"\n\s*\n", "</p><p>", escaped)
    escaped = escaped.replace("\n", "<br>")
    return f"<p>{escaped}</p>"


def count_words(markup: str) -> int:
    return len(strip_tags(markup).split())


def reading_time(words: int) -> int:
    """Minutes to read ``words`` at 200 words per minute, rounded up."""
    return math.ceil(words / WORDS_PER_MINUTE)


def page_count(words: int) -> int:
    return math.ceil(words / WORDS_PER_PAGE)


def chapter_stats(markup: str) -> ChapterStats:
    text = strip_tags(markup)
    words = len(text.split())
    return ChapterStats(
        words=words,
        characters=len(text),
        characters_no_spaces=len(re.sub(r"\s", "", text)),
        paragraphs=len(_PARAGRAPH_RE.findall(markup or "")),
        reading_time=reading_time(words),
    )


def slugify(text: str) -> str:
    """Lowercase, drop punctuation and join words with hyphens."""
    slug = re.sub(r"[^\w\s-]", "", (text or "").lower())
    return re.sub(r"\s+", "-", slug.strip())
