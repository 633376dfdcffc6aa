"""
Document Processor Service for turning uploaded manuscripts into chapters.

Supports:
- Plain text files (chapters separated by rule lines of 10+ ``=`` or ``-``)
- Markdown files (converted to HTML, chapters split at ``##``/``###``)
- HTML files (wrappers, styles and scripts stripped, split at h2/h3)

Everything here is a heuristic text transform. The functions are pure so the
importer and the tests can call them without a store.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from studio.core.errors import UnsupportedFileType
from studio.services.text import count_words, strip_tags, text_to_html

logger = logging.getLogger(__name__)


class DocumentType(str, Enum):
    """Supported import types."""
    TXT = "txt"
    MARKDOWN = "md"
    HTML = "html"


SUPPORTED_EXTENSIONS = {
    ".txt": DocumentType.TXT,
    ".md": DocumentType.MARKDOWN,
    ".html": DocumentType.HTML,
}


@dataclass
class ChapterDraft:
    """A chapter found in an imported file, not stored yet."""
    title: str
    content: str

    @property
    def word_count(self) -> int:
        return count_words(self.content)


@dataclass
class ImportedDocument:
    """Result of reading one uploaded file."""
    filename: str
    file_type: DocumentType
    content: str
    title: Optional[str] = None
    author: Optional[str] = None
    chapters: list[ChapterDraft] = field(default_factory=list)
    size_kb: float = 0.0

    @property
    def word_count(self) -> int:
        return count_words(self.content)

    @property
    def char_count(self) -> int:
        return len(self.content)

    @property
    def suggested_title(self) -> str:
        return self.title or Path(self.filename).stem


# =============================================================================
# Patterns
# =============================================================================

LONG_RULE_RE = re.compile(r"^[=\-]{10,}$")
SHORT_RULE_RE = re.compile(r"^[=\-]{3,9}$")
ANY_RULE_RE = re.compile(r"^[=\-]{3,}$")
CHAPTER_LINE_RE = re.compile(r"^chapter\s+\d+", re.IGNORECASE)
TXT_AUTHOR_RE = re.compile(r"^author:?\s*(.+)$", re.IGNORECASE)
TXT_CONTENTS_RE = re.compile(r"^(contents|table of contents)$", re.IGNORECASE)

H1_RE = re.compile(r"<h1[^>]*>(.*?)</h1>", re.IGNORECASE | re.DOTALL)
HTML_AUTHOR_RE = re.compile(r"<p[^>]*>\s*author:?\s*([^<]+)</p>", re.IGNORECASE)
HTML_TOC_RE = re.compile(
    r"<h2[^>]*>[^<]*(?:table of contents|contents)[^<]*</h2>.*?(?=<h[12][\s>]|$)",
    re.IGNORECASE | re.DOTALL,
)
TOC_ITEM_RE = re.compile(r"<li>\s*\[[^\]]*\]\(#[^)]*\)\s*</li>\s*", re.IGNORECASE)
ANCHOR_LINK_RE = re.compile(r"\[[^\]]*\]\(#[^)]*\)")
EMPTY_LIST_RE = re.compile(r"<(ul|ol)>\s*</\1>", re.IGNORECASE)
EMPTY_PARAGRAPH_RE = re.compile(r"<p>\s*(?:<br\s*/?>)?\s*</p>", re.IGNORECASE)
SECTION_HEADING_RE = re.compile(r"<h([23])[^>]*>(.*?)</h\1>", re.IGNORECASE | re.DOTALL)
HEADING_ANCHOR_RE = re.compile(r"\s*\{#[^}]*\}\s*$")

# Text before the first heading longer than this becomes a prologue
PROLOGUE_MIN_LENGTH = 50


# =============================================================================
# Markdown
# =============================================================================

_MD_HR_RE = re.compile(r"^(?:-{3,}|\*{3,}|_{3,})$")
_MD_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")
_MD_BULLET_RE = re.compile(r"^[-*+]\s+(.*)$")
_MD_NUMBERED_RE = re.compile(r"^\d+\.\s+(.*)$")
_MD_QUOTE_RE = re.compile(r"^>\s?(.*)$")
_MD_BOLD_RE = re.compile(r"\*\*(.+?)\*\*|__(.+?)__")
_MD_ITALIC_STAR_RE = re.compile(r"(?<![*\w])\*(?!\s)(.+?)(?<!\s)\*(?![*\w])")
_MD_ITALIC_UNDERSCORE_RE = re.compile(r"(?<!\w)_(?!\s)(.+?)(?<!\s)_(?!\w)")


def _inline_markdown(text: str) -> str:
    """Bold before italic so ``**`` is never read as two emphasis markers."""
    text = _MD_BOLD_RE.sub(lambda m: f"<strong>{m.group(1) or m.group(2)}</strong>", text)
    text = _MD_ITALIC_STAR_RE.sub(r"<em>\1</em>", text)
    text = _MD_ITALIC_UNDERSCORE_RE.sub(r"<em>\1</em>", text)
    return text


def markdown_to_html(markdown: str) -> str:
    """
    Convert Markdown to HTML with a small, fixed rule set.

    Line rules are applied first, in this order: horizontal rules, headings
    (``#`` to ``######``), bullet items, numbered items, blockquotes. Runs of
    consecutive items of the same kind are wrapped in one ``<ul>``/``<ol>``.
    Remaining lines are grouped into paragraphs at blank lines, with single
    newlines kept as ``<br>``. Inline bold and italic are converted last, per
    line, so a ``***`` rule or a ``* item`` marker is never mistaken for
    emphasis. Raw HTML in the source passes through untouched.
    """
    blocks: list[str] = []
    paragraph: list[str] = []
    list_tag: Optional[str] = None
    items: list[str] = []

    def flush_paragraph() -> None:
        if paragraph:
            blocks.append("<p>" + "<br>".join(paragraph) + "</p>")
            paragraph.clear()

    def flush_list() -> None:
        nonlocal list_tag
        if items:
            inner = "".join(f"<li>{item}</li>" for item in items)
            blocks.append(f"<{list_tag}>{inner}</{list_tag}>")
            items.clear()
        list_tag = None

    def add_item(tag: str, text: str) -> None:
        nonlocal list_tag
        flush_paragraph()
        if list_tag != tag:
            flush_list()
            list_tag = tag
        items.append(_inline_markdown(text))

    for raw_line in (markdown or "").replace("\r\n", "\n").split("\n"):
        line = raw_line.strip()

        if not line:
            flush_paragraph()
            flush_list()
            continue

        if _MD_HR_RE.match(line):
            flush_paragraph()
            flush_list()
            blocks.append("<hr>")
            continue

        match = _MD_HEADING_RE.match(line)
        if match:
            flush_paragraph()
            flush_list()
            level = len(match.group(1))
            blocks.append(f"<h{level}>{_inline_markdown(match.group(2))}</h{level}>")
            continue

        match = _MD_BULLET_RE.match(line)
        if match:
            add_item("ul", match.group(1))
            continue

        match = _MD_NUMBERED_RE.match(line)
        if match:
            add_item("ol", match.group(1))
            continue

        match = _MD_QUOTE_RE.match(line)
        if match:
            flush_paragraph()
            flush_list()
            blocks.append(f"<blockquote>{_inline_markdown(match.group(1))}</blockquote>")
            continue

        flush_list()
        paragraph.append(_inline_markdown(line))

    flush_paragraph()
    flush_list()
    return "\n".join(blocks)


# =============================================================================
# HTML
# =============================================================================

_HTML_WRAPPER_RES = [
    re.compile(r"<!doctype[^>]*>", re.IGNORECASE),
    re.compile(r"<head[^>]*>.*?</head>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL),
    re.compile(r"</?html[^>]*>", re.IGNORECASE),
    re.compile(r"</?body[^>]*>", re.IGNORECASE),
]


def clean_html(markup: str) -> str:
    """Strip document wrappers, the head, styles and scripts."""
    for pattern in _HTML_WRAPPER_RES:
        markup = pattern.sub("", markup)
    return markup.strip()


# =============================================================================
# Metadata
# =============================================================================

@dataclass
class Metadata:
    title: Optional[str]
    author: Optional[str]
    body: str


def _is_blank_or_rule(line: str) -> bool:
    line = line.strip()
    return not line or bool(ANY_RULE_RE.match(line))


def _txt_metadata(text: str) -> Metadata:
    lines = text.replace("\r\n", "\n").split("\n")
    title = None
    start = 0

    # A short first line is the book title only when set apart from the body
    first = lines[0].strip() if lines else ""
    if (
        first
        and len(first) < 100
        and not ANY_RULE_RE.match(first)
        and (len(lines) == 1 or _is_blank_or_rule(lines[1]))
    ):
        title = first
        start = 1

    author = None
    for i in range(start, min(len(lines), 10)):
        match = TXT_AUTHOR_RE.match(lines[i].strip())
        if match:
            author = match.group(1).strip()
            del lines[i]
            break

    kept: list[str] = []
    in_toc = False
    for i in range(start, len(lines)):
        line = lines[i].strip()

        if TXT_CONTENTS_RE.match(line):
            in_toc = True
            continue

        if LONG_RULE_RE.match(line):
            if in_toc:
                # The rule that closes the contents goes with it
                in_toc = False
                continue
            kept.append(line)
            continue

        # Title underlines near the top
        if i < 10 and SHORT_RULE_RE.match(line):
            continue

        if not in_toc:
            kept.append(lines[i])

    return Metadata(title=title, author=author, body="\n".join(kept).strip())


def _html_metadata(markup: str) -> Metadata:
    title = None
    author = None
    body = markup

    match = H1_RE.search(body)
    if match:
        title = strip_tags(match.group(1)) or None
        body = body.replace(match.group(0), "", 1)

    match = HTML_AUTHOR_RE.search(body)
    if match:
        author = match.group(1).strip() or None
        body = body.replace(match.group(0), "", 1)

    body = HTML_TOC_RE.sub("", body, count=1)
    body = TOC_ITEM_RE.sub("", body)
    body = ANCHOR_LINK_RE.sub("", body)
    body = EMPTY_LIST_RE.sub("", body)
    body = EMPTY_PARAGRAPH_RE.sub("", body)
    return Metadata(title=title, author=author, body=body.strip())


def extract_metadata(content: str, file_type: DocumentType) -> Metadata:
    """
    Pull the book title and author out of ``content``.

    For TXT the body stays plain text (rule lines kept for splitting); for
    Markdown and HTML ``content`` must already be HTML.
    """
    if file_type == DocumentType.TXT:
        return _txt_metadata(content)
    return _html_metadata(content)


# =============================================================================
# Chapter splitting
# =============================================================================

def _split_txt(text: str) -> list[ChapterDraft]:
    segments = re.split(r"^[ \t]*[=\-]{10,}[ \t]*$", text, flags=re.MULTILINE)

    if len(segments) == 1:
        return [ChapterDraft(title="Chapter 1", content=text_to_html(text))]

    chapters: list[ChapterDraft] = []
    for segment in segments:
        lines = segment.strip().split("\n")
        if not lines[0].strip():
            continue

        number = len(chapters) + 1
        title = f"Chapter {number}"
        first = lines[0].strip()
        rest = "\n".join(lines[1:]).strip()

        if CHAPTER_LINE_RE.match(first) or (3 < len(first) < 100 and rest):
            title = first
            body = rest
        else:
            body = segment.strip()

        chapters.append(ChapterDraft(title=title, content=text_to_html(body)))

    return chapters or [ChapterDraft(title="Chapter 1", content=text_to_html(text))]


def _split_html(markup: str) -> list[ChapterDraft]:
    headings = list(SECTION_HEADING_RE.finditer(markup))
    if not headings:
        return [ChapterDraft(title="Chapter 1", content=markup or "<p></p>")]

    chapters: list[ChapterDraft] = []

    prologue = markup[: headings[0].start()].strip()
    if len(prologue) > PROLOGUE_MIN_LENGTH:
        chapters.append(ChapterDraft(title="Prologue", content=prologue))

    for index, heading in enumerate(headings):
        title = HEADING_ANCHOR_RE.sub("", strip_tags(heading.group(2)))
        end = headings[index + 1].start() if index + 1 < len(headings) else len(markup)
        body = markup[heading.end():end].strip()
        # Headings with nothing under them (e.g. a bare "Chapter 3" label) are dropped
        if not strip_tags(body):
            continue
        chapters.append(ChapterDraft(title=title or f"Chapter {index + 1}", content=body))

    return chapters or [ChapterDraft(title="Chapter 1", content=markup)]


def split_chapters(content: str, file_type: DocumentType) -> list[ChapterDraft]:
    """Split a metadata-free body into chapters. Always returns at least one."""
    if file_type == DocumentType.TXT:
        return _split_txt(content)
    return _split_html(content)


class DocumentProcessor:
    """
    Service for reading uploaded manuscripts.

    Detects the file type from the extension, converts the content to HTML,
    extracts title and author, and splits the body into chapter drafts.
    """

    def detect_type(self, filename: str) -> DocumentType:
        """Detect document type from filename extension."""
        ext = Path(filename or "").suffix.lower()
        doc_type = SUPPORTED_EXTENSIONS.get(ext)
        if doc_type is None:
            logger.warning("Rejected import of unsupported file: %s", filename)
            raise UnsupportedFileType(
                f"Unsupported file type '{ext or filename}'. Use .txt, .md or .html"
            )
        return doc_type

    def read(self, data: bytes, filename: str) -> ImportedDocument:
        """
        Read an uploaded file.

        Args:
            data: Raw file bytes (decoded as UTF-8, invalid bytes replaced)
            filename: Original filename, used for type detection

        Returns:
            ImportedDocument with metadata, HTML content and chapter drafts
        """
        doc_type = self.detect_type(filename)
        text = data.decode("utf-8-sig", errors="replace")

        if doc_type == DocumentType.MARKDOWN:
            text = markdown_to_html(text)
        elif doc_type == DocumentType.HTML:
            text = clean_html(text)

        metadata = extract_metadata(text, doc_type)
        chapters = split_chapters(metadata.body, doc_type)

        if doc_type == DocumentType.TXT:
            content = text_to_html(
                "\n".join(l for l in metadata.body.split("\n") if not LONG_RULE_RE.match(l.strip()))
            )
        else:
            content = metadata.body

        logger.info(
            "Read %s (%s): %d chapters, title=%r, author=%r",
            filename, doc_type.value, len(chapters), metadata.title, metadata.author,
        )
        return ImportedDocument(
            filename=filename,
            file_type=doc_type,
            content=content,
            title=metadata.title,
            author=metadata.author,
            chapters=chapters,
            size_kb=round(len(data) / 1024, 2),
        )


# Singleton instance
_processor: Optional[DocumentProcessor] = None


def get_document_processor() -> DocumentProcessor:
    """Get or create the document processor singleton."""
    global _processor
    if _processor is None:
        _processor = DocumentProcessor()
    return _processor
