"""
Book Export Service - Converts books and single chapters to downloadable files.

Supported formats:
- TXT: Plain text
- HTML: Standalone web page
- Markdown: Source format for further editing
- DOCX: Microsoft Word format
"""

import html
import io
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from studio.core.errors import ValidationError
from studio.services.text import html_to_text, slugify

logger = logging.getLogger(__name__)


class ExportFormat(str, Enum):
    """Supported export formats."""
    TXT = "txt"
    HTML = "html"
    MARKDOWN = "md"
    DOCX = "docx"


MEDIA_TYPES = {
    ExportFormat.TXT: "text/plain; charset=utf-8",
    ExportFormat.HTML: "text/html; charset=utf-8",
    ExportFormat.MARKDOWN: "text/markdown; charset=utf-8",
    ExportFormat.DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

# Chapters can be exported on their own in these formats
CHAPTER_FORMATS = (ExportFormat.TXT, ExportFormat.HTML, ExportFormat.DOCX)

AUTHOR_NOT_SET = "Not specified"
NO_CONTENT = "<p>No content</p>"

_PAGE_STYLE = """\
        body {
            font-family: Georgia, serif;
            line-height: 1.8;
            max-width: 800px;
            margin: 0 auto;
            padding: 40px 20px;
            color: #333;
        }
        h1 { text-align: center; }
        .author { text-align: center; font-style: italic; color: #666; margin-bottom: 40px; }
        .toc { padding: 30px; border-left: 4px solid #d4af37; margin-bottom: 40px; }
        .toc ul { list-style: none; padding: 0; }
        .chapter { page-break-before: always; margin-top: 60px; }
        .chapter-number { font-size: 0.8em; text-transform: uppercase; letter-spacing: 2px; }
        p { text-align: justify; margin-bottom: 1.2em; }"""


@dataclass
class BookMetadata:
    """Metadata for the exported book."""
    title: str
    author: str = ""
    description: str = ""

    @classmethod
    def from_book(cls, book: dict) -> "BookMetadata":
        return cls(
            title=book.get("title") or "Untitled",
            author=book.get("author") or "",
            description=book.get("description") or "",
        )


@dataclass
class ExportOptions:
    """What to include around the chapter text."""
    include_title: bool = True
    include_author: bool = True
    include_toc: bool = True
    include_chapter_numbers: bool = True


@dataclass
class Chapter:
    """A chapter as it appears in an export."""
    number: int
    title: str
    content: str

    @classmethod
    def from_docs(cls, chapters: list[dict]) -> list["Chapter"]:
        """Sort stored chapters by order and number them 1..n."""
        ordered = sorted(chapters, key=lambda c: c.get("order") or 0)
        return [
            cls(
                number=i,
                title=c.get("title") or f"Chapter {i}",
                content=c.get("content") or "",
            )
            for i, c in enumerate(ordered, 1)
        ]


@dataclass
class ExportedFile:
    """A rendered download."""
    filename: str
    media_type: str
    content: bytes


class BookExportService:
    """
    Service for exporting books and chapters to various formats.

    Usage:
        exporter = BookExportService()
        file = exporter.export_book(book, chapters, ExportFormat.MARKDOWN)
    """

    def export_book(
        self,
        book: dict,
        chapters: list[dict],
        format: ExportFormat,
        options: Optional[ExportOptions] = None,
    ) -> ExportedFile:
        """
        Export a whole book.

        Args:
            book: Stored book document
            chapters: Stored chapter documents of the book, in any order
            format: Target export format
            options: Title, author, contents and numbering switches

        Returns:
            ExportedFile named after the book title
        """
        format = ExportFormat(format)
        options = options or ExportOptions()
        metadata = BookMetadata.from_book(book)
        parts = Chapter.from_docs(chapters)

        exporters = {
            ExportFormat.TXT: self._export_txt,
            ExportFormat.HTML: self._export_html,
            ExportFormat.MARKDOWN: self._export_markdown,
            ExportFormat.DOCX: self._export_docx,
        }
        result = exporters[format](parts, metadata, options)
        logger.info("Exported book %s as %s (%d chapters)", book.get("id"), format.value, len(parts))
        return self._file(metadata.title, format, result)

    def export_chapter(self, chapter: dict, format: ExportFormat) -> ExportedFile:
        """Export a single chapter as TXT, HTML or DOCX."""
        format = ExportFormat(format)
        if format not in CHAPTER_FORMATS:
            raise ValidationError(f"Chapters cannot be exported as {format.value}")

        title = chapter.get("title") or "Chapter"
        content = chapter.get("content") or ""

        if format == ExportFormat.TXT:
            result = html_to_text(content)
        elif format == ExportFormat.HTML:
            result = self._page(title, f"    <h1>{html.escape(title)}</h1>\n    {content}\n")
        else:
            part = Chapter(number=chapter.get("order") or 1, title=title, content=content)
            options = ExportOptions(include_author=False, include_toc=False, include_chapter_numbers=False)
            result = self._export_docx([part], BookMetadata(title=title), options, title_page=False)

        logger.info("Exported chapter %s as %s", chapter.get("id"), format.value)
        return self._file(title, format, result)

    def _file(self, title: str, format: ExportFormat, result) -> ExportedFile:
        data = result if isinstance(result, bytes) else result.encode("utf-8")
        return ExportedFile(
            filename=f"{self._sanitize_filename(title)}.{format.value}",
            media_type=MEDIA_TYPES[format],
            content=data,
        )

    def _sanitize_filename(self, name: str) -> str:
        """Convert title to safe filename."""
        # Remove special characters, replace spaces with underscores
        safe = re.sub(r'[^\w\s-]', '', name)
        safe = re.sub(r'[-\s]+', '_', safe).strip('_')
        return safe.lower()[:50] or "export"

    def _page(self, title: str, body: str) -> str:
        return (
            "<!DOCTYPE html>\n"
            '<html lang="en">\n'
            "<head>\n"
            '    <meta charset="UTF-8">\n'
            '    <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
            f"    <title>{html.escape(title)}</title>\n"
            f"    <style>\n{_PAGE_STYLE}\n    </style>\n"
            "</head>\n"
            "<body>\n"
            f"{body}"
            "</body>\n"
            "</html>\n"
        )

    # =========================================================================
    # TXT Export
    # =========================================================================

    def _export_txt(self, chapters: list[Chapter], metadata: BookMetadata, options: ExportOptions) -> str:
        """Export to plain text with ``=`` rules between chapters."""
        lines = []

        if options.include_title:
            lines.append(metadata.title.upper())
            lines.append("=" * len(metadata.title))
            lines.append("")

        if options.include_author:
            lines.append(f"Author: {metadata.author or AUTHOR_NOT_SET}")
            lines.append("")

        if options.include_toc:
            lines.append("CONTENTS")
            lines.append("-" * 8)
            lines.append("")
            for chapter in chapters:
                lines.append(f"{chapter.number}. {chapter.title}")
            lines.append("")

        for chapter in chapters:
            lines.append("")
            lines.append("=" * 60)
            lines.append("")
            if options.include_chapter_numbers:
                lines.append(f"CHAPTER {chapter.number}")
            lines.append(chapter.title)
            lines.append("")
            lines.append(html_to_text(chapter.content))

        return "\n".join(lines) + "\n"

    # =========================================================================
    # HTML Export
    # =========================================================================

    def _export_html(self, chapters: list[Chapter], metadata: BookMetadata, options: ExportOptions) -> str:
        """Export to a standalone HTML page."""
        body = []

        if options.include_title:
            body.append(f"    <h1>{html.escape(metadata.title)}</h1>")

        if options.include_author:
            author = html.escape(metadata.author or AUTHOR_NOT_SET)
            body.append(f'    <p class="author">Author: {author}</p>')

        if options.include_toc:
            body.append('    <div class="toc">')
            body.append("        <h2>Contents</h2>")
            body.append("        <ul>")
            for chapter in chapters:
                body.append(
                    f'            <li><a href="#chapter-{chapter.number}">'
                    f"{html.escape(chapter.title)}</a></li>"
                )
            body.append("        </ul>")
            body.append("    </div>")

        for chapter in chapters:
            body.append(f'    <div class="chapter" id="chapter-{chapter.number}">')
            if options.include_chapter_numbers:
                body.append(f'        <div class="chapter-number">Chapter {chapter.number}</div>')
            body.append(f'        <h2 class="chapter-title">{html.escape(chapter.title)}</h2>')
            # Chapter content is already markup
            body.append(f"        {chapter.content or NO_CONTENT}")
            body.append("    </div>")

        return self._page(metadata.title, "\n".join(body) + "\n")

    # =========================================================================
    # Markdown Export
    # =========================================================================

    def _export_markdown(self, chapters: list[Chapter], metadata: BookMetadata, options: ExportOptions) -> str:
        """Export to Markdown with anchored chapter headings."""
        lines = []

        if options.include_title:
            lines.append(f"# {metadata.title}")
            lines.append("")

        if options.include_author:
            lines.append(f"**Author:** {metadata.author or AUTHOR_NOT_SET}")
            lines.append("")

        if options.include_toc:
            lines.append("## Contents")
            lines.append("")
            for chapter in chapters:
                lines.append(f"{chapter.number}. [{chapter.title}](#{slugify(chapter.title)})")
            lines.append("")
            lines.append("---")
            lines.append("")

        for chapter in chapters:
            if options.include_chapter_numbers:
                lines.append(f"## Chapter {chapter.number}")
                lines.append("")
            lines.append(f"## {chapter.title} {{#{slugify(chapter.title)}}}")
            lines.append("")
            lines.append(html_to_text(chapter.content))
            lines.append("")
            lines.append("---")
            lines.append("")

        return "\n".join(lines)

    # =========================================================================
    # DOCX Export
    # =========================================================================

    def _export_docx(
        self,
        chapters: list[Chapter],
        metadata: BookMetadata,
        options: ExportOptions,
        title_page: bool = True,
    ) -> bytes:
        """Export to DOCX (Microsoft Word) format."""
        from docx import Document
        from docx.enum.text import WD_ALIGN_PARAGRAPH
        from docx.shared import Pt, RGBColor

        doc = Document()

        if title_page and options.include_title:
            title = doc.add_heading(metadata.title, 0)
            title.alignment = WD_ALIGN_PARAGRAPH.CENTER

        if title_page and options.include_author:
            author_para = doc.add_paragraph()
            author_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
            run = author_para.add_run(f"Author: {metadata.author or AUTHOR_NOT_SET}")
            run.font.size = Pt(14)
            run.font.color.rgb = RGBColor(100, 100, 100)

        if title_page and options.include_toc:
            doc.add_heading("Contents", 1)
            for chapter in chapters:
                doc.add_paragraph(f"{chapter.number}. {chapter.title}")

        if title_page and (options.include_title or options.include_author or options.include_toc):
            doc.add_page_break()

        for index, chapter in enumerate(chapters):
            heading = chapter.title
            if options.include_chapter_numbers:
                heading = f"Chapter {chapter.number}: {chapter.title}"
            doc.add_heading(heading, 1)
            self._add_html_to_docx(doc, chapter.content)
            if index < len(chapters) - 1:
                doc.add_page_break()

        # Save to buffer
        buffer = io.BytesIO()
        doc.save(buffer)
        buffer.seek(0)
        return buffer.read()

    _BLOCK_RE = re.compile(
        r"<(p|h[1-6]|li|blockquote)[^>]*>(.*?)</\1>", re.IGNORECASE | re.DOTALL
    )

    def _add_html_to_docx(self, doc, content: str):
        """Add chapter markup to docx document, one block element per paragraph."""
        blocks = self._BLOCK_RE.findall(content or "")
        if not blocks and content:
            # Bare text without block tags
            blocks = [("p", content)]

        for tag, inner in blocks:
            tag = tag.lower()
            if tag[0] == "h" and tag[1:].isdigit():
                text = html_to_text(inner)
                if text:
                    doc.add_heading(text, min(int(tag[1:]), 9))
                continue
            para = doc.add_paragraph(style="Quote" if tag == "blockquote" else None)
            self._add_formatted_runs(para, inner)

    def _add_formatted_runs(self, para, markup: str):
        """Add runs with bold and italic taken from strong/b and em/i tags."""
        parts = re.split(r"(<(?:strong|b|em|i)>.*?</(?:strong|b|em|i)>|<br\s*/?>)", markup, flags=re.IGNORECASE | re.DOTALL)

        for part in parts:
            if not part:
                continue
            lowered = part.lower()
            if re.match(r"<br\s*/?>$", lowered):
                para.add_run().add_break()
                continue
            text = html.unescape(re.sub(r"<[^>]+>", "", part))
            text = re.sub(r"\s+", " ", text)
            if not text.strip():
                continue
            run = para.add_run(text)
            if lowered.startswith(("<strong>", "<b>")):
                run.bold = True
            elif lowered.startswith(("<em>", "<i>")):
                run.italic = True
