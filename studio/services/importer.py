"""
Book import: create a book and its chapters from an uploaded file.
"""

import logging
from typing import Callable, Optional

from studio.core.errors import ValidationError
from studio.services.books import UNKNOWN_AUTHOR, BookService
from studio.services.chapters import ChapterService
from studio.services.document_processor import (
    DocumentProcessor,
    ImportedDocument,
    get_document_processor,
)

logger = logging.getLogger(__name__)

# progress(percent, message)
ProgressCallback = Callable[[int, str], None]


class BookImporter:
    """Reads files with the document processor and stores the result."""

    def __init__(
        self,
        books: BookService,
        chapters: ChapterService,
        processor: Optional[DocumentProcessor] = None,
    ):
        self.books = books
        self.chapters = chapters
        self.processor = processor or get_document_processor()

    def preview(self, data: bytes, filename: str) -> ImportedDocument:
        """Parse a file without storing anything."""
        return self.processor.read(data, filename)

    async def import_document(
        self,
        doc: ImportedDocument,
        title: Optional[str] = None,
        author: Optional[str] = None,
        genres: Optional[list[str]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> dict:
        """
        Create a book from a parsed document.

        Chapters are created one after another with orders 1..n. A failure
        half way leaves the book and the chapters created so far in place.
        """
        report = progress or (lambda percent, message: None)

        title = (title if title is not None else doc.suggested_title).strip()
        if not title:
            raise ValidationError("Book title is required")

        report(30, "Creating book")
        book = await self.books.create({
            "title": title,
            "author": (author or doc.author or "").strip() or UNKNOWN_AUTHOR,
            "genres": genres or [],
            "description": (
                f"Imported from {doc.file_type.value.upper()} file: {doc.filename}"
            ),
        })

        report(50, "Splitting into chapters")
        total = len(doc.chapters)
        for index, draft in enumerate(doc.chapters):
            await self.chapters.create(book["id"], {
                "title": draft.title.strip() or f"Chapter {index + 1}",
                "content": draft.content,
                "order": index + 1,
            })
            report(50 + (index + 1) * 40 // total, f"Created {index + 1} of {total}")

        report(100, "Done")
        logger.info("Imported %s as book %s with %d chapters", doc.filename, book["id"], total)
        return await self.books.get(book["id"])

    async def import_file(self, data: bytes, filename: str, **kwargs) -> dict:
        return await self.import_document(self.preview(data, filename), **kwargs)
