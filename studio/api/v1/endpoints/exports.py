"""
Book Export API endpoints.

Whole books export to TXT, HTML, Markdown and DOCX; single chapters to
TXT, HTML and DOCX.
"""

from fastapi import APIRouter, Depends, Response

from studio.api import deps
from studio.services.book_export import ExportedFile, ExportFormat, ExportOptions
from studio.session import StudioSession

router = APIRouter()


def file_response(exported: ExportedFile) -> Response:
    """Return as downloadable file."""
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )


@router.get("/books/{book_id}/{format}")
async def export_book(
    book_id: str,
    format: ExportFormat,
    include_title: bool = True,
    include_author: bool = True,
    include_toc: bool = True,
    include_chapter_numbers: bool = True,
    studio: StudioSession = Depends(deps.get_studio),
):
    """
    Export a book to the specified format.

    Supported formats:
    - txt: Plain text
    - html: Standalone web page
    - md: Markdown source
    - docx: Microsoft Word format
    """
    book = await studio.books.get(book_id)
    chapters = await studio.chapters.get_all(book_id)
    options = ExportOptions(
        include_title=include_title,
        include_author=include_author,
        include_toc=include_toc,
        include_chapter_numbers=include_chapter_numbers,
    )
    return file_response(studio.exporter.export_book(book, chapters, format, options))


@router.get("/books/{book_id}/chapters/{chapter_id}/{format}")
async def export_chapter(
    book_id: str,
    chapter_id: str,
    format: ExportFormat,
    studio: StudioSession = Depends(deps.get_studio),
):
    """Export one chapter. Markdown is rejected with 400."""
    chapter = await studio.chapters.get(book_id, chapter_id)
    return file_response(studio.exporter.export_chapter(chapter, format))
