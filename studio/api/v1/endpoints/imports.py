"""Book import endpoints: upload a .txt, .md or .html manuscript."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from studio.api import deps
from studio.schemas.studio import ImportPreview
from studio.services.document_processor import ImportedDocument
from studio.session import StudioSession

router = APIRouter()


def preview_to_response(doc: ImportedDocument) -> ImportPreview:
    return ImportPreview(
        filename=doc.filename,
        file_type=doc.file_type.value,
        title=doc.suggested_title,
        author=doc.author,
        word_count=doc.word_count,
        char_count=doc.char_count,
        size_kb=doc.size_kb,
        chapters=[
            {"title": c.title, "word_count": c.word_count}
            for c in doc.chapters
        ],
    )


@router.post("/preview", response_model=ImportPreview)
async def preview_import(
    file: UploadFile = File(...),
    studio: StudioSession = Depends(deps.get_studio),
):
    """Parse an upload and report what would be created. Nothing is stored."""
    data = await file.read()
    return preview_to_response(studio.importer.preview(data, file.filename or ""))


@router.post("/")
async def import_book(
    file: UploadFile = File(...),
    title: Optional[str] = Form(None),
    author: Optional[str] = Form(None),
    genres: Optional[str] = Form(None, description="Comma-separated genre keys"),
    studio: StudioSession = Depends(deps.get_studio),
):
    """Create a book and its chapters from an uploaded file."""
    data = await file.read()
    genre_list = [g.strip() for g in (genres or "").split(",") if g.strip()]
    return await studio.importer.import_file(
        data,
        file.filename or "",
        title=title,
        author=author,
        genres=genre_list,
    )
