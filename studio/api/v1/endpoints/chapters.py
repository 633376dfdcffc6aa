"""Chapter endpoints, nested under a book."""

from fastapi import APIRouter, Depends

from studio.api import deps
from studio.schemas.chapter import (
    ChapterCreate,
    ChapterUpdate,
    LinkKind,
    LinkRequest,
    ReorderRequest,
)
from studio.session import StudioSession
from studio.views.editor import LINK_FIELDS

router = APIRouter()


@router.get("/{book_id}/chapters/")
async def list_chapters(book_id: str, studio: StudioSession = Depends(deps.get_studio)):
    """List chapters in reading order."""
    await studio.books.get(book_id)
    return await studio.chapters.get_all(book_id)


@router.post("/{book_id}/chapters/")
async def create_chapter(
    book_id: str,
    chapter_data: ChapterCreate,
    studio: StudioSession = Depends(deps.get_studio),
):
    """Create a chapter. Without an order it goes after the last one."""
    data = chapter_data.model_dump(exclude_none=True)
    if "order" not in data:
        data["order"] = await studio.chapters.next_order(book_id)
    return await studio.chapters.create(book_id, data)


@router.post("/{book_id}/chapters/reorder")
async def reorder_chapters(
    book_id: str,
    request: ReorderRequest,
    studio: StudioSession = Depends(deps.get_studio),
):
    """Number chapters 1..n in the given order."""
    return await studio.chapters.reorder(book_id, request.ids)


@router.get("/{book_id}/chapters/{chapter_id}")
async def get_chapter(book_id: str, chapter_id: str, studio: StudioSession = Depends(deps.get_studio)):
    return await studio.chapters.get(book_id, chapter_id)


@router.get("/{book_id}/chapters/{chapter_id}/stats")
async def chapter_stats(book_id: str, chapter_id: str, studio: StudioSession = Depends(deps.get_studio)):
    """Words, characters, paragraphs and reading time of a chapter."""
    chapter = await studio.chapters.get(book_id, chapter_id)
    return studio.chapters.stats(chapter.get("content") or "")


@router.patch("/{book_id}/chapters/{chapter_id}")
async def update_chapter(
    book_id: str,
    chapter_id: str,
    chapter_update: ChapterUpdate,
    studio: StudioSession = Depends(deps.get_studio),
):
    return await studio.chapters.update(book_id, chapter_id, chapter_update.model_dump(exclude_unset=True))


@router.delete("/{book_id}/chapters/{chapter_id}")
async def delete_chapter(book_id: str, chapter_id: str, studio: StudioSession = Depends(deps.get_studio)):
    await studio.chapters.delete(book_id, chapter_id)
    return {"detail": "Chapter deleted successfully"}


@router.post("/{book_id}/chapters/{chapter_id}/links")
async def link_to_chapter(
    book_id: str,
    chapter_id: str,
    link: LinkRequest,
    studio: StudioSession = Depends(deps.get_studio),
):
    """Link a character, term or timeline event to a chapter."""
    return await studio.chapters.link(book_id, chapter_id, LINK_FIELDS[link.kind.value], link.target_id)


@router.delete("/{book_id}/chapters/{chapter_id}/links/{kind}/{target_id}")
async def unlink_from_chapter(
    book_id: str,
    chapter_id: str,
    kind: LinkKind,
    target_id: str,
    studio: StudioSession = Depends(deps.get_studio),
):
    chapter = await studio.chapters.get(book_id, chapter_id)
    field = LINK_FIELDS[kind.value]
    remaining = [i for i in chapter.get(field) or [] if i != target_id]
    return await studio.chapters.update(book_id, chapter_id, {field: remaining})
