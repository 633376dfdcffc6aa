"""Character endpoints, nested under a book."""

from typing import Optional

from fastapi import APIRouter, Depends

from studio.api import deps
from studio.schemas.catalog import CharacterCreate, CharacterUpdate
from studio.services.characters import CharacterService
from studio.session import StudioSession

router = APIRouter()


@router.get("/{book_id}/characters/")
async def list_characters(
    book_id: str,
    role: Optional[str] = None,
    q: Optional[str] = None,
    studio: StudioSession = Depends(deps.get_studio),
):
    """List characters by name, optionally filtered by role and searched by name."""
    await studio.books.get(book_id)
    characters = await studio.characters.get_all(book_id)
    characters = CharacterService.filter_by_role(characters, role)
    return CharacterService.search_by_name(characters, q)


@router.get("/{book_id}/characters/stats")
async def character_stats(book_id: str, studio: StudioSession = Depends(deps.get_studio)):
    """Character count per role."""
    return CharacterService.stats(await studio.characters.get_all(book_id))


@router.post("/{book_id}/characters/")
async def create_character(
    book_id: str,
    character_data: CharacterCreate,
    studio: StudioSession = Depends(deps.get_studio),
):
    return await studio.characters.create(book_id, character_data.model_dump(exclude_none=True))


@router.get("/{book_id}/characters/{character_id}")
async def get_character(book_id: str, character_id: str, studio: StudioSession = Depends(deps.get_studio)):
    return await studio.characters.get(book_id, character_id)


@router.patch("/{book_id}/characters/{character_id}")
async def update_character(
    book_id: str,
    character_id: str,
    character_update: CharacterUpdate,
    studio: StudioSession = Depends(deps.get_studio),
):
    return await studio.characters.update(
        book_id, character_id, character_update.model_dump(exclude_unset=True)
    )


@router.delete("/{book_id}/characters/{character_id}")
async def delete_character(book_id: str, character_id: str, studio: StudioSession = Depends(deps.get_studio)):
    """Delete a character and remove it from chapters and timeline events."""
    await studio.characters.delete(book_id, character_id)
    return {"detail": "Character deleted successfully"}
