"""Glossary term endpoints, nested under a book."""

from typing import Optional

from fastapi import APIRouter, Depends

from studio.api import deps
from studio.schemas.catalog import TermCreate, TermUpdate
from studio.services.terms import TermService
from studio.session import StudioSession

router = APIRouter()


@router.get("/{book_id}/terms/")
async def list_terms(
    book_id: str,
    category: Optional[str] = None,
    q: Optional[str] = None,
    studio: StudioSession = Depends(deps.get_studio),
):
    """List terms, optionally filtered by category and searched by name or description."""
    await studio.books.get(book_id)
    terms = TermService.filter_by_category(await studio.terms.get_all(book_id), category)
    return TermService.search(terms, q)


@router.get("/{book_id}/terms/stats")
async def term_stats(book_id: str, studio: StudioSession = Depends(deps.get_studio)):
    return TermService.stats(await studio.terms.get_all(book_id))


@router.post("/{book_id}/terms/")
async def create_term(book_id: str, term_data: TermCreate, studio: StudioSession = Depends(deps.get_studio)):
    return await studio.terms.create(book_id, term_data.model_dump(exclude_none=True))


@router.get("/{book_id}/terms/{term_id}")
async def get_term(book_id: str, term_id: str, studio: StudioSession = Depends(deps.get_studio)):
    return await studio.terms.get(book_id, term_id)


@router.patch("/{book_id}/terms/{term_id}")
async def update_term(
    book_id: str,
    term_id: str,
    term_update: TermUpdate,
    studio: StudioSession = Depends(deps.get_studio),
):
    return await studio.terms.update(book_id, term_id, term_update.model_dump(exclude_unset=True))


@router.delete("/{book_id}/terms/{term_id}")
async def delete_term(book_id: str, term_id: str, studio: StudioSession = Depends(deps.get_studio)):
    await studio.terms.delete(book_id, term_id)
    return {"detail": "Term deleted successfully"}
