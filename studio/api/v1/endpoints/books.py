"""Book endpoints."""

from fastapi import APIRouter, Depends

from studio.api import deps
from studio.schemas.book import BookCreate, BookStats, BookUpdate
from studio.session import StudioSession

router = APIRouter()


@router.get("/")
async def list_books(studio: StudioSession = Depends(deps.get_studio)):
    """List the user's books, most recently changed first."""
    return await studio.books.get_all()


@router.post("/")
async def create_book(book_data: BookCreate, studio: StudioSession = Depends(deps.get_studio)):
    """Create a new book."""
    return await studio.books.create(book_data.model_dump(exclude_none=True))


@router.get("/{book_id}")
async def get_book(book_id: str, studio: StudioSession = Depends(deps.get_studio)):
    """Get a book with its chapter and word counts."""
    return await studio.books.get(book_id)


@router.patch("/{book_id}")
async def update_book(
    book_id: str,
    book_update: BookUpdate,
    studio: StudioSession = Depends(deps.get_studio),
):
    """Update a book."""
    return await studio.books.update(book_id, book_update.model_dump(exclude_unset=True))


@router.delete("/{book_id}")
async def delete_book(book_id: str, studio: StudioSession = Depends(deps.get_studio)):
    """Delete a book with its chapters, characters, terms and timeline events."""
    await studio.books.delete(book_id)
    return {"detail": "Book deleted successfully"}


@router.post("/{book_id}/select")
async def select_book(book_id: str, studio: StudioSession = Depends(deps.get_studio)):
    """Make the book current in every studio tab."""
    book = await studio.books.get(book_id)
    studio.books.select(book)
    await studio.bus.drain()
    return book


@router.get("/{book_id}/stats", response_model=BookStats)
async def book_stats(book_id: str, studio: StudioSession = Depends(deps.get_studio)):
    return await studio.books.get_stats(book_id)
