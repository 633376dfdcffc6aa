"""
Book service: top-level documents that own chapters, characters, terms and
timeline events.
"""

import logging
from typing import Optional

from studio.core.errors import StudioError
from studio.core.events import EventBus
from studio.services.base import DocumentService, EntityService, utcnow_iso
from studio.services.storage import DocumentStore

logger = logging.getLogger(__name__)

BOOK_STATUSES = ("draft", "in_progress", "completed", "archived")
DEFAULT_GENRES = ["other"]
UNKNOWN_AUTHOR = "Unknown author"


def _unique(items) -> list[str]:
    seen: list[str] = []
    for item in items or []:
        item = str(item).strip()
        if item and item not in seen:
            seen.append(item)
    return seen


class BookService(DocumentService):
    """CRUD for books plus the derived chapter and word counts."""

    collection = "books"
    entity = "book"
    id_prefix = "book"
    required_field = "title"
    defaults = {
        "title": "New book",
        "author": UNKNOWN_AUTHOR,
        "description": "",
        "genres": DEFAULT_GENRES,
        "status": "draft",
    }
    choices = {"status": BOOK_STATUSES}

    def __init__(self, store: DocumentStore, bus: EventBus):
        super().__init__(store, bus)
        self.current_book: Optional[dict] = None
        # Services whose records are removed with the book, in deletion order
        self._dependents: list[EntityService] = []
        self._chapters: Optional[EntityService] = None

    def register_dependent(self, service: EntityService, chapters: bool = False) -> None:
        self._dependents.append(service)
        if chapters:
            self._chapters = service

    async def _chapter_docs(self) -> list[dict]:
        if self._chapters is None:
            return []
        return await self.store.read_all(self._chapters.collection)

    @staticmethod
    def _with_counts(book: dict, chapters: list[dict]) -> dict:
        own = [c for c in chapters if c.get("book_id") == book["id"]]
        book["chapter_count"] = len(own)
        book["word_count"] = sum(c.get("word_count") or 0 for c in own)
        return book

    def _normalize(self, data: dict) -> None:
        if "genres" in data:
            data["genres"] = _unique(data["genres"]) or list(DEFAULT_GENRES)
        if "author" in data and isinstance(data["author"], str):
            data["author"] = data["author"].strip() or UNKNOWN_AUTHOR

    async def get_all(self) -> list[dict]:
        """All books of the user, newest update first, with derived counts."""
        try:
            books = await self.store.read_all(self.collection)
            chapters = await self._chapter_docs()
        except StudioError as e:
            logger.error("Failed to load books: %s", e)
            raise
        books = [self._with_counts(b, chapters) for b in books]
        books.sort(key=lambda b: b.get("updated_at") or "", reverse=True)
        logger.debug("Loaded %d books", len(books))
        return books

    async def get(self, book_id: str) -> dict:
        book = await self.store.read(self.collection, book_id)
        return self._with_counts(book, await self._chapter_docs())

    async def create(self, data: dict) -> dict:
        data = dict(data)
        self._validate(data, creating=True)
        self._normalize(data)

        now = utcnow_iso()
        doc = self._with_defaults(data)
        doc.update(created_at=now, updated_at=now)
        doc.pop("chapter_count", None)
        doc.pop("word_count", None)

        try:
            doc = await self.store.create(self.collection, self._new_id(), doc)
        except StudioError as e:
            logger.error("Failed to create book: %s", e)
            raise

        doc = self._with_counts(doc, [])
        logger.info("Book created: %s", doc["title"])
        self._publish("created", doc)
        return doc

    async def update(self, book_id: str, partial: dict) -> dict:
        partial = {
            k: v
            for k, v in partial.items()
            if k not in ("id", "created_at", "chapter_count", "word_count")
        }
        self._validate(partial, creating=False)
        self._normalize(partial)
        await self.store.read(self.collection, book_id)

        partial["updated_at"] = utcnow_iso()
        try:
            await self.store.update(self.collection, book_id, partial)
        except StudioError as e:
            logger.error("Failed to update book %s: %s", book_id, e)
            raise

        doc = await self.get(book_id)
        if self.current_book and self.current_book["id"] == book_id:
            self.current_book = doc
        self._publish("updated", doc)
        return doc

    async def delete(self, book_id: str) -> None:
        """
        Delete a book and every record that belongs to it.

        Children go first, one store call at a time; there is no rollback if
        a later call fails.
        """
        await self.store.read(self.collection, book_id)
        try:
            for service in self._dependents:
                await service.delete_all(book_id)
            await self.store.delete(self.collection, book_id)
        except StudioError as e:
            logger.error("Failed to delete book %s: %s", book_id, e)
            raise

        if self.current_book and self.current_book["id"] == book_id:
            self.current_book = None
        logger.info("Book deleted: %s", book_id)
        self._publish("deleted", {"id": book_id})

    def select(self, book: Optional[dict]) -> None:
        """Make ``book`` the current book and announce it."""
        self.current_book = book
        self._publish("selected", book)

    async def touch(self, book_id: str) -> None:
        """Bump ``updated_at`` after a child chapter changed."""
        try:
            await self.store.update(self.collection, book_id, {"updated_at": utcnow_iso()})
        except StudioError as e:
            logger.error("Failed to touch book %s: %s", book_id, e)
            raise

    async def get_stats(self, book_id: str) -> dict:
        book = await self.get(book_id)
        return {
            "chapter_count": book["chapter_count"],
            "word_count": book["word_count"],
            "status": book.get("status", "draft"),
            "last_updated": book.get("updated_at"),
        }
