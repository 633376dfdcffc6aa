"""
Base classes for the per-entity CRUD services.

Every service is a thin façade over a ``DocumentStore``: it fills defaults,
stamps timestamps, validates required fields and enum values before any
store call, and publishes ``<entity>:created|updated|deleted`` on the event
bus once the store call has succeeded.
"""

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from studio.core.errors import NotFoundError, StudioError, ValidationError
from studio.core.events import EventBus
from studio.services.storage import DocumentStore

if TYPE_CHECKING:
    from studio.services.books import BookService

logger = logging.getLogger(__name__)

# Fields a caller may never overwrite through update()
PROTECTED_FIELDS = ("id", "book_id", "created_at")


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentService:
    """Shared plumbing: id generation, timestamps, validation and events."""

    collection: str = ""
    entity: str = ""
    id_prefix: str = ""
    required_field: str = "name"
    defaults: dict[str, Any] = {}
    # field -> allowed values
    choices: dict[str, tuple[str, ...]] = {}

    def __init__(self, store: DocumentStore, bus: EventBus):
        self.store = store
        self.bus = bus

    def _new_id(self) -> str:
        return f"{self.id_prefix}_{uuid.uuid4().hex[:12]}"

    def _publish(self, action: str, payload: Any) -> None:
        self.bus.publish(f"{self.entity}:{action}", payload)

    def _validate(self, data: dict, creating: bool) -> None:
        """Reject blank required fields and unknown enum values."""
        field = self.required_field
        if field in data:
            value = data[field]
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{self.entity.capitalize()} {field} is required")
            data[field] = value.strip()
        elif creating and field not in self.defaults:
            raise ValidationError(f"{self.entity.capitalize()} {field} is required")

        for name, allowed in self.choices.items():
            if name in data and data[name] not in allowed:
                raise ValidationError(
                    f"Invalid {name} '{data[name]}'. Expected one of: {', '.join(allowed)}"
                )

    def _with_defaults(self, data: dict) -> dict:
        doc = copy.deepcopy(self.defaults)
        doc.update({k: v for k, v in data.items() if v is not None and k != "id"})
        return doc


class EntityService(DocumentService):
    """
    CRUD for records that belong to a book.

    The store never queries by anything but the full collection, so every
    listing is a scan of the user's collection filtered by ``book_id``.
    """

    def __init__(
        self,
        store: DocumentStore,
        bus: EventBus,
        books: Optional["BookService"] = None,
    ):
        super().__init__(store, bus)
        self.books = books
        # (service, field): lists on other records that hold our ids
        self._backrefs: list[tuple["EntityService", str]] = []

    def register_backref(self, service: "EntityService", field: str) -> None:
        """Remove a deleted record's id from ``field`` on ``service``'s records."""
        self._backrefs.append((service, field))

    def _sort(self, docs: list[dict]) -> list[dict]:
        return docs

    def _prepare(self, doc: dict) -> None:
        """Hook to derive fields before the document is written."""

    async def _after_change(self, book_id: str) -> None:
        """Hook run after any successful write."""

    async def _require_book(self, book_id: str) -> None:
        if self.books is None:
            return
        try:
            await self.books.get(book_id)
        except NotFoundError:
            logger.warning("Rejected %s for missing book %s", self.entity, book_id)
            raise NotFoundError(f"Book not found: {book_id}")

    async def get_all(self, book_id: str) -> list[dict]:
        try:
            docs = await self.store.read_all(self.collection)
        except StudioError as e:
            logger.error("Failed to load %s for book %s: %s", self.collection, book_id, e)
            raise
        return self._sort([d for d in docs if d.get("book_id") == book_id])

    async def get(self, book_id: str, doc_id: str) -> dict:
        doc = await self.store.read(self.collection, doc_id)
        if doc.get("book_id") != book_id:
            raise NotFoundError(f"{self.entity.capitalize()} not found: {doc_id}")
        return doc

    async def create(self, book_id: str, data: dict) -> dict:
        data = dict(data)
        self._validate(data, creating=True)
        await self._require_book(book_id)

        now = utcnow_iso()
        doc = self._with_defaults(data)
        doc.update(book_id=book_id, created_at=now, updated_at=now)
        self._prepare(doc)

        try:
            doc = await self.store.create(self.collection, self._new_id(), doc)
        except StudioError as e:
            logger.error("Failed to create %s: %s", self.entity, e)
            raise

        logger.info("%s created: %s", self.entity.capitalize(), doc["id"])
        self._publish("created", doc)
        await self._after_change(book_id)
        return doc

    async def update(self, book_id: str, doc_id: str, partial: dict) -> dict:
        partial = {k: v for k, v in partial.items() if k not in PROTECTED_FIELDS}
        self._validate(partial, creating=False)
        current = await self.get(book_id, doc_id)

        partial["updated_at"] = utcnow_iso()
        merged = {**current, **partial}
        self._prepare(merged)
        # Derived fields are written along with the caller's changes
        for key, value in merged.items():
            if current.get(key) != value:
                partial[key] = value

        try:
            doc = await self.store.update(self.collection, doc_id, partial)
        except StudioError as e:
            logger.error("Failed to update %s %s: %s", self.entity, doc_id, e)
            raise

        self._publish("updated", doc)
        await self._after_change(book_id)
        return doc

    async def delete(self, book_id: str, doc_id: str) -> None:
        await self.get(book_id, doc_id)
        try:
            await self.store.delete(self.collection, doc_id)
        except StudioError as e:
            logger.error("Failed to delete %s %s: %s", self.entity, doc_id, e)
            raise

        for service, field in self._backrefs:
            await service.unlink(book_id, field, doc_id)

        logger.info("%s deleted: %s", self.entity.capitalize(), doc_id)
        self._publish("deleted", {"id": doc_id, "book_id": book_id})
        await self._after_change(book_id)

    async def delete_all(self, book_id: str) -> int:
        """Delete every record of a book. Used by the book cascade."""
        docs = await self.get_all(book_id)
        for doc in docs:
            await self.store.delete(self.collection, doc["id"])
            self._publish("deleted", {"id": doc["id"], "book_id": book_id})
        if docs:
            logger.info("Deleted %d %s of book %s", len(docs), self.collection, book_id)
        return len(docs)

    async def unlink(self, book_id: str, field: str, target_id: str) -> int:
        """Drop ``target_id`` from the ``field`` list of every record of a book."""
        changed = 0
        for doc in await self.get_all(book_id):
            linked = doc.get(field) or []
            if target_id not in linked:
                continue
            remaining = [i for i in linked if i != target_id]
            updated = await self.store.update(
                self.collection,
                doc["id"],
                {field: remaining, "updated_at": utcnow_iso()},
            )
            self._publish("updated", updated)
            changed += 1
        return changed

    async def link(self, book_id: str, doc_id: str, field: str, target_id: str) -> dict:
        """Add ``target_id`` to a link list if it is not there yet."""
        doc = await self.get(book_id, doc_id)
        linked = list(doc.get(field) or [])
        if target_id in linked:
            return doc
        linked.append(target_id)
        return await self.update(book_id, doc_id, {field: linked})

    async def reorder(self, book_id: str, ordered_ids: list[str], start: int = 0) -> list[dict]:
        """Assign consecutive ``order`` values following ``ordered_ids``."""
        docs = []
        for position, doc_id in enumerate(ordered_ids, start=start):
            docs.append(await self.update(book_id, doc_id, {"order": position}))
        return docs


def count_by(docs: list[dict], field: str, values: tuple[str, ...]) -> dict[str, int]:
    """Totals per enum value plus ``total``; unknown values are not counted."""
    stats = {"total": len(docs), **{value: 0 for value in values}}
    for doc in docs:
        if doc.get(field) in values:
            stats[doc[field]] += 1
    return stats


def filter_by(docs: list[dict], field: str, value: Optional[str]) -> list[dict]:
    """Keep records whose ``field`` equals ``value``; ``None`` or "all" keeps everything."""
    if not value or value == "all":
        return list(docs)
    return [d for d in docs if d.get(field) == value]


def search_fields(docs: list[dict], query: Optional[str], *fields: str) -> list[dict]:
    """Case-insensitive substring match on any of ``fields``."""
    if not query:
        return list(docs)
    needle = query.lower()
    return [
        d for d in docs
        if any(needle in str(d.get(f) or "").lower() for f in fields)
    ]
