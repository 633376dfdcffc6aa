"""
Document store supporting both SQL (SQLAlchemy) and in-memory backends.

Every collection is scoped to the currently authenticated user. The store
knows nothing about books or chapters: it keeps opaque JSON documents keyed
by (user, collection, id) and never queries by anything but the full
collection.
"""

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from starlette.concurrency import run_in_threadpool

from studio.core.errors import NotFoundError, StorageError
from studio.models import Document

logger = logging.getLogger(__name__)

UserIdProvider = Callable[[], str]


def _as_document(doc_id: str, data: dict[str, Any]) -> dict[str, Any]:
    return {"id": doc_id, **copy.deepcopy(data)}


class DocumentStore(ABC):
    """Per-user key/value document persistence."""

    def __init__(self, user_id_provider: UserIdProvider):
        self._user_id_provider = user_id_provider

    @property
    def user_id(self) -> str:
        # Raises NotAuthenticatedError when nobody is signed in
        return str(self._user_id_provider())

    @abstractmethod
    async def create(self, collection: str, doc_id: str, data: dict) -> dict:
        """Store a new document and return it with its id."""

    @abstractmethod
    async def read(self, collection: str, doc_id: str) -> dict:
        """Return one document or raise NotFoundError."""

    @abstractmethod
    async def read_all(self, collection: str) -> list[dict]:
        """Return every document of the user's collection."""

    @abstractmethod
    async def update(self, collection: str, doc_id: str, partial: dict) -> dict:
        """Merge ``partial`` into an existing document and return the result."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document. Deleting a missing document is not an error."""


class MemoryDocumentStore(DocumentStore):
    """Dictionary backed store for tests and local scratch sessions."""

    def __init__(self, user_id_provider: UserIdProvider):
        super().__init__(user_id_provider)
        self._data: dict[tuple[str, str], dict[str, dict]] = {}

    def _collection(self, collection: str) -> dict[str, dict]:
        return self._data.setdefault((self.user_id, collection), {})

    async def create(self, collection: str, doc_id: str, data: dict) -> dict:
        docs = self._collection(collection)
        if doc_id in docs:
            raise StorageError(f"Document already exists: {collection}/{doc_id}")
        docs[doc_id] = copy.deepcopy({k: v for k, v in data.items() if k != "id"})
        logger.debug("Document created: %s/%s", collection, doc_id)
        return _as_document(doc_id, docs[doc_id])

    async def read(self, collection: str, doc_id: str) -> dict:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise NotFoundError(f"Document not found: {collection}/{doc_id}")
        return _as_document(doc_id, docs[doc_id])

    async def read_all(self, collection: str) -> list[dict]:
        return [
            _as_document(doc_id, data)
            for doc_id, data in self._collection(collection).items()
        ]

    async def update(self, collection: str, doc_id: str, partial: dict) -> dict:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise NotFoundError(f"Document not found: {collection}/{doc_id}")
        docs[doc_id].update(copy.deepcopy({k: v for k, v in partial.items() if k != "id"}))
        return _as_document(doc_id, docs[doc_id])

    async def delete(self, collection: str, doc_id: str) -> None:
        self._collection(collection).pop(doc_id, None)


class SQLDocumentStore(DocumentStore):
    """
    Store documents as JSON rows through a SQLAlchemy session factory.

    Sessions are synchronous, so every call runs in the threadpool and the
    event loop keeps serving timers and other sessions meanwhile.
    """

    def __init__(self, session_factory: sessionmaker, user_id_provider: UserIdProvider):
        super().__init__(user_id_provider)
        self.session_factory = session_factory

    def _owner(self) -> uuid.UUID:
        return uuid.UUID(self.user_id)

    @staticmethod
    def _find(db: Session, owner: uuid.UUID, collection: str, doc_id: str) -> Document | None:
        return (
            db.query(Document)
            .filter(
                Document.owner_id == owner,
                Document.collection == collection,
                Document.doc_id == doc_id,
            )
            .first()
        )

    # The user is resolved on the calling task before handing off to a thread
    async def create(self, collection: str, doc_id: str, data: dict) -> dict:
        return await run_in_threadpool(self._create, self._owner(), collection, doc_id, data)

    async def read(self, collection: str, doc_id: str) -> dict:
        return await run_in_threadpool(self._read, self._owner(), collection, doc_id)

    async def read_all(self, collection: str) -> list[dict]:
        return await run_in_threadpool(self._read_all, self._owner(), collection)

    async def update(self, collection: str, doc_id: str, partial: dict) -> dict:
        return await run_in_threadpool(self._update, self._owner(), collection, doc_id, partial)

    async def delete(self, collection: str, doc_id: str) -> None:
        await run_in_threadpool(self._delete, self._owner(), collection, doc_id)

    def _create(self, owner: uuid.UUID, collection: str, doc_id: str, data: dict) -> dict:
        payload = copy.deepcopy({k: v for k, v in data.items() if k != "id"})
        db = self.session_factory()
        try:
            db.add(Document(owner_id=owner, collection=collection, doc_id=doc_id, data=payload))
            db.commit()
            logger.debug("Document created: %s/%s", collection, doc_id)
            return _as_document(doc_id, payload)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to create document %s/%s: %s", collection, doc_id, e)
            raise StorageError(f"Could not create {collection}/{doc_id}") from e
        finally:
            db.close()

    def _read(self, owner: uuid.UUID, collection: str, doc_id: str) -> dict:
        db = self.session_factory()
        try:
            row = self._find(db, owner, collection, doc_id)
            if row is None:
                raise NotFoundError(f"Document not found: {collection}/{doc_id}")
            return _as_document(row.doc_id, row.data or {})
        except SQLAlchemyError as e:
            logger.error("Failed to read document %s/%s: %s", collection, doc_id, e)
            raise StorageError(f"Could not read {collection}/{doc_id}") from e
        finally:
            db.close()

    def _read_all(self, owner: uuid.UUID, collection: str) -> list[dict]:
        db = self.session_factory()
        try:
            rows = (
                db.query(Document)
                .filter(Document.owner_id == owner, Document.collection == collection)
                .order_by(Document.id)
                .all()
            )
            return [_as_document(row.doc_id, row.data or {}) for row in rows]
        except SQLAlchemyError as e:
            logger.error("Failed to read collection %s: %s", collection, e)
            raise StorageError(f"Could not read collection {collection}") from e
        finally:
            db.close()

    def _update(self, owner: uuid.UUID, collection: str, doc_id: str, partial: dict) -> dict:
        db = self.session_factory()
        try:
            row = self._find(db, owner, collection, doc_id)
            if row is None:
                raise NotFoundError(f"Document not found: {collection}/{doc_id}")
            merged = dict(row.data or {})
            merged.update(copy.deepcopy({k: v for k, v in partial.items() if k != "id"}))
            # Reassign so the JSON column is flagged dirty
            row.data = merged
            db.commit()
            return _as_document(doc_id, merged)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to update document %s/%s: %s", collection, doc_id, e)
            raise StorageError(f"Could not update {collection}/{doc_id}") from e
        finally:
            db.close()

    def _delete(self, owner: uuid.UUID, collection: str, doc_id: str) -> None:
        db = self.session_factory()
        try:
            row = self._find(db, owner, collection, doc_id)
            if row is not None:
                db.delete(row)
                db.commit()
                logger.debug("Document deleted: %s/%s", collection, doc_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to delete document %s/%s: %s", collection, doc_id, e)
            raise StorageError(f"Could not delete {collection}/{doc_id}") from e
        finally:
            db.close()
