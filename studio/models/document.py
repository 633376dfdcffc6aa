"""
Document model backing the per-user document store.
"""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from studio.db.base import Base
from studio.db.types import GUID, DocumentData


class Document(Base):
    """One schemaless document inside a user's collection."""

    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("owner_id", "collection", "doc_id", name="uq_document_key"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(GUID(), ForeignKey("users.id"), nullable=False, index=True)
    collection = Column(String(100), nullable=False, index=True)
    doc_id = Column(String(100), nullable=False)

    # Opaque payload; the services own its shape
    data = Column(DocumentData(), nullable=False, default=dict)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    owner = relationship("User", back_populates="documents")
