"""
User model for authentication.
"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from studio.db.base import Base
from studio.db.types import GUID


class User(Base):
    """A studio author. Every stored document is scoped to one user."""

    __tablename__ = "users"

    id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, index=True, nullable=False)
    display_name = Column(String(255))
    hashed_password = Column(String(255), nullable=False)

    # Status fields
    is_active = Column(Boolean, default=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    last_login = Column(DateTime(timezone=True))

    # Relationships
    documents = relationship(
        "Document", back_populates="owner", cascade="all, delete-orphan"
    )
