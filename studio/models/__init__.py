"""
Database models for the writing studio.
"""

from studio.models.document import Document
from studio.models.user import User

__all__ = [
    "User",
    "Document",
]
