from enum import Enum

from pydantic import BaseModel, Field


class LinkKind(str, Enum):
    """What a chapter can link to."""
    CHARACTER = "character"
    TERM = "term"
    TIMELINE = "timeline"


class ChapterCreate(BaseModel):
    """Schema for creating a chapter"""

    title: str
    content: str | None = None
    # Appended after the last chapter when omitted
    order: int | None = Field(default=None, ge=0)
    pov: str | None = None
    character_ids: list[str] | None = None
    term_ids: list[str] | None = None
    event_ids: list[str] | None = None


class ChapterUpdate(BaseModel):
    """Schema for updating a chapter"""

    title: str | None = None
    content: str | None = None
    order: int | None = Field(default=None, ge=0)
    pov: str | None = None
    character_ids: list[str] | None = None
    term_ids: list[str] | None = None
    event_ids: list[str] | None = None


class ReorderRequest(BaseModel):
    """Ids in their new order."""

    ids: list[str]


class LinkRequest(BaseModel):
    kind: LinkKind
    target_id: str
