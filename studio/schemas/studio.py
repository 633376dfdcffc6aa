"""Schemas for the tabbed studio shell."""

from pydantic import BaseModel, Field


class TabResponse(BaseModel):
    route: str
    title: str
    icon: str
    active: bool


class NoticeResponse(BaseModel):
    level: str
    message: str


class StudioState(BaseModel):
    """Current route, tab strip and rendered content region."""

    route: str | None = None
    tabs: list[TabResponse]
    content: str
    notices: list[NoticeResponse] = []


class ChapterEdit(BaseModel):
    """Local edits to the chapter open in the editor."""

    content: str | None = None
    title: str | None = None
    pov: str | None = None
    order: int | None = Field(default=None, ge=0)


class EditorSettingsUpdate(BaseModel):
    theme: str | None = None
    font: str | None = None
    font_size: int | None = None
    line_height: float | None = None
    auto_save: bool | None = None
    spell_check: bool | None = None
    typewriter_mode: bool | None = None
    daily_goal: int | None = None


class ImportPreview(BaseModel):
    """What a file import would create."""

    filename: str
    file_type: str
    title: str
    author: str | None = None
    word_count: int
    char_count: int
    size_kb: float
    chapters: list[dict]
