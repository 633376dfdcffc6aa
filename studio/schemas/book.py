from pydantic import BaseModel, Field


class BookCreate(BaseModel):
    """Schema for creating a book"""

    title: str = Field(..., max_length=500)
    author: str | None = None
    description: str | None = None
    genres: list[str] | None = None
    status: str | None = None


class BookUpdate(BaseModel):
    """Schema for updating a book. Only the fields sent are changed."""

    title: str | None = Field(default=None, max_length=500)
    author: str | None = None
    description: str | None = None
    genres: list[str] | None = None
    status: str | None = None


class BookStats(BaseModel):
    chapter_count: int
    word_count: int
    status: str
    last_updated: str | None = None
