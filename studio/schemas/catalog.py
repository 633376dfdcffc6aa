"""Schemas for characters, glossary terms and timeline events."""

from pydantic import BaseModel


class CharacterCreate(BaseModel):
    name: str
    role: str | None = None
    age: str | None = None
    occupation: str | None = None
    description: str | None = None
    appearance: str | None = None
    personality: str | None = None
    goals: str | None = None
    backstory: str | None = None
    relationships: list[dict] | None = None


class CharacterUpdate(CharacterCreate):
    name: str | None = None


class TermCreate(BaseModel):
    name: str
    category: str | None = None
    description: str | None = None
    usage: str | None = None


class TermUpdate(TermCreate):
    name: str | None = None


class EventCreate(BaseModel):
    title: str
    type: str | None = None
    # Partial dates: any part may be missing
    date_year: str | int | None = None
    date_month: str | int | None = None
    date_day: str | int | None = None
    description: str | None = None
    location: str | None = None
    character_ids: list[str] | None = None
    order: int | None = None


class EventUpdate(EventCreate):
    title: str | None = None
