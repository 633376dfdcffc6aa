"""
Timeline service.

Event dates are partial: year, month and day are each optional strings or
numbers and are never validated against a calendar.
"""

import logging
from typing import Any, Optional

from studio.services.base import EntityService, count_by, filter_by, search_fields

logger = logging.getLogger(__name__)

EVENT_TYPES = ("plot", "historical", "personal")
DATE_NOT_SET = "Date not set"

# Missing date parts sort after every real value
MISSING_YEAR = 9999
MISSING_MONTH = 99
MISSING_DAY = 99


def _date_part(value: Any, missing: int) -> int:
    if value is None or value == "":
        return missing
    try:
        return int(str(value).strip())
    except ValueError:
        return missing


def date_sort_key(event: dict) -> tuple[int, int, int]:
    """(year, month, day) with absent or non-numeric parts replaced by maximal values."""
    return (
        _date_part(event.get("date_year"), MISSING_YEAR),
        _date_part(event.get("date_month"), MISSING_MONTH),
        _date_part(event.get("date_day"), MISSING_DAY),
    )


class TimelineService(EntityService):
    collection = "timeline"
    entity = "timeline"
    id_prefix = "event"
    required_field = "title"
    defaults = {
        "title": "New event",
        "type": "plot",
        "date_year": "",
        "date_month": "",
        "date_day": "",
        "description": "",
        "location": "",
        "character_ids": [],
        "order": 0,
    }
    choices = {"type": EVENT_TYPES}

    def _sort(self, docs: list[dict]) -> list[dict]:
        return sorted(docs, key=lambda e: e.get("order") or 0)

    async def reorder(self, book_id: str, ordered_ids: list[str], start: int = 0) -> list[dict]:
        """Number events 0..n-1 in the given order."""
        docs = await super().reorder(book_id, ordered_ids, start=start)
        logger.info("Reordered %d timeline events of book %s", len(docs), book_id)
        return docs

    @staticmethod
    def sort_by_date(events: list[dict]) -> list[dict]:
        return sorted(events, key=date_sort_key)

    @staticmethod
    def format_date(event: dict) -> str:
        """Render ``DD.MM.YYYY`` using whichever parts are present."""
        parts = []
        for key, width in (("date_day", 2), ("date_month", 2), ("date_year", 0)):
            value = event.get(key)
            if value is None or value == "":
                continue
            value = str(value).strip()
            parts.append(value.zfill(width) if width and value.isdigit() else value)
        return ".".join(parts) if parts else DATE_NOT_SET

    @staticmethod
    def filter_by_type(events: list[dict], event_type: Optional[str]) -> list[dict]:
        return filter_by(events, "type", event_type)

    @staticmethod
    def search(events: list[dict], query: Optional[str]) -> list[dict]:
        return search_fields(events, query, "title", "description")

    @staticmethod
    def stats(events: list[dict]) -> dict[str, int]:
        return count_by(events, "type", EVENT_TYPES)
