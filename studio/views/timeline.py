"""
Timeline view: story events in manual or chronological order.
"""

import logging
from typing import Any, Optional

from studio.core.errors import StudioError
from studio.services.timeline import EVENT_TYPES, TimelineService
from studio.views.base import esc, options
from studio.views.catalog import CatalogView

logger = logging.getLogger(__name__)

TYPE_LABELS = {
    "all": "All events",
    "plot": "Plot",
    "historical": "Historical",
    "personal": "Personal",
}
SORT_MODES = ("order", "date")


class TimelineView(CatalogView):
    name = "timeline"
    service_name = "timeline"
    label_field = "title"
    filter_field = "type"
    noun = "event"

    def __init__(self, session):
        super().__init__(session)
        self.sort_mode = "order"
        self.characters: list[dict] = []

    async def load(self) -> None:
        await super().load()
        book = self.current_book
        self.characters = await self.session.characters.get_all(book["id"]) if book else []

    def apply_filter(self, items: list[dict]) -> list[dict]:
        return TimelineService.filter_by_type(items, self.filter_value)

    def apply_search(self, items: list[dict]) -> list[dict]:
        found = TimelineService.search(items, self.query)
        if self.sort_mode == "date":
            return TimelineService.sort_by_date(found)
        return found

    def set_sort(self, mode: str) -> list[dict]:
        if mode not in SORT_MODES:
            self.notify("warning", f"Unknown sort mode: {mode}")
            return self.visible
        self.sort_mode = mode
        self.render()
        return self.visible

    def sort_by_date(self) -> list[dict]:
        return self.set_sort("date")

    async def create(self, data: dict) -> Optional[dict]:
        data = dict(data)
        data.setdefault("order", len(self.items))
        return await super().create(data)

    async def move(self, event_id: str, offset: int) -> bool:
        """Shift an event ``offset`` places in the manual order."""
        ids = [e["id"] for e in self.items]
        if event_id not in ids or self.current_book is None:
            return False
        index = ids.index(event_id)
        target = max(0, min(len(ids) - 1, index + offset))
        if target == index:
            return False
        ids.insert(target, ids.pop(index))
        try:
            await self.service.reorder(self.current_book["id"], ids)
        except StudioError as e:
            self.fail("Could not reorder events", e)
            return False
        logger.debug("Moved event %s to position %d", event_id, target)
        await self.refresh()
        return True

    async def link_character(self, event_id: str, character_id: str) -> Optional[dict]:
        if self.current_book is None:
            return None
        try:
            event = await self.service.link(self.current_book["id"], event_id, "character_ids", character_id)
        except StudioError as e:
            self.fail("Could not link character", e)
            return None
        await self.refresh()
        return event

    async def unlink_character(self, event_id: str, character_id: str) -> Optional[dict]:
        event = self.find(event_id)
        if event is None or self.current_book is None:
            return None
        remaining = [i for i in event.get("character_ids") or [] if i != character_id]
        return await self.update(event_id, {"character_ids": remaining})

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _character_names(self, event: dict) -> str:
        names = {c["id"]: c.get("name", "") for c in self.characters}
        linked = [names[i] for i in event.get("character_ids") or [] if i in names]
        return ", ".join(esc(n) for n in linked)

    def _item(self, event: dict) -> str:
        kind = event.get("type", "plot")
        active = " selected" if event["id"] == self.selected_id else ""
        location = event.get("location") or ""
        return (
            f'<div class="timeline-item type-{esc(kind)}{active}" data-id="{esc(event["id"])}">'
            f'<div class="timeline-date">{esc(TimelineService.format_date(event))}</div>'
            f'<h3>{esc(event.get("title", ""))}</h3>'
            f'<span class="type-badge">{esc(TYPE_LABELS.get(kind, kind))}</span>'
            + (f'<div class="timeline-location">{esc(location)}</div>' if location else "")
            + f'<div class="timeline-characters">{self._character_names(event)}</div>'
            "</div>"
        )

    def context(self) -> dict[str, Any]:
        return {
            **self.base_context(),
            "type_options": options(("all",) + EVENT_TYPES, self.filter_value, TYPE_LABELS),
            "sort_options": options(SORT_MODES, self.sort_mode, {"order": "Manual order", "date": "By date"}),
            "stats": self.stats_markup({"total": "Total", **{t: TYPE_LABELS[t] for t in EVENT_TYPES}}),
            "timeline_items": "".join(self._item(e) for e in self.visible) or self.empty_markup(),
            "character_options": options(
                [c["id"] for c in self.characters], None, {c["id"]: c.get("name", "") for c in self.characters}
            ),
        }
