"""
Shared behaviour of the book-scoped list views (characters, terms, timeline).
"""

import logging
from typing import Any, Optional

from studio.core.errors import StudioError
from studio.services.base import EntityService, filter_by
from studio.views.base import View, esc

logger = logging.getLogger(__name__)


class CatalogView(View):
    """
    A filterable, searchable list of one entity type of the current book.

    Subclasses name the session service, the field the filter applies to and
    the label field that must not be blank.
    """

    service_name: str = ""
    label_field: str = "name"
    filter_field: str = ""
    noun: str = "item"

    def __init__(self, session):
        super().__init__(session)
        self.items: list[dict] = []
        self.filter_value = "all"
        self.query = ""
        self.selected_id: Optional[str] = None

    @property
    def service(self) -> EntityService:
        return getattr(self.session, self.service_name)

    @property
    def selected_topic(self) -> str:
        return f"{self.service.entity}:selected"

    def subscribe(self) -> None:
        self.on("book:selected", lambda _book: self.refresh())
        self.on("book:deleted", self._on_book_deleted)

    def _on_book_deleted(self, payload: dict) -> None:
        if self.current_book is not None and payload.get("id") != self.current_book["id"]:
            return
        self.items = []
        self.selected_id = None
        self.render()

    async def load(self) -> None:
        book = self.current_book
        if book is None:
            self.items = []
            return
        self.items = await self.service.get_all(book["id"])
        if self.selected_id and self.find(self.selected_id) is None:
            self.selected_id = None

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def find(self, item_id: str) -> Optional[dict]:
        return next((i for i in self.items if i["id"] == item_id), None)

    @property
    def selected(self) -> Optional[dict]:
        return self.find(self.selected_id) if self.selected_id else None

    def apply_filter(self, items: list[dict]) -> list[dict]:
        return filter_by(items, self.filter_field, self.filter_value)

    def apply_search(self, items: list[dict]) -> list[dict]:
        return items

    @property
    def visible(self) -> list[dict]:
        return self.apply_search(self.apply_filter(self.items))

    def set_filter(self, value: Optional[str]) -> list[dict]:
        self.filter_value = value or "all"
        self.render()
        return self.visible

    def search(self, query: Optional[str]) -> list[dict]:
        self.query = (query or "").strip()
        self.render()
        return self.visible

    def select(self, item_id: Optional[str]) -> Optional[dict]:
        self.selected_id = item_id
        self.render()
        return self.selected

    @property
    def stats(self) -> dict[str, int]:
        return self.service.stats(self.items)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def _check(self, data: dict) -> Optional[dict]:
        """Trimmed copy of ``data``, or None after a warning."""
        if self.current_book is None:
            self.notify("warning", "Select a book first")
            return None
        data = dict(data)
        label = data.get(self.label_field)
        if label is not None:
            label = str(label).strip()
            data[self.label_field] = label
        if not label:
            self.notify("warning", f"Enter a {self.label_field}")
            return None
        return data

    async def create(self, data: dict) -> Optional[dict]:
        data = self._check(data)
        if data is None:
            return None
        try:
            item = await self.service.create(self.current_book["id"], data)
        except StudioError as e:
            self.fail(f"Could not create {self.noun}", e)
            return None
        self.selected_id = item["id"]
        await self.refresh()
        self.notify("success", f"{self.noun.capitalize()} created")
        return item

    async def update(self, item_id: str, data: dict) -> Optional[dict]:
        if self.label_field in data:
            data = self._check(data)
            if data is None:
                return None
        elif self.current_book is None:
            self.notify("warning", "Select a book first")
            return None
        try:
            item = await self.service.update(self.current_book["id"], item_id, data)
        except StudioError as e:
            self.fail(f"Could not update {self.noun}", e)
            return None
        await self.refresh()
        self.notify("success", f"{self.noun.capitalize()} updated")
        return item

    async def delete(self, item_id: str) -> bool:
        if self.current_book is None:
            return False
        try:
            await self.service.delete(self.current_book["id"], item_id)
        except StudioError as e:
            self.fail(f"Could not delete {self.noun}", e)
            return False
        if self.selected_id == item_id:
            self.selected_id = None
        await self.refresh()
        self.notify("success", f"{self.noun.capitalize()} deleted")
        return True

    def send_to_editor(self, item_id: str) -> bool:
        """Hand the item to the editor, which inserts a reference to it."""
        item = self.find(item_id)
        if item is None:
            self.notify("warning", f"{self.noun.capitalize()} not found")
            return False
        logger.debug("Sending %s %s to the editor", self.noun, item_id)
        self.bus.publish(self.selected_topic, item)
        self.notify("info", f"{item.get(self.label_field)} sent to the editor")
        return True

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------

    def stats_markup(self, labels: dict[str, str]) -> str:
        stats = self.stats
        return "".join(
            f'<div class="stat"><span class="stat-value">{stats.get(key, 0)}</span>'
            f'<span class="stat-label">{esc(label)}</span></div>'
            for key, label in labels.items()
        )

    def empty_markup(self) -> str:
        if self.current_book is None:
            return '<div class="empty-state">Select a book on the bookshelf first</div>'
        if self.items:
            return '<div class="empty-state">Nothing matches the current filter</div>'
        return f'<div class="empty-state">No {esc(self.noun)}s yet</div>'

    def base_context(self) -> dict[str, Any]:
        return {
            "book_title": esc(self.current_book["title"]) if self.current_book else "No book selected",
            "search_query": esc(self.query),
            "total": len(self.items),
            "shown": len(self.visible),
        }
