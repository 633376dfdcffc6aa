"""
Editor view: chapter outline, text editing, auto-save and editor settings.
"""

import logging
from dataclasses import asdict, dataclass, fields, replace
from datetime import datetime, timezone
from typing import Any, Optional

from studio.core.config import settings
from studio.core.errors import NotFoundError, StudioError, ValidationError
from studio.services.autosave import AutoSaver
from studio.services.book_export import ExportedFile
from studio.services.preferences import (
    CURRENT_BOOK_ID,
    CURRENT_CHAPTER_ID,
    EDITOR_SETTINGS,
)
from studio.services.text import ChapterStats, chapter_stats
from studio.services.timeline import DATE_NOT_SET, TimelineService
from studio.views.base import View, esc, options

logger = logging.getLogger(__name__)

THEMES = ("light", "dark", "sepia")
FONTS = ("serif", "sans", "mono")
FONT_FAMILIES = {
    "serif": 'Georgia, "Times New Roman", serif',
    "sans": '"Helvetica Neue", Arial, sans-serif',
    "mono": '"Courier New", Courier, monospace',
}

# Link kind -> chapter field holding the linked ids
LINK_FIELDS = {
    "character": "character_ids",
    "term": "term_ids",
    "timeline": "event_ids",
}

# Fields written back on save
CHAPTER_FIELDS = ("title", "content", "pov", "order", "character_ids", "term_ids", "event_ids")


@dataclass
class EditorSettings:
    """Per-user editor preferences."""
    theme: str = "light"
    font: str = "serif"
    font_size: int = 16
    line_height: float = 1.8
    auto_save: bool = True
    spell_check: bool = True
    typewriter_mode: bool = False
    daily_goal: int = 1000

    @classmethod
    def from_dict(cls, data: dict) -> "EditorSettings":
        known = {f.name for f in fields(cls)}
        try:
            loaded = cls(**{k: v for k, v in (data or {}).items() if k in known})
            loaded.validate()
        except (TypeError, ValueError, ValidationError) as e:
            logger.warning("Ignoring stored editor settings: %s", e)
            return cls()
        return loaded

    def validate(self) -> None:
        if self.theme not in THEMES:
            raise ValidationError(f"Unknown theme: {self.theme}")
        if self.font not in FONTS:
            raise ValidationError(f"Unknown font: {self.font}")
        try:
            font_size = int(self.font_size)
            line_height = float(self.line_height)
            daily_goal = int(self.daily_goal)
        except (TypeError, ValueError):
            raise ValidationError("Font size, line height and daily goal must be numbers")
        if not 10 <= font_size <= 32:
            raise ValidationError("Font size must be between 10 and 32")
        if not 1.0 <= line_height <= 3.0:
            raise ValidationError("Line height must be between 1.0 and 3.0")
        if daily_goal < 1:
            raise ValidationError("Daily goal must be a positive number")


class EditorView(View):
    name = "editor"

    def __init__(self, session):
        super().__init__(session)
        self.book: Optional[dict] = None
        self.chapters: list[dict] = []
        # Current chapter including edits not saved yet
        self.chapter: Optional[dict] = None
        self.dirty = False
        self.save_status = "saved"
        self.last_saved: Optional[datetime] = None
        self.stats: ChapterStats = chapter_stats("")
        self.characters: list[dict] = []
        self.terms: list[dict] = []
        self.events: list[dict] = []
        self.settings = EditorSettings.from_dict(session.preferences.get(EDITOR_SETTINGS))
        self.autosaver = AutoSaver(
            self._auto_save,
            debounce=settings.AUTOSAVE_DEBOUNCE_SECONDS,
            interval=settings.AUTOSAVE_INTERVAL_SECONDS,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def subscribe(self) -> None:
        self.on("book:selected", self._on_book_selected)
        self.on("book:deleted", self._on_book_deleted)
        self.on("chapter:created", self._on_chapters_changed)
        self.on("chapter:deleted", self._on_chapters_changed)
        self.on("character:selected", self.insert_character)
        self.on("term:selected", self.insert_term)
        self.on("timeline:selected", self.insert_timeline_event)

    async def load(self) -> None:
        prefs = self.session.preferences
        book_id = (self.current_book or {}).get("id") or prefs.get(CURRENT_BOOK_ID)
        try:
            if book_id and (self.book is None or self.book["id"] != book_id):
                await self.select_book(book_id)
            elif self.book is not None:
                await self._load_lists()

            if self.book is not None and self.chapter is None:
                chapter_id = prefs.get(CURRENT_CHAPTER_ID)
                if chapter_id:
                    await self.select_chapter(chapter_id)
        except StudioError as e:
            self.fail("Could not load the editor", e)

        if self.settings.auto_save:
            self.autosaver.start_interval()

    async def flush(self) -> None:
        """Save pending edits now."""
        self.autosaver.cancel_pending()
        if self.dirty and self.chapter is not None:
            await self.save()

    async def suspend(self) -> None:
        await self.flush()
        self.autosaver.stop()
        super().suspend()

    async def destroy(self) -> None:
        await self.flush()
        self.autosaver.stop()
        super().destroy()

    # ------------------------------------------------------------------
    # Book and chapter selection
    # ------------------------------------------------------------------

    def _on_book_selected(self, book: Optional[dict]):
        if book:
            return self.select_book(book["id"])
        return None

    def _on_book_deleted(self, payload: dict) -> None:
        if self.book and payload.get("id") == self.book["id"]:
            self.autosaver.cancel_pending()
            self._reset_book()
            self.session.preferences.remove(CURRENT_BOOK_ID)
            self.session.preferences.remove(CURRENT_CHAPTER_ID)
            self.render()

    def _on_chapters_changed(self, payload: dict):
        if self.book and payload.get("book_id") == self.book["id"]:
            return self.refresh()
        return None

    def _reset_book(self) -> None:
        self.book = None
        self.chapters = []
        self._reset_chapter()

    def _reset_chapter(self) -> None:
        self.chapter = None
        self.dirty = False
        self.save_status = "saved"
        self.stats = chapter_stats("")

    async def _load_lists(self) -> None:
        book_id = self.book["id"]
        self.chapters = await self.session.chapters.get_all(book_id)
        self.characters = await self.session.characters.get_all(book_id)
        self.terms = await self.session.terms.get_all(book_id)
        self.events = await self.session.timeline.get_all(book_id)

    async def select_book(self, book_id: str) -> Optional[dict]:
        if self.book is not None and self.book["id"] == book_id:
            return self.book

        await self.flush()
        prefs = self.session.preferences
        try:
            book = await self.session.books.get(book_id)
        except NotFoundError:
            logger.warning("Stored book %s no longer exists", book_id)
            prefs.remove(CURRENT_BOOK_ID)
            prefs.remove(CURRENT_CHAPTER_ID)
            self.notify("warning", "The selected book no longer exists")
            return None

        self.book = book
        self._reset_chapter()
        prefs.set(CURRENT_BOOK_ID, book_id)
        await self._load_lists()

        current = self.session.books.current_book
        if current is None or current["id"] != book_id:
            self.session.books.select(book)

        self.render()
        return book

    async def select_chapter(self, chapter_id: str) -> Optional[dict]:
        if self.book is None:
            self.notify("warning", "Select a book first")
            return None
        if self.chapter is not None and self.chapter["id"] == chapter_id:
            return self.chapter

        # Switching chapters saves the one being left
        await self.flush()
        try:
            chapter = await self.session.chapters.get(self.book["id"], chapter_id)
        except NotFoundError:
            self.session.preferences.remove(CURRENT_CHAPTER_ID)
            self.notify("warning", "Chapter not found")
            return None

        self.chapter = chapter
        self.dirty = False
        self.save_status = "saved"
        self.stats = chapter_stats(chapter.get("content") or "")
        self.session.preferences.set(CURRENT_CHAPTER_ID, chapter_id)
        self.render()
        return chapter

    async def create_chapter(self, title: str, order: Optional[int] = None, pov: str = "") -> Optional[dict]:
        title = (title or "").strip()
        if not title:
            self.notify("warning", "Enter a chapter title")
            return None
        if self.book is None:
            self.notify("warning", "Select a book first")
            return None

        book_id = self.book["id"]
        try:
            if order is None:
                order = await self.session.chapters.next_order(book_id)
            chapter = await self.session.chapters.create(book_id, {
                "title": title,
                "content": "<p></p>",
                "order": order,
                "pov": (pov or "").strip(),
            })
            self.chapters = await self.session.chapters.get_all(book_id)
        except StudioError as e:
            self.fail("Could not create chapter", e)
            return None

        await self.select_chapter(chapter["id"])
        self.notify("success", "Chapter created")
        return chapter

    async def delete_chapter(self, chapter_id: str) -> bool:
        if self.book is None:
            return False
        book_id = self.book["id"]
        try:
            await self.session.chapters.delete(book_id, chapter_id)
            self.chapters = await self.session.chapters.get_all(book_id)
        except StudioError as e:
            self.fail("Could not delete chapter", e)
            return False

        if self.chapter is not None and self.chapter["id"] == chapter_id:
            self.autosaver.cancel_pending()
            self._reset_chapter()
            self.session.preferences.remove(CURRENT_CHAPTER_ID)

        self.notify("success", "Chapter deleted")
        self.render()
        return True

    # ------------------------------------------------------------------
    # Editing and saving
    # ------------------------------------------------------------------

    def edit(
        self,
        content: Optional[str] = None,
        title: Optional[str] = None,
        pov: Optional[str] = None,
        order: Optional[int] = None,
    ) -> None:
        """Apply local edits and restart the auto-save debounce."""
        if self.chapter is None:
            return
        changes = {
            k: v
            for k, v in {"content": content, "title": title, "pov": pov, "order": order}.items()
            if v is not None
        }
        if not changes:
            return
        self.chapter.update(changes)
        self.dirty = True
        self.save_status = "unsaved"
        if "content" in changes:
            self.stats = chapter_stats(content)
        if self.settings.auto_save:
            self.autosaver.schedule()
        self.render()

    def change_text(self, content: str) -> None:
        self.edit(content=content)

    async def _auto_save(self) -> None:
        if self.dirty:
            await self.save()

    async def save(self) -> Optional[dict]:
        """Write the current chapter. Cancels a pending debounced save."""
        self.autosaver.cancel_pending()
        if self.chapter is None or self.book is None:
            return None

        payload = {k: self.chapter[k] for k in CHAPTER_FIELDS if k in self.chapter}
        chapter_id = self.chapter["id"]
        try:
            saved = await self.session.chapters.update(self.book["id"], chapter_id, payload)
        except StudioError as e:
            self.save_status = "error"
            self.fail("Could not save chapter", e)
            self.render()
            return None

        # Edits made while the save was in flight stay pending
        current = self.chapter
        if current is not None and current["id"] == chapter_id:
            if all(current.get(k) == v for k, v in payload.items()):
                self.chapter = saved
                self.dirty = False
                self.save_status = "saved"
            else:
                current["word_count"] = saved.get("word_count", 0)

        self.chapters = [saved if c["id"] == chapter_id else c for c in self.chapters]
        self.chapters.sort(key=lambda c: c.get("order") or 0)
        self.last_saved = datetime.now(timezone.utc)
        logger.debug("Chapter %s saved", chapter_id)
        self.render()
        return saved

    # ------------------------------------------------------------------
    # References and links
    # ------------------------------------------------------------------

    async def _insert(self, markup: str, kind: str, target_id: Optional[str]) -> bool:
        if self.chapter is None:
            self.notify("warning", "Select a chapter first")
            return False

        content = (self.chapter.get("content") or "").rstrip()
        if content.endswith("</p>"):
            cut = content.rfind("</p>")
            content = content[:cut] + markup + content[cut:]
        else:
            content += markup

        field = LINK_FIELDS[kind]
        linked = list(self.chapter.get(field) or [])
        if target_id and target_id not in linked:
            linked.append(target_id)
        self.chapter[field] = linked

        self.edit(content=content)
        if not self.active:
            # No timers run while another tab is shown
            await self.save()
        return True

    async def insert_character(self, character: dict) -> bool:
        markup = f'<span class="character-mention">{esc(character.get("name") or "")}</span>&nbsp;'
        return await self._insert(markup, "character", character.get("id"))

    async def insert_term(self, term: dict) -> bool:
        markup = f'<span class="term-mention">{esc(term.get("name") or "")}</span>&nbsp;'
        return await self._insert(markup, "term", term.get("id"))

    async def insert_timeline_event(self, event: dict) -> bool:
        date = TimelineService.format_date(event)
        if date == DATE_NOT_SET:
            date = "Date unknown"
        markup = (
            f'<span class="timeline-mention" title="{esc(date)}">'
            f'{esc(event.get("title") or "")}</span>&nbsp;'
        )
        return await self._insert(markup, "timeline", event.get("id"))

    async def link(self, kind: str, target_id: str) -> bool:
        return await self._set_link(kind, target_id, linked=True)

    async def unlink(self, kind: str, target_id: str) -> bool:
        return await self._set_link(kind, target_id, linked=False)

    async def _set_link(self, kind: str, target_id: str, linked: bool) -> bool:
        if kind not in LINK_FIELDS:
            self.notify("error", f"Unknown link type: {kind}")
            return False
        if self.chapter is None:
            self.notify("warning", "Select a chapter first")
            return False
        field = LINK_FIELDS[kind]
        ids = [i for i in self.chapter.get(field) or [] if i != target_id]
        if linked:
            ids.append(target_id)
        self.chapter[field] = ids
        self.dirty = True
        return await self.save() is not None

    # ------------------------------------------------------------------
    # Settings, goal, export
    # ------------------------------------------------------------------

    def update_settings(self, **changes: Any) -> Optional[EditorSettings]:
        known = {f.name for f in fields(EditorSettings)}
        unknown = sorted(set(changes) - known)
        if unknown:
            self.notify("error", f"Unknown settings: {', '.join(unknown)}")
            return None
        candidate = replace(self.settings, **changes)
        try:
            candidate.validate()
        except ValidationError as e:
            self.notify("warning", str(e))
            return None

        self.settings = candidate
        self.session.preferences.set(EDITOR_SETTINGS, asdict(candidate))
        if candidate.auto_save:
            if self.active:
                self.autosaver.start_interval()
        else:
            self.autosaver.stop()
        self.notify("success", "Settings saved")
        self.render()
        return candidate

    @property
    def goal_progress(self) -> int:
        """Percent of the daily goal reached by the current chapter, capped at 100."""
        return min(int(self.stats.words / self.settings.daily_goal * 100), 100)

    def export_chapter(self, format: str) -> Optional[ExportedFile]:
        if self.chapter is None:
            self.notify("warning", "Select a chapter to export")
            return None
        try:
            exported = self.session.exporter.export_chapter(self.chapter, format)
        except (StudioError, ValueError) as e:
            self.fail("Export failed", e)
            return None
        self.notify("success", f"Chapter exported as {str(format).upper()}")
        return exported

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _outline(self) -> str:
        if not self.chapters:
            return '<li class="empty">No chapters yet</li>'
        current_id = self.chapter["id"] if self.chapter else None
        items = []
        for c in self.chapters:
            active = " active" if c["id"] == current_id else ""
            items.append(
                f'<li class="chapter-item{active}" data-id="{esc(c["id"])}">'
                f'<span class="outline-title">{esc(str(c.get("order", "")))}. {esc(c.get("title", ""))}</span>'
                f'<span class="outline-stats">{c.get("word_count") or 0} words</span></li>'
            )
        return "".join(items)

    def _link_list(self, docs: list[dict], kind: str, label: str) -> str:
        linked = set((self.chapter or {}).get(LINK_FIELDS[kind]) or [])
        items = []
        for d in docs:
            css = ' class="linked"' if d["id"] in linked else ""
            items.append(
                f'<li data-kind="{kind}" data-id="{esc(d["id"])}"{css}>{esc(d.get(label) or "")}</li>'
            )
        return "".join(items)

    def context(self) -> dict[str, Any]:
        chapter = self.chapter or {}
        s = self.settings
        return {
            "book_title": esc(self.book["title"]) if self.book else "No book selected",
            "chapter_list": self._outline(),
            "chapter_id": esc(chapter.get("id", "")),
            "chapter_title": esc(chapter.get("title", "")),
            "chapter_order": esc(str(chapter.get("order", ""))),
            "chapter_pov": esc(chapter.get("pov", "")),
            # Rich text is the author's own markup
            "chapter_content": chapter.get("content") or "<p>Select a chapter to edit</p>",
            "word_count": self.stats.words,
            "char_count": self.stats.characters,
            "char_count_no_spaces": self.stats.characters_no_spaces,
            "paragraph_count": self.stats.paragraphs,
            "reading_time": f"{self.stats.reading_time} min",
            "save_status": {"saved": "Saved", "unsaved": "Not saved", "error": "Save failed"}[self.save_status],
            "last_saved": self.last_saved.strftime("%H:%M:%S") if self.last_saved else "Never",
            "goal_target": s.daily_goal,
            "goal_progress": self.goal_progress,
            "theme": esc(s.theme),
            "theme_options": options(THEMES, s.theme),
            "font_options": options(FONTS, s.font),
            "font_family": esc(FONT_FAMILIES[s.font]),
            "font_size": s.font_size,
            "line_height": s.line_height,
            "auto_save_checked": "checked" if s.auto_save else "",
            "spell_check": "true" if s.spell_check else "false",
            "spell_check_checked": "checked" if s.spell_check else "",
            "typewriter_class": "typewriter-mode" if s.typewriter_mode else "",
            "typewriter_checked": "checked" if s.typewriter_mode else "",
            "character_links": self._link_list(self.characters, "character", "name"),
            "term_links": self._link_list(self.terms, "term", "name"),
            "timeline_links": self._link_list(self.events, "timeline", "title"),
        }
