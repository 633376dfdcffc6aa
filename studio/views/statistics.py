"""
Statistics view: book totals, per-chapter figures, progress and export.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from studio.core.errors import StudioError
from studio.services.book_export import ExportedFile, ExportFormat, ExportOptions
from studio.services.characters import CHARACTER_ROLES, CharacterService
from studio.services.text import chapter_stats, page_count, reading_time
from studio.views.base import View, esc

logger = logging.getLogger(__name__)


@dataclass
class BookTotals:
    words: int = 0
    chapters: int = 0
    characters: int = 0
    terms: int = 0
    events: int = 0
    pages: int = 0


@dataclass
class ChapterRow:
    order: Any
    title: str
    words: int
    characters: int
    reading_time: int
    pov: str


@dataclass
class ProgressPoint:
    label: str
    words: int
    cumulative: int


class StatisticsView(View):
    name = "statistics"

    def __init__(self, session):
        super().__init__(session)
        self.book: Optional[dict] = None
        self.chapters: list[dict] = []
        self.characters: list[dict] = []
        self.terms: list[dict] = []
        self.events: list[dict] = []

    def subscribe(self) -> None:
        self.on("book:selected", lambda _book: self.refresh())

    async def load(self) -> None:
        self.book = self.current_book
        if self.book is None:
            self.chapters, self.characters, self.terms, self.events = [], [], [], []
            return
        book_id = self.book["id"]
        self.chapters = await self.session.chapters.get_all(book_id)
        self.characters = await self.session.characters.get_all(book_id)
        self.terms = await self.session.terms.get_all(book_id)
        self.events = await self.session.timeline.get_all(book_id)
        logger.debug(
            "Loaded statistics for %s: %d chapters, %d characters, %d terms, %d events",
            book_id, len(self.chapters), len(self.characters), len(self.terms), len(self.events),
        )

    # ------------------------------------------------------------------
    # Figures
    # ------------------------------------------------------------------

    @property
    def ordered_chapters(self) -> list[dict]:
        return sorted(self.chapters, key=lambda c: c.get("order") or 0)

    @property
    def totals(self) -> BookTotals:
        words = sum(c.get("word_count") or 0 for c in self.chapters)
        return BookTotals(
            words=words,
            chapters=len(self.chapters),
            characters=len(self.characters),
            terms=len(self.terms),
            events=len(self.events),
            pages=page_count(words),
        )

    @property
    def chapter_rows(self) -> list[ChapterRow]:
        rows = []
        for chapter in self.ordered_chapters:
            stats = chapter_stats(chapter.get("content") or "")
            words = chapter.get("word_count") or 0
            rows.append(ChapterRow(
                order=chapter.get("order") or "-",
                title=chapter.get("title") or "Untitled",
                words=words,
                characters=stats.characters,
                reading_time=reading_time(words),
                pov=chapter.get("pov") or "-",
            ))
        return rows

    @property
    def progress(self) -> list[ProgressPoint]:
        """Words per chapter and the running total, in reading order."""
        points, total = [], 0
        for index, chapter in enumerate(self.ordered_chapters, 1):
            words = chapter.get("word_count") or 0
            total += words
            points.append(ProgressPoint(chapter.get("title") or f"Chapter {index}", words, total))
        return points

    @property
    def role_distribution(self) -> dict[str, int]:
        stats = CharacterService.stats(self.characters)
        return {role: stats[role] for role in CHARACTER_ROLES}

    def export_book(self, format: str, options: Optional[ExportOptions] = None) -> Optional[ExportedFile]:
        if self.book is None:
            self.notify("warning", "Select a book to export")
            return None
        try:
            exported = self.session.exporter.export_book(self.book, self.chapters, ExportFormat(format), options)
        except (StudioError, ValueError) as e:
            self.fail("Export failed", e)
            return None
        self.notify("success", f"Book exported as {exported.filename}")
        return exported

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _table(self) -> str:
        rows = self.chapter_rows
        if not rows:
            return '<p class="empty-state">No chapters to show</p>'
        body = "".join(
            "<tr>"
            f"<td><strong>{esc(str(r.order))}</strong></td>"
            f"<td>{esc(r.title)}</td>"
            f"<td>{r.words:,}</td>"
            f"<td>{r.characters:,}</td>"
            f"<td>{r.reading_time} min</td>"
            f"<td>{esc(r.pov)}</td>"
            "</tr>"
            for r in rows
        )
        return (
            "<table><thead><tr><th>#</th><th>Chapter</th><th>Words</th>"
            "<th>Characters</th><th>Reading time</th><th>POV</th></tr></thead>"
            f"<tbody>{body}</tbody></table>"
        )

    def _progress_chart(self) -> str:
        points = self.progress
        peak = max((p.cumulative for p in points), default=0) or 1
        return "".join(
            f'<div class="progress-row" title="{esc(p.label)}">'
            f'<span class="progress-label">{esc(p.label)}</span>'
            f'<span class="bar chapter-bar" style="width: {p.words * 100 // peak}%"></span>'
            f'<span class="bar total-bar" style="width: {p.cumulative * 100 // peak}%"></span>'
            f'<span class="progress-value">{p.words:,} / {p.cumulative:,}</span>'
            "</div>"
            for p in points
        )

    def _role_chart(self) -> str:
        distribution = self.role_distribution
        total = sum(distribution.values()) or 1
        return "".join(
            f'<div class="role-row role-{role}"><span class="role-label">{role.capitalize()}</span>'
            f'<span class="bar" style="width: {count * 100 // total}%"></span>'
            f'<span class="role-value">{count}</span></div>'
            for role, count in distribution.items()
        )

    def context(self) -> dict[str, Any]:
        totals = self.totals
        return {
            "book_title": esc(self.book["title"]) if self.book else "No book selected",
            "total_words": f"{totals.words:,}",
            "total_chapters": totals.chapters,
            "total_characters": totals.characters,
            "total_terms": totals.terms,
            "total_events": totals.events,
            "total_pages": totals.pages,
            "chapters_table": self._table(),
            "progress_chart": self._progress_chart(),
            "roles_chart": self._role_chart(),
        }
