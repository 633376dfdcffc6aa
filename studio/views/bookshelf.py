"""
Bookshelf view: the user's books, book details and file import.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from studio.core.errors import StudioError, UnsupportedFileType
from studio.services.document_processor import ImportedDocument
from studio.views.base import View, esc

logger = logging.getLogger(__name__)

GENRE_LABELS = {
    "fantasy": "Fantasy",
    "scifi": "Science fiction",
    "mystery": "Mystery",
    "romance": "Romance",
    "thriller": "Thriller",
    "horror": "Horror",
    "adventure": "Adventure",
    "historical": "Historical fiction",
    "drama": "Drama",
    "comedy": "Comedy",
    "other": "Other",
}

RECENTLY = "Recently"


def time_ago(value: Optional[str], now: Optional[datetime] = None) -> str:
    """Coarse "last changed" label for an ISO timestamp."""
    if not value:
        return RECENTLY
    try:
        moment = datetime.fromisoformat(str(value))
    except ValueError:
        return RECENTLY
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    days = abs((now - moment).days)

    if days == 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 30:
        weeks = days // 7
        return f"{weeks} week{'s' if weeks > 1 else ''} ago"
    months = days // 30
    return f"{months} month{'s' if months > 1 else ''} ago"


def genre_text(genres: Optional[list[str]]) -> str:
    return ", ".join(GENRE_LABELS.get(g, g) for g in genres or []) or "-"


class BookshelfView(View):
    name = "bookshelf"

    def __init__(self, session):
        super().__init__(session)
        self.books: list[dict] = []
        self.details_id: Optional[str] = None
        # Import dialog state
        self.import_preview: Optional[ImportedDocument] = None
        self.import_progress = 0
        self.import_message = ""
        self.importing = False

    def subscribe(self) -> None:
        self.on("book:created", lambda _book: self.refresh())
        self.on("book:updated", lambda _book: self.refresh())
        self.on("book:deleted", lambda _payload: self.refresh())
        # Derived chapter and word counts change with the chapters
        self.on("chapter:created", lambda _chapter: self.refresh())
        self.on("chapter:deleted", lambda _payload: self.refresh())

    async def load(self) -> None:
        self.books = await self.session.books.get_all()

    @property
    def totals(self) -> dict[str, int]:
        return {
            "books": len(self.books),
            "chapters": sum(b.get("chapter_count") or 0 for b in self.books),
            "words": sum(b.get("word_count") or 0 for b in self.books),
        }

    def find(self, book_id: str) -> Optional[dict]:
        return next((b for b in self.books if b["id"] == book_id), None)

    def show_details(self, book_id: Optional[str]) -> Optional[dict]:
        self.details_id = book_id
        self.render()
        return self.find(book_id) if book_id else None

    # ------------------------------------------------------------------
    # Book management
    # ------------------------------------------------------------------

    def _book_data(self, data: dict) -> Optional[dict]:
        data = dict(data)
        if "title" in data:
            data["title"] = (data["title"] or "").strip()
            if not data["title"]:
                self.notify("warning", "Enter a book title")
                return None
        if "genres" in data and not data["genres"]:
            data["genres"] = ["other"]
        return data

    async def create_book(self, data: dict) -> Optional[dict]:
        if "title" not in data:
            self.notify("warning", "Enter a book title")
            return None
        data = self._book_data(data)
        if data is None:
            return None
        try:
            book = await self.session.books.create(data)
            self.books = await self.session.books.get_all()
        except StudioError as e:
            self.fail("Could not create book", e)
            return None
        self.notify("success", f'Book "{book["title"]}" created')
        self.render()
        return book

    async def update_book(self, book_id: str, data: dict) -> Optional[dict]:
        data = self._book_data(data)
        if data is None:
            return None
        try:
            book = await self.session.books.update(book_id, data)
            self.books = await self.session.books.get_all()
        except StudioError as e:
            self.fail("Could not update book", e)
            return None
        self.notify("success", "Book updated")
        self.render()
        return book

    async def delete_book(self, book_id: str) -> bool:
        """Delete a book with all of its chapters, characters, terms and events."""
        book = self.find(book_id)
        try:
            await self.session.books.delete(book_id)
            self.books = await self.session.books.get_all()
        except StudioError as e:
            self.fail("Could not delete book", e)
            return False
        if self.details_id == book_id:
            self.details_id = None
        title = book["title"] if book else book_id
        self.notify("success", f'Book "{title}" deleted')
        self.render()
        return True

    async def select_book(self, book_id: str) -> Optional[dict]:
        book = self.find(book_id)
        if book is None:
            try:
                book = await self.session.books.get(book_id)
            except StudioError as e:
                self.fail("Could not open book", e)
                return None
        self.session.books.select(book)
        self.notify("success", f"Opened: {book['title']}")
        return book

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def reset_import(self) -> None:
        self.import_preview = None
        self.import_progress = 0
        self.import_message = ""
        self.importing = False

    def preview_import(self, data: bytes, filename: str) -> Optional[ImportedDocument]:
        """Parse an upload and keep it for confirmation."""
        self.reset_import()
        try:
            self.import_preview = self.session.importer.preview(data, filename)
        except UnsupportedFileType as e:
            self.notify("error", str(e))
            self.render()
            return None
        except StudioError as e:
            self.fail("Could not read file", e)
            self.render()
            return None
        self.render()
        return self.import_preview

    def _report(self, percent: int, message: str) -> None:
        self.import_progress = percent
        self.import_message = message

    async def confirm_import(
        self,
        title: Optional[str] = None,
        author: Optional[str] = None,
        genres: Optional[list[str]] = None,
    ) -> Optional[dict]:
        if self.import_preview is None:
            self.notify("error", "No file loaded")
            return None
        if self.importing:
            return None
        if title is not None and not title.strip():
            self.notify("warning", "Enter a book title")
            return None

        self.importing = True
        try:
            book = await self.session.importer.import_document(
                self.import_preview,
                title=title,
                author=author,
                genres=genres or ["other"],
                progress=self._report,
            )
            self.books = await self.session.books.get_all()
        except StudioError as e:
            self.importing = False
            self.fail("Import failed", e)
            return None

        self.reset_import()
        self.notify("success", f'Imported "{book["title"]}" with {book["chapter_count"]} chapters')
        self.render()
        return book

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _book_item(self, book: dict) -> str:
        count = book.get("chapter_count") or 0
        current = self.current_book
        active = " current" if current and current["id"] == book["id"] else ""
        return (
            f'<div class="book-item{active}" data-book-id="{esc(book["id"])}">'
            '<div class="book-spine">'
            f'<strong>{esc(book.get("title", ""))}</strong>'
            f'<div class="book-meta">{count} chapter{"" if count == 1 else "s"}'
            f" &bull; Changed {esc(time_ago(book.get('updated_at')).lower())}</div>"
            "</div></div>"
        )

    def _details(self) -> str:
        book = self.find(self.details_id) if self.details_id else None
        if book is None:
            return ""
        return (
            '<div class="book-details">'
            f'<h2>{esc(book.get("title", ""))}</h2>'
            f'<p class="details-author">{esc(book.get("author") or "")}</p>'
            f'<p class="details-genres">{esc(genre_text(book.get("genres")))}</p>'
            f'<p class="details-description">{esc(book.get("description") or "")}</p>'
            f'<p class="details-stats">{book.get("chapter_count") or 0} chapters, '
            f'{book.get("word_count") or 0:,} words</p>'
            "</div>"
        )

    def _import_panel(self) -> str:
        doc = self.import_preview
        if doc is None:
            return ""
        return (
            '<div class="import-preview">'
            f'<div class="import-file">{esc(doc.filename)} ({doc.size_kb} KB)</div>'
            f'<div class="import-title">{esc(doc.suggested_title)}</div>'
            f'<div class="import-author">{esc(doc.author or "")}</div>'
            f'<div class="import-stats">{doc.word_count:,} words, {doc.char_count:,} characters, '
            f"{len(doc.chapters)} chapters</div>"
            f'<div class="import-progress" style="width: {self.import_progress}%">{esc(self.import_message)}</div>'
            "</div>"
        )

    def context(self) -> dict[str, Any]:
        totals = self.totals
        return {
            "books_count": totals["books"],
            "chapters_count": totals["chapters"],
            "words_count": f"{totals['words']:,}",
            "book_list": "".join(self._book_item(b) for b in self.books)
            or '<div class="empty-state">No books yet. Create one or import a file.</div>',
            "book_details": self._details(),
            "import_panel": self._import_panel(),
            "genre_options": "".join(
                f'<label class="genre-option"><input type="checkbox" value="{g}"> {esc(label)}</label>'
                for g, label in GENRE_LABELS.items()
            ),
        }
