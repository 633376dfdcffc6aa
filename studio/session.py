"""
Composition root.

A ``StudioSession`` wires one user's event bus, auth state, document store,
services, preferences and router. The HTTP layer keeps one session per
signed-in user in a ``SessionRegistry``.
"""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import sessionmaker

from studio.core.config import settings
from studio.core.events import EventBus
from studio.core.router import ContentRegion, FragmentLoader, Route, Router
from studio.db.base import SessionLocal
from studio.services.auth import AuthState, CurrentUser
from studio.services.book_export import BookExportService
from studio.services.books import BookService
from studio.services.chapters import ChapterService
from studio.services.characters import CharacterService
from studio.services.importer import BookImporter
from studio.services.preferences import PreferencesStore
from studio.services.storage import DocumentStore, SQLDocumentStore
from studio.services.terms import TermService
from studio.services.timeline import TimelineService
from studio.views.bookshelf import BookshelfView
from studio.views.characters import CharactersView
from studio.views.editor import EditorView
from studio.views.statistics import StatisticsView
from studio.views.terms import TermsView
from studio.views.timeline import TimelineView

logger = logging.getLogger(__name__)


class StudioSession:
    """Everything one signed-in user works with."""

    def __init__(
        self,
        store: Optional[DocumentStore] = None,
        preferences: Optional[PreferencesStore] = None,
        loader: Optional[FragmentLoader] = None,
        session_factory: Optional[sessionmaker] = None,
        bus: Optional[EventBus] = None,
    ):
        self.bus = bus or EventBus()
        self.auth = AuthState(self.bus)
        self.auth.on_change(self._on_auth_changed)
        self.store = store or SQLDocumentStore(session_factory or SessionLocal, self.auth.require_user_id)
        self.preferences = preferences or PreferencesStore()

        # Services
        self.books = BookService(self.store, self.bus)
        self.chapters = ChapterService(self.store, self.bus, self.books)
        self.characters = CharacterService(self.store, self.bus, self.books)
        self.terms = TermService(self.store, self.bus, self.books)
        self.timeline = TimelineService(self.store, self.bus, self.books)

        self.books.register_dependent(self.chapters, chapters=True)
        self.books.register_dependent(self.characters)
        self.books.register_dependent(self.terms)
        self.books.register_dependent(self.timeline)

        self.characters.register_backref(self.chapters, "character_ids")
        self.characters.register_backref(self.timeline, "character_ids")
        self.terms.register_backref(self.chapters, "term_ids")
        self.timeline.register_backref(self.chapters, "event_ids")

        self.importer = BookImporter(self.books, self.chapters)
        self.exporter = BookExportService()

        self.content = ContentRegion()
        self.router = Router(self.bus, self.routes(), loader=loader, content=self.content)

    def _on_auth_changed(self, user: Optional[CurrentUser]) -> None:
        if user is None:
            self.books.current_book = None
            logger.info("Studio session signed out")
        else:
            logger.info("Studio session signed in as %s", user.email)

    def routes(self) -> list[Route]:
        return [
            Route("editor", "Editor", "📑", lambda: EditorView(self)),
            Route("characters", "Characters", "🎭", lambda: CharactersView(self)),
            Route("terms", "Terms", "📖", lambda: TermsView(self)),
            Route("timeline", "Timeline", "⌛", lambda: TimelineView(self)),
            Route("statistics", "Statistics", "📊", lambda: StatisticsView(self)),
            Route("bookshelf", "Bookshelf", "📚", lambda: BookshelfView(self)),
        ]

    @property
    def user(self) -> Optional[CurrentUser]:
        return self.auth.current_user

    @property
    def current_view(self):
        route = self.router.current_route
        return self.router.get_module(route) if route else None

    async def view(self, route: str):
        """The module for ``route``, navigating there first if needed."""
        if self.router.current_route != route:
            await self.router.navigate_to(route)
        return self.router.get_module(route)

    async def close(self) -> None:
        await self.router.shutdown()
        await self.bus.drain()
        self.bus.clear()


def preferences_path(user_id: str) -> Path:
    return Path(settings.PREFERENCES_DIR) / f"{user_id}.json"


class SessionRegistry:
    """One ``StudioSession`` per user id, created on first use."""

    def __init__(self, session_factory: Optional[sessionmaker] = None, loader: Optional[FragmentLoader] = None):
        self.session_factory = session_factory
        self.loader = loader
        self._sessions: dict[str, StudioSession] = {}

    async def get(self, user: CurrentUser) -> StudioSession:
        session = self._sessions.get(user.id)
        if session is None:
            session = StudioSession(
                preferences=PreferencesStore(preferences_path(user.id)),
                loader=self.loader,
                session_factory=self.session_factory,
            )
            session.auth.sign_in_as(user)
            self._sessions[user.id] = session
            # The default route restores the last open book
            await session.router.start()
            logger.info("Opened studio session for %s", user.email)
        return session

    async def close(self, user_id: str) -> None:
        session = self._sessions.pop(user_id, None)
        if session is not None:
            # Pending edits are saved while the user is still signed in
            await session.close()
            session.auth.logout()

    async def close_all(self) -> None:
        for user_id in list(self._sessions):
            await self.close(user_id)

    def __len__(self) -> int:
        return len(self._sessions)
