"""
Tab router.

Owns the active tab and the content region. On navigation it fetches the
route's markup fragment, swaps it into the content region and initializes
the route's view module. Modules are created lazily from a registry of
factories on the first visit and reused afterwards; ``init`` runs on every
visit. ``reload`` destroys a module and builds a fresh one.
"""

import asyncio
import html
import inspect
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

import httpx

from studio.core.config import settings
from studio.core.errors import NotFoundError
from studio.core.events import EventBus

logger = logging.getLogger(__name__)

ROUTE_CHANGED = "route:changed"
DEFAULT_PAGES_DIR = Path(__file__).resolve().parent.parent / "pages"


class FragmentNotFound(NotFoundError):
    """Raised when a markup fragment is missing or could not be fetched."""


@dataclass
class Route:
    name: str
    title: str
    icon: str
    factory: Callable[[], Any]


@dataclass
class Tab:
    route: str
    title: str
    icon: str
    active: bool = False


@dataclass
class ContentRegion:
    """The single region whose markup is replaced on navigation."""
    html: str = ""

    def swap(self, markup: str) -> None:
        self.html = markup

    def clear(self) -> None:
        self.html = ""


class FragmentLoader(Protocol):
    async def load(self, name: str) -> str: ...


class DirectoryFragmentLoader:
    """Reads ``<name>.html`` from a directory, the packaged pages by default."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory else DEFAULT_PAGES_DIR

    async def load(self, name: str) -> str:
        path = self.directory / f"{name}.html"
        if not path.is_file():
            raise FragmentNotFound(f"Fragment not found: {path}")
        return await asyncio.to_thread(path.read_text, encoding="utf-8")


class HTTPFragmentLoader:
    """Fetches ``pages/<name>.html`` relative to a base URL."""

    def __init__(self, base_url: str, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self._client = client
        self.timeout = timeout

    async def load(self, name: str) -> str:
        url = f"{self.base_url}/pages/{name}.html"
        if self._client is not None:
            response = await self._client.get(url)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(url)
        if response.status_code != 200:
            raise FragmentNotFound(f"Fragment {url} returned {response.status_code}")
        return response.text


def get_fragment_loader() -> FragmentLoader:
    """Loader selected by configuration."""
    if settings.PAGES_BASE_URL:
        return HTTPFragmentLoader(settings.PAGES_BASE_URL)
    return DirectoryFragmentLoader(Path(settings.PAGES_DIR) if settings.PAGES_DIR else None)


async def _call_optional(obj: Any, method: str) -> None:
    fn = getattr(obj, method, None)
    if not callable(fn):
        return
    result = fn()
    if inspect.isawaitable(result):
        await result


class Router:
    """Route state machine: no route until ``start``, then exactly one active route."""

    def __init__(
        self,
        bus: EventBus,
        routes: list[Route],
        loader: Optional[FragmentLoader] = None,
        content: Optional[ContentRegion] = None,
        default_route: str = settings.DEFAULT_ROUTE,
    ):
        self.bus = bus
        self.loader = loader or get_fragment_loader()
        self.content = content or ContentRegion()
        self.default_route = default_route
        self.current_route: Optional[str] = None
        self._routes: dict[str, Route] = {r.name: r for r in routes}
        self._modules: dict[str, Any] = {}
        self.tabs: list[Tab] = [Tab(r.name, r.title, r.icon) for r in routes]

    @property
    def routes(self) -> list[str]:
        return list(self._routes)

    @property
    def active_tab(self) -> Optional[Tab]:
        return next((t for t in self.tabs if t.active), None)

    async def start(self) -> None:
        await self.navigate_to(self.default_route)

    async def navigate_to(self, route: str) -> bool:
        """Show ``route``. Unknown routes are logged and ignored."""
        return await self._navigate(route, fresh=False)

    async def reload(self, route: str) -> bool:
        """Navigate to ``route`` with a newly created module instance."""
        return await self._navigate(route, fresh=True)

    async def _navigate(self, route: str, fresh: bool) -> bool:
        if route not in self._routes:
            logger.error("Route '%s' not found", route)
            return False

        logger.info("Navigating to: %s", route)

        previous = self.current_route
        if previous and previous != route and previous in self._modules:
            try:
                await _call_optional(self._modules[previous], "suspend")
            except Exception:
                logger.exception("Failed to suspend module '%s'", previous)

        self._activate_tab(route)
        await self._load_content(route, fresh)
        self.current_route = route

        self.bus.publish(ROUTE_CHANGED, {"route": route, "title": self._routes[route].title})
        return True

    def _activate_tab(self, route: str) -> None:
        for tab in self.tabs:
            tab.active = tab.route == route

    async def _load_content(self, route: str, fresh: bool) -> None:
        try:
            fragment = await self.loader.load(route)
        except Exception as e:
            logger.warning("Could not load fragment for '%s': %s", route, e)
            self.content.swap(self.placeholder(route))
            return

        self.content.swap(fragment)
        await self._init_module(route, fresh, fragment)

    async def _init_module(self, route: str, fresh: bool, fragment: str) -> None:
        module = self._modules.get(route)
        if module is not None and fresh:
            del self._modules[route]
            try:
                await _call_optional(module, "destroy")
            except Exception:
                logger.exception("Failed to destroy module '%s'", route)
            # destroy() clears the region
            self.content.swap(fragment)
            module = None

        try:
            if module is None:
                module = self._routes[route].factory()
                self._modules[route] = module
                logger.debug("Created module for '%s'", route)
            await module.init(self.content)
            logger.info("Module '%s' initialized", route)
        except Exception:
            logger.exception("Failed to initialize module '%s'", route)

    def placeholder(self, route: str) -> str:
        data = self._routes[route]
        return (
            '<div class="placeholder">'
            f'<div class="placeholder-icon">{html.escape(data.icon)}</div>'
            f"<h1>{html.escape(data.title)}</h1>"
            "<p>This module is not implemented yet.</p>"
            "</div>"
        )

    def get_module(self, route: str) -> Any:
        return self._modules.get(route)

    async def shutdown(self) -> None:
        """Destroy every module instance."""
        for route, module in list(self._modules.items()):
            try:
                await _call_optional(module, "destroy")
            except Exception:
                logger.exception("Failed to destroy module '%s'", route)
        self._modules.clear()
