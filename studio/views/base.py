"""
Base class for view modules.

A view renders one tab. The router swaps the route's fragment into the
content region and calls ``init``; the view keeps that fragment as a
``string.Template``, subscribes to the bus, loads its data and renders by
substituting escaped markup into the template.
"""

import html
import logging
from dataclasses import dataclass
from string import Template
from typing import TYPE_CHECKING, Any, Callable, Optional

from studio.core.errors import StudioError
from studio.core.router import ContentRegion

if TYPE_CHECKING:
    from studio.session import StudioSession

logger = logging.getLogger(__name__)

esc = html.escape


@dataclass
class Notice:
    """A user-visible toast."""
    level: str  # success | error | warning | info
    message: str


def options(values: list[str] | tuple[str, ...], selected: Optional[str], labels: Optional[dict] = None) -> str:
    """``<option>`` elements with one marked selected."""
    labels = labels or {}
    return "".join(
        f'<option value="{esc(v)}"{" selected" if v == selected else ""}>'
        f"{esc(labels.get(v, v))}</option>"
        for v in values
    )


class View:
    """
    Lifecycle: ``init`` on every visit, ``suspend`` when leaving, ``destroy``
    on reload or shutdown.

    ``init`` drops the subscriptions of the previous visit before calling
    ``subscribe`` again, so a reused instance never holds duplicates.
    """

    name: str = ""

    def __init__(self, session: "StudioSession"):
        self.session = session
        self.bus = session.bus
        self.container: Optional[ContentRegion] = None
        self.template: Optional[Template] = None
        self.active = False
        self.notices: list[Notice] = []
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def current_book(self) -> Optional[dict]:
        return self.session.books.current_book

    async def init(self, container: ContentRegion) -> None:
        self.container = container
        self.template = Template(container.html)
        self._release()
        self.active = True
        self.subscribe()
        await self.load()
        self.render()

    def subscribe(self) -> None:
        """Register bus handlers with ``on``."""

    async def load(self) -> None:
        """Fetch the data the view renders."""

    def context(self) -> dict[str, Any]:
        """Template values. Every value must already be escaped markup."""
        return {}

    def render(self) -> str:
        if not self.active or self.container is None or self.template is None:
            return ""
        markup = self.template.safe_substitute(self.context())
        self.container.swap(markup)
        return markup

    async def refresh(self) -> None:
        if not self.active:
            return
        try:
            await self.load()
        except StudioError as e:
            self.fail("Could not refresh", e)
            return
        self.render()

    def on(self, topic: str, handler: Callable[[Any], Any]) -> None:
        self._unsubscribers.append(self.bus.subscribe(topic, handler))

    def _release(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def notify(self, level: str, message: str) -> None:
        self.notices.append(Notice(level, message))

    def fail(self, message: str, error: Exception) -> None:
        logger.error("[%s] %s: %s", self.name, message, error)
        self.notify("error", f"{message}: {error}")

    def pop_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices

    def suspend(self) -> None:
        """Stop rendering while another tab is shown. Subscriptions stay live."""
        self.active = False

    def destroy(self) -> None:
        self._release()
        self.active = False
        if self.container is not None:
            self.container.clear()
        self.container = None
        self.template = None
