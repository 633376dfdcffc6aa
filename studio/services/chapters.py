"""
Chapter service.
"""

import logging

from studio.services.base import EntityService
from studio.services.text import ChapterStats, chapter_stats, count_words

logger = logging.getLogger(__name__)


class ChapterService(EntityService):
    """Chapters of a book, kept in reading order."""

    collection = "chapters"
    entity = "chapter"
    id_prefix = "chapter"
    required_field = "title"
    defaults = {
        "title": "New chapter",
        "content": "<p></p>",
        "order": 1,
        "pov": "",
        "word_count": 0,
        "character_ids": [],
        "term_ids": [],
        "event_ids": [],
    }

    def _sort(self, docs: list[dict]) -> list[dict]:
        return sorted(docs, key=lambda c: c.get("order") or 0)

    def _prepare(self, doc: dict) -> None:
        doc["word_count"] = count_words(doc.get("content") or "")

    async def _after_change(self, book_id: str) -> None:
        if self.books is not None:
            await self.books.touch(book_id)

    async def next_order(self, book_id: str) -> int:
        chapters = await self.get_all(book_id)
        return max((c.get("order") or 0 for c in chapters), default=0) + 1

    async def reorder(self, book_id: str, ordered_ids: list[str], start: int = 1) -> list[dict]:
        """Number chapters 1..n in the given order."""
        docs = await super().reorder(book_id, ordered_ids, start=start)
        logger.info("Reordered %d chapters of book %s", len(docs), book_id)
        return docs

    @staticmethod
    def stats(content: str) -> ChapterStats:
        return chapter_stats(content)
