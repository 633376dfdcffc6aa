"""
Term (glossary) service.
"""

from typing import Optional

from studio.services.base import EntityService, count_by, filter_by, search_fields

TERM_CATEGORIES = ("place", "object", "magic", "technology", "other")


class TermService(EntityService):
    collection = "terms"
    entity = "term"
    id_prefix = "term"
    defaults = {
        "name": "New term",
        "category": "other",
        "description": "",
        "usage": "",
    }
    choices = {"category": TERM_CATEGORIES}

    def _sort(self, docs: list[dict]) -> list[dict]:
        return sorted(docs, key=lambda t: (t.get("name") or "").lower())

    @staticmethod
    def filter_by_category(terms: list[dict], category: Optional[str]) -> list[dict]:
        return filter_by(terms, "category", category)

    @staticmethod
    def search(terms: list[dict], query: Optional[str]) -> list[dict]:
        return search_fields(terms, query, "name", "description")

    @staticmethod
    def stats(terms: list[dict]) -> dict[str, int]:
        return count_by(terms, "category", TERM_CATEGORIES)
