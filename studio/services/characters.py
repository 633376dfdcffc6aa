"""
Character service.
"""

from typing import Optional

from studio.services.base import EntityService, count_by, filter_by, search_fields

CHARACTER_ROLES = ("protagonist", "antagonist", "secondary", "minor")


class CharacterService(EntityService):
    collection = "characters"
    entity = "character"
    id_prefix = "char"
    defaults = {
        "name": "New character",
        "role": "secondary",
        "age": "",
        "occupation": "",
        "description": "",
        "appearance": "",
        "personality": "",
        "goals": "",
        "backstory": "",
        "relationships": [],
    }
    choices = {"role": CHARACTER_ROLES}

    def _sort(self, docs: list[dict]) -> list[dict]:
        return sorted(docs, key=lambda c: (c.get("name") or "").lower())

    @staticmethod
    def filter_by_role(characters: list[dict], role: Optional[str]) -> list[dict]:
        return filter_by(characters, "role", role)

    @staticmethod
    def search_by_name(characters: list[dict], query: Optional[str]) -> list[dict]:
        return search_fields(characters, query, "name")

    @staticmethod
    def stats(characters: list[dict]) -> dict[str, int]:
        return count_by(characters, "role", CHARACTER_ROLES)
