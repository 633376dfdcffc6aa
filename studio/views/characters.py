"""
Characters view.
"""

from typing import Any

from studio.services.characters import CHARACTER_ROLES, CharacterService
from studio.views.base import esc, options
from studio.views.catalog import CatalogView

ROLE_LABELS = {
    "all": "All roles",
    "protagonist": "Protagonist",
    "antagonist": "Antagonist",
    "secondary": "Secondary",
    "minor": "Minor",
}

DETAIL_FIELDS = (
    ("age", "Age"),
    ("occupation", "Occupation"),
    ("description", "Description"),
    ("appearance", "Appearance"),
    ("personality", "Personality"),
    ("goals", "Goals"),
    ("backstory", "Backstory"),
)


class CharactersView(CatalogView):
    name = "characters"
    service_name = "characters"
    filter_field = "role"
    noun = "character"

    def apply_filter(self, items: list[dict]) -> list[dict]:
        return CharacterService.filter_by_role(items, self.filter_value)

    def apply_search(self, items: list[dict]) -> list[dict]:
        return CharacterService.search_by_name(items, self.query)

    def _card(self, character: dict) -> str:
        role = character.get("role", "secondary")
        active = " selected" if character["id"] == self.selected_id else ""
        summary = character.get("occupation") or character.get("description") or ""
        return (
            f'<div class="character-card role-{esc(role)}{active}" data-id="{esc(character["id"])}">'
            f'<h3>{esc(character.get("name", ""))}</h3>'
            f'<span class="role-badge">{esc(ROLE_LABELS.get(role, role))}</span>'
            f'<p>{esc(summary[:120])}</p>'
            "</div>"
        )

    def _details(self) -> str:
        character = self.selected
        if character is None:
            return '<p class="hint">Select a character to see the details</p>'
        rows = "".join(
            f"<dt>{esc(label)}</dt><dd>{esc(str(character.get(key) or '-'))}</dd>"
            for key, label in DETAIL_FIELDS
        )
        return f'<h2>{esc(character.get("name", ""))}</h2><dl>{rows}</dl>'

    def context(self) -> dict[str, Any]:
        visible = self.visible
        return {
            **self.base_context(),
            "role_options": options(("all",) + CHARACTER_ROLES, self.filter_value, ROLE_LABELS),
            "stats": self.stats_markup({
                "total": "Total",
                "protagonist": "Protagonists",
                "antagonist": "Antagonists",
                "secondary": "Secondary",
                "minor": "Minor",
            }),
            "character_list": "".join(self._card(c) for c in visible) or self.empty_markup(),
            "character_details": self._details(),
        }
