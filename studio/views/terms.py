"""
Terms (glossary) view.
"""

from typing import Any

from studio.services.terms import TERM_CATEGORIES, TermService
from studio.views.base import esc, options
from studio.views.catalog import CatalogView

CATEGORY_LABELS = {
    "all": "All categories",
    "place": "Place",
    "object": "Object",
    "magic": "Magic",
    "technology": "Technology",
    "other": "Other",
}


class TermsView(CatalogView):
    name = "terms"
    service_name = "terms"
    filter_field = "category"
    noun = "term"

    def apply_filter(self, items: list[dict]) -> list[dict]:
        return TermService.filter_by_category(items, self.filter_value)

    def apply_search(self, items: list[dict]) -> list[dict]:
        return TermService.search(items, self.query)

    def _row(self, term: dict) -> str:
        category = term.get("category", "other")
        active = " selected" if term["id"] == self.selected_id else ""
        return (
            f'<tr class="term-row{active}" data-id="{esc(term["id"])}">'
            f'<td class="term-name">{esc(term.get("name", ""))}</td>'
            f'<td><span class="category-badge category-{esc(category)}">'
            f"{esc(CATEGORY_LABELS.get(category, category))}</span></td>"
            f'<td>{esc(term.get("description", ""))}</td>'
            "</tr>"
        )

    def _details(self) -> str:
        term = self.selected
        if term is None:
            return '<p class="hint">Select a term to see the details</p>'
        usage = term.get("usage") or "No usage notes"
        return (
            f'<h2>{esc(term.get("name", ""))}</h2>'
            f'<p class="term-description">{esc(term.get("description") or "")}</p>'
            f'<h3>Usage</h3><p class="term-usage">{esc(usage)}</p>'
        )

    def context(self) -> dict[str, Any]:
        rows = "".join(self._row(t) for t in self.visible)
        return {
            **self.base_context(),
            "category_options": options(("all",) + TERM_CATEGORIES, self.filter_value, CATEGORY_LABELS),
            "stats": self.stats_markup({"total": "Total", **{c: CATEGORY_LABELS[c] for c in TERM_CATEGORIES}}),
            "term_rows": rows or f'<tr><td colspan="3">{self.empty_markup()}</td></tr>',
            "term_details": self._details(),
        }
