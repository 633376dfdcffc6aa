"""
Persisted local state: last open book and chapter plus editor settings.

One flat JSON object per user, read once at start-up and rewritten on every
change. There is no versioning; unknown keys are kept as they are.
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from studio.core.errors import StorageError

logger = logging.getLogger(__name__)

CURRENT_BOOK_ID = "current_book_id"
CURRENT_CHAPTER_ID = "current_chapter_id"
EDITOR_SETTINGS = "editor_settings"


class PreferencesStore:
    """Key/value state backed by a JSON file, or memory when ``path`` is None."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        self._data: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if self.path is None or not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable preferences file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring preferences file %s: not a JSON object", self.path)
            return {}
        return data

    def _save(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
        except OSError as e:
            logger.error("Failed to write preferences %s: %s", self.path, e)
            raise StorageError(f"Could not save preferences: {e}") from e

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        if self._data.get(key) == value:
            return
        self._data[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()

    def as_dict(self) -> dict[str, Any]:
        return dict(self._data)
