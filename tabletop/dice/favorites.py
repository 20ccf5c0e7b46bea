"""
Saved dice formulas ("favorites"), kept per game session.

Storage is injected: anything offering get/set/delete on string keys will
do, so the parser and roller stay free of storage concerns.
"""
import json
import logging
import threading
from dataclasses import dataclass, asdict
from typing import Protocol, runtime_checkable

from shared.constants import FAVORITES_KEY_PREFIX

from .errors import DuplicateFavoriteError
from .parser import parse_formula


logger = logging.getLogger(__name__)


@runtime_checkable
class FavoriteStorage(Protocol):
    """Client-local string key/value storage."""

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryFavoriteStorage:
    """Dict-backed storage, lost when the process exits."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


@dataclass(frozen=True)
class Favorite:
    """A named shortcut to a canonical formula."""
    formula: str
    name: str


class FavoritesManager:
    """
    Favorites of one session.

    Stored as a JSON list of {"formula", "name"} under
    "dice-favorites-{session_id}".
    """

    def __init__(self, storage: FavoriteStorage, session_id: str):
        self._storage = storage
        self.session_id = session_id

    @property
    def key(self) -> str:
        return f"{FAVORITES_KEY_PREFIX}{self.session_id}"

    def list_favorites(self) -> list[Favorite]:
        raw = self._storage.get(self.key)
        if not raw:
            return []
        try:
            return [Favorite(formula=item["formula"], name=item["name"]) for item in json.loads(raw)]
        except (ValueError, TypeError, KeyError) as e:
            logger.warning(f"Ignoring corrupt favorites for session {self.session_id}: {e}")
            return []

    def _save(self, favorites: list[Favorite]) -> None:
        self._storage.set(self.key, json.dumps([asdict(f) for f in favorites]))

    def get(self, formula_text: str) -> Favorite | None:
        formula = parse_formula(formula_text).formula
        for favorite in self.list_favorites():
            if favorite.formula == formula:
                return favorite
        return None

    def add(self, formula_text: str, name: str | None = None) -> Favorite:
        """
        Save a formula under a display name.

        Raises:
            FormatError, RangeError: If the formula does not parse
            DuplicateFavoriteError: If the canonical formula is already saved
        """
        formula = parse_formula(formula_text).formula
        favorites = self.list_favorites()
        if any(f.formula == formula for f in favorites):
            raise DuplicateFavoriteError(f"{formula} is already a favorite")

        favorite = Favorite(formula=formula, name=(name or "").strip() or formula)
        favorites.append(favorite)
        self._save(favorites)
        return favorite

    def remove(self, formula_text: str) -> bool:
        """Remove a favorite. Returns False if it was not saved."""
        formula = parse_formula(formula_text).formula
        favorites = self.list_favorites()
        remaining = [f for f in favorites if f.formula != formula]
        if len(remaining) == len(favorites):
            return False
        if remaining:
            self._save(remaining)
        else:
            self._storage.delete(self.key)
        return True
