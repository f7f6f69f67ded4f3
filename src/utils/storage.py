# client-local persistence: one JSON document with fixed top-level keys
from __future__ import annotations

import json
import os
from typing import Any, List

from utils.logger import get_logger

_logger = get_logger(__name__)

CART_KEY = "shopping_cart"
RECENT_SEARCHES_KEY = "recentSearches"
LOCATION_KEY = "user_location"
LOCATION_NAME_KEY = "user_location_name"


class LocalStorage:
    """
    Key/value store backed by a single JSON file.

    Every write rewrites the whole file. A missing or corrupt file reads as
    empty; the corrupt content is overwritten on the next write.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._data = self._load()

    def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            _logger.warning(f"Ignoring unreadable local storage {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _flush(self) -> None:
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._data, f)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()


class RecentSearches:
    """Most recent distinct search terms, newest first."""

    limit = 5

    def __init__(self, storage: LocalStorage) -> None:
        self._storage = storage

    def list(self) -> List[str]:
        terms = self._storage.get(RECENT_SEARCHES_KEY, [])
        return [t for t in terms if isinstance(t, str)] if isinstance(terms, list) else []

    def add(self, term: str) -> List[str]:
        term = (term or "").strip()
        if not term:
            return self.list()
        updated = [term, *(t for t in self.list() if t != term)][: self.limit]
        self._storage.set(RECENT_SEARCHES_KEY, updated)
        return updated

    def clear(self) -> None:
        self._storage.remove(RECENT_SEARCHES_KEY)
