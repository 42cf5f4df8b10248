"""Per-user "templates remaining" counters."""

from __future__ import annotations

from typing import TYPE_CHECKING

from templateproxy.jsonstore import JsonFileStore

if TYPE_CHECKING:
    from pathlib import Path


class QuotaStore:
    def __init__(self, store: JsonFileStore | None = None) -> None:
        self._store = store or JsonFileStore()

    @classmethod
    def from_file(cls, path: Path) -> QuotaStore:
        return cls(JsonFileStore(path))

    def get(self, uid: int) -> int | None:
        """Remaining count for ``uid``, or None if never recorded."""
        value = self._store.load().get(str(uid))
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None

    def set(self, uid: int, left: int) -> None:
        data = self._store.load()
        data[str(uid)] = left
        self._store.save(data)
