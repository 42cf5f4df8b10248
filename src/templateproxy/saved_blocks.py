"""Reusable blocks saved by users."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from templateproxy.jsonstore import JsonFileStore

if TYPE_CHECKING:
    from pathlib import Path


class SavedBlockStore:
    def __init__(self, store: JsonFileStore | None = None) -> None:
        self._store = store or JsonFileStore()

    @classmethod
    def from_file(cls, path: Path) -> SavedBlockStore:
        return cls(JsonFileStore(path))

    def list_published(self) -> list[dict[str, Any]]:
        blocks = self._store.load().values()
        return [b for b in blocks if b.get("post_status", "publish") == "publish"]

    def add(self, title: str, content: str) -> dict[str, Any]:
        data = self._store.load()
        block_id = max((int(k) for k in data), default=0) + 1
        block = {
            "ID": block_id,
            "post_title": title,
            "post_content": content,
            "post_status": "publish",
            "post_type": "wp_block",
            "post_date": datetime.now(UTC).isoformat(),
        }
        data[str(block_id)] = block
        self._store.save(data)
        return block

    def delete(self, block_id: int) -> dict[str, Any] | None:
        """Remove a block. Returns the deleted block, or None if it did not exist."""
        data = self._store.load()
        block = data.pop(str(block_id), None)
        if block is not None:
            self._store.save(data)
        return block
