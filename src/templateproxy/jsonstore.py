"""Small JSON-file persistence used by the cache and the local collaborators.

Writes go to a sibling temp file and are moved into place with
``os.replace`` so readers never observe a partially written document.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import structlog

from templateproxy.models.cache import DecodeResult

log = structlog.get_logger()


def decode_json(text: str | bytes | None) -> DecodeResult:
    """Decode a JSON object. Anything other than a JSON object is a failure."""
    if text is None or text == "" or text == b"":
        return DecodeResult(ok=False, error="empty document")
    try:
        value = json.loads(text)
    except ValueError as exc:
        return DecodeResult(ok=False, error=str(exc))
    if not isinstance(value, dict):
        return DecodeResult(ok=False, error=f"expected object, got {type(value).__name__}")
    return DecodeResult(ok=True, data=value)


def atomic_write_json(path: Path, data: Any) -> None:
    """Serialise ``data`` to ``path`` atomically. Raises ``OSError`` on failure."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, ensure_ascii=False)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


class JsonFileStore:
    """A single JSON object on disk, or in memory when ``path`` is None."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._memory: dict[str, Any] = {}

    @property
    def path(self) -> Path | None:
        return self._path

    def load(self) -> dict[str, Any]:
        if self._path is None:
            return dict(self._memory)
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError:
            log.warning("store_read_error", path=str(self._path), exc_info=True)
            return {}
        result = decode_json(text)
        if not result.ok:
            log.warning("store_decode_error", path=str(self._path), error=result.error)
            return {}
        return result.data

    def save(self, data: dict[str, Any]) -> None:
        if self._path is None:
            self._memory = dict(data)
            return
        atomic_write_json(self._path, data)
