"""On-disk JSON cache for catalog and template documents.

Each entry is a file under ``<cache_dir>/templates/`` named after its key
(``library.json`` or ``<type>/<id>.json``). The file's mtime is the
staleness marker.

All cache operations catch ``OSError`` internally and degrade gracefully:
read failures return an unsuccessful ``DecodeResult`` (treated as a cache
miss by callers), write failures are logged and ignored (fetched content is
still returned). Infrastructure errors never cross the FileCache boundary.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from templateproxy.jsonstore import atomic_write_json, decode_json
from templateproxy.models.cache import CacheEntry, DecodeResult

if TYPE_CHECKING:
    from templateproxy.config import CacheSettings

log = structlog.get_logger()

CACHE_SUBFOLDER = "templates"


class FileCache:
    """JSON documents stored as files, fresh for ``ttl_hours`` after writing."""

    def __init__(self, cache_dir: Path | str, ttl_hours: int = 24) -> None:
        self.folder = Path(cache_dir).expanduser() / CACHE_SUBFOLDER
        self.ttl = timedelta(hours=ttl_hours)

    @classmethod
    def from_settings(cls, settings: CacheSettings) -> FileCache:
        return cls(settings.cache_dir, settings.ttl_hours)

    def resolve(self, key: str | Path) -> Path:
        """Absolute path for ``key``, creating its directory if missing.

        Keys that already point inside the cache folder are used as-is.
        Raises ``ValueError`` for keys escaping the cache folder.
        """
        folder = self.folder.resolve()
        candidate = Path(key)
        if not candidate.is_absolute() or not candidate.resolve().is_relative_to(folder):
            candidate = folder / key
        path = candidate.resolve()
        if not path.is_relative_to(folder) or path == folder:
            raise ValueError(f"Cache key escapes cache folder: {str(key)!r}")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            log.warning("cache_mkdir_error", path=str(path.parent), exc_info=True)
        return path

    def modified_at(self, path: Path) -> datetime | None:
        try:
            return datetime.fromtimestamp(path.stat().st_mtime, UTC)
        except FileNotFoundError:
            return None
        except OSError:
            log.warning("cache_stat_error", path=str(path), exc_info=True)
            return None

    def is_fresh(self, modified_at: datetime | None, now: datetime | None = None) -> bool:
        if modified_at is None:
            return False
        now = now or datetime.now(UTC)
        return now <= modified_at + self.ttl

    def read(self, path: Path) -> DecodeResult:
        """Decode the document at ``path``. Missing or broken files are a failure."""
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return DecodeResult(ok=False, error="missing")
        except OSError as exc:
            log.warning("cache_read_error", path=str(path), exc_info=True)
            return DecodeResult(ok=False, error=str(exc))
        result = decode_json(text)
        if not result.ok:
            log.info("cache_decode_failed", path=str(path), error=result.error)
        return result

    def write(self, path: Path, data: dict[str, Any]) -> None:
        """Replace the document at ``path``. Non-fatal on failure."""
        try:
            atomic_write_json(path, data)
        except (OSError, TypeError, ValueError):
            log.warning("cache_write_error", path=str(path), exc_info=True)

    def get(self, key: str) -> CacheEntry | None:
        """Read an entry with its freshness. Returns ``None`` on miss or read failure."""
        path = self.resolve(key)
        modified = self.modified_at(path)
        if modified is None:
            return None
        result = self.read(path)
        if not result.ok:
            return None
        return CacheEntry(
            key=key,
            data=result.data,
            modified_at=modified,
            expires_at=modified + self.ttl,
            stale=not self.is_fresh(modified),
        )

    def set(self, key: str, data: dict[str, Any]) -> None:
        self.write(self.resolve(key), data)
