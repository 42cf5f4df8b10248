"""Unit-specific fixtures (no I/O beyond tmp_path)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from templateproxy.cache import FileCache

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def cache(tmp_path: Path) -> FileCache:
    """File cache rooted in a fresh temporary directory."""
    return FileCache(tmp_path / "cache", ttl_hours=24)
