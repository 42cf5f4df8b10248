"""Application state shared by request handlers.

Everything a handler needs is passed in here explicitly; nothing lives in
module globals.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from templateproxy.cache import FileCache
from templateproxy.fetcher import Fetcher, build_http_client
from templateproxy.installer import Installer
from templateproxy.library import CacheFetcher
from templateproxy.patterns import PatternRegistry
from templateproxy.plugins import PluginRegistry
from templateproxy.quota import QuotaStore
from templateproxy.saved_blocks import SavedBlockStore

if TYPE_CHECKING:
    import httpx

    from templateproxy.config import Settings


@dataclass
class AppState:
    settings: Settings
    http_client: httpx.AsyncClient
    cache: FileCache
    fetcher: Fetcher
    library: CacheFetcher
    plugins: PluginRegistry
    quota: QuotaStore
    patterns: PatternRegistry
    saved_blocks: SavedBlockStore
    installer: Installer


def build_state(
    settings: Settings,
    http_client: httpx.AsyncClient | None = None,
    *,
    plugins: PluginRegistry | None = None,
    quota: QuotaStore | None = None,
    patterns: PatternRegistry | None = None,
    saved_blocks: SavedBlockStore | None = None,
) -> AppState:
    """Wire the default collaborators, persisting under ``settings.data_dir``."""
    data_dir = Path(settings.data_dir).expanduser()
    client = http_client or build_http_client(settings.api)
    cache = FileCache.from_settings(settings.cache)
    fetcher = Fetcher(client, settings.api, settings.site)
    plugins = plugins or PluginRegistry.from_file(data_dir / "plugins.json")
    return AppState(
        settings=settings,
        http_client=client,
        cache=cache,
        fetcher=fetcher,
        library=CacheFetcher(cache, fetcher),
        plugins=plugins,
        quota=quota or QuotaStore.from_file(data_dir / "quota.json"),
        patterns=patterns or PatternRegistry.from_file(data_dir / "patterns.json"),
        saved_blocks=saved_blocks or SavedBlockStore.from_file(data_dir / "saved_blocks.json"),
        installer=Installer(client, settings.site.plugins_dir, plugins),
    )
