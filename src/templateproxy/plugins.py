"""Installed-plugin registry.

Holds a snapshot of which plugins are installed on the site (and whether
their pro tier is unlocked) and overlays it onto the catalog's ``plugins``
map so the dependency annotator can tell installed from missing.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

import structlog

from templateproxy.jsonstore import JsonFileStore

if TYPE_CHECKING:
    from pathlib import Path

    from templateproxy.config import SiteSettings

log = structlog.get_logger()

FRAMEWORK_SLUG = "redux-framework"


@dataclass
class InstalledPlugin:
    version: str
    # Pro version string when the pro tier is unlocked
    is_pro: str | None = None
    # Block namespace when it differs from the slug, e.g. "stackable" for "stackable-ultimate-gutenberg-blocks"
    namespace: str | None = None


class PluginRegistry:
    def __init__(self, store: JsonFileStore | None = None) -> None:
        self._store = store or JsonFileStore()
        self._installed: dict[str, InstalledPlugin] = {}
        for slug, raw in self._store.load().items():
            try:
                self._installed[slug] = InstalledPlugin(**raw)
            except TypeError:
                log.warning("plugin_registry_bad_entry", slug=slug)

    @classmethod
    def from_file(cls, path: Path) -> PluginRegistry:
        return cls(JsonFileStore(path))

    def snapshot(self) -> dict[str, InstalledPlugin]:
        return dict(self._installed)

    def get(self, slug: str) -> InstalledPlugin | None:
        return self._installed.get(slug)

    def register(self, slug: str, plugin: InstalledPlugin) -> None:
        self._installed[slug] = plugin
        self._store.save({s: asdict(p) for s, p in self._installed.items()})
        log.info("plugin_registered", slug=slug, version=plugin.version)

    def annotate_catalog_plugins(
        self,
        plugins: dict[str, Any],
        site: SiteSettings,
    ) -> dict[str, Any]:
        """Return a copy of ``plugins`` with ``version``/``is_pro`` for installed plugins.

        The framework plugin always reports the running core version, and
        ``is_pro`` when the site holds a pro subscription.
        """
        result: dict[str, Any] = {}
        for slug, entry in plugins.items():
            merged = dict(entry) if isinstance(entry, dict) else {}
            installed = self._installed.get(slug)
            if installed is not None:
                merged["version"] = installed.version
                if installed.is_pro:
                    merged["is_pro"] = installed.is_pro
                if installed.namespace:
                    merged.setdefault("namespace", installed.namespace)
            result[slug] = merged

        framework = result.setdefault(FRAMEWORK_SLUG, {})
        framework["version"] = site.core_version
        if site.pro_activated:
            framework["is_pro"] = site.pro_version or site.core_version
        return result
