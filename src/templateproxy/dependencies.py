"""Plugin dependency annotation for catalog sections and pages.

Each entity may declare ``dependencies``: plugin ids looked up in the
catalog's ``plugins`` map. A plugin entry carrying ``version`` is
installed; one carrying ``is_pro`` is unlocked. Entries with a
``free_slug`` are pro add-ons whose availability is decided by the free
plugin they alias.

Ids are appended in declaration order and never deduplicated, matching
what existing clients receive.
"""

from __future__ import annotations

from typing import Any

CORE_DEPENDENCY = "core"
ANNOTATED_KEYS = ("sections", "pages")


def _append(entity: dict[str, Any], field: str, dep: str) -> None:
    entity.setdefault(field, []).append(dep)


def annotate_entity(entity: dict[str, Any], plugins: dict[str, Any]) -> None:
    """Add dependency lists to ``entity`` in place."""
    for dep in entity.get("dependencies") or []:
        plugin = plugins.get(dep)
        if not isinstance(plugin, dict):
            continue
        if "no_plugin" in plugin or dep == CORE_DEPENDENCY:
            continue
        if "free_slug" in plugin:
            free = plugins.get(plugin["free_slug"])
            if not isinstance(free, dict):
                continue
            if "is_pro" not in free:
                _append(entity, "proDependenciesMissing", dep)
            _append(entity, "proDependencies", dep)
        else:
            if "version" not in plugin:
                _append(entity, "installDependenciesMissing", dep)
            _append(entity, "installDependencies", dep)


def annotate(catalog: dict[str, Any], key: str) -> dict[str, Any]:
    """Annotate every entity of ``catalog[key]``. Returns ``catalog``."""
    plugins = catalog.get("plugins") or {}
    entities = catalog.get(key)
    if not isinstance(entities, dict):
        return catalog
    for entity in entities.values():
        if isinstance(entity, dict):
            annotate_entity(entity, plugins)
    return catalog


def annotate_catalog(catalog: dict[str, Any]) -> dict[str, Any]:
    for key in ANNOTATED_KEYS:
        annotate(catalog, key)
    return catalog


def merge_registered_blocks(
    registered_blocks: list[str] | None,
    plugins: dict[str, Any],
) -> list[str]:
    """Prefix the caller's registered blocks with ``slug~version`` per installed plugin.

    The plain slug and the plugin's block namespace are removed from the
    caller's list since the versioned id supersedes them.
    """
    remaining = list(registered_blocks or [])
    installed: list[str] = []
    for slug, plugin in plugins.items():
        if not isinstance(plugin, dict) or "version" not in plugin:
            continue
        installed.append(f"{slug}~{plugin['version']}")
        if slug in remaining:
            remaining.remove(slug)
        namespace = plugin.get("namespace")
        if namespace and namespace != slug and namespace in remaining:
            remaining.remove(namespace)
    return installed + remaining
