"""Unit tests for templateproxy.dependencies."""

from __future__ import annotations

from typing import Any

from templateproxy.dependencies import annotate, annotate_catalog, merge_registered_blocks


class TestAnnotate:
    def test_free_slug_alias_without_pro(self) -> None:
        catalog = {
            "plugins": {"foo": {"free_slug": "foo-free"}, "foo-free": {}},
            "sections": {"s1": {"dependencies": ["foo"]}},
        }
        annotate(catalog, "sections")
        s1 = catalog["sections"]["s1"]
        assert s1["proDependencies"] == ["foo"]
        assert s1["proDependenciesMissing"] == ["foo"]
        assert "installDependencies" not in s1

    def test_free_slug_alias_unlocked(self) -> None:
        catalog = {
            "plugins": {"foo": {"free_slug": "foo-free"}, "foo-free": {"is_pro": "2.0"}},
            "sections": {"s1": {"dependencies": ["foo"]}},
        }
        annotate(catalog, "sections")
        s1 = catalog["sections"]["s1"]
        assert s1["proDependencies"] == ["foo"]
        assert "proDependenciesMissing" not in s1

    def test_free_slug_alias_target_unknown_is_ignored(self) -> None:
        catalog = {
            "plugins": {"foo": {"free_slug": "nowhere"}},
            "sections": {"s1": {"dependencies": ["foo"]}},
        }
        annotate(catalog, "sections")
        assert catalog["sections"]["s1"] == {"dependencies": ["foo"]}

    def test_no_plugin_never_listed(self) -> None:
        catalog = {
            "plugins": {"bar": {"no_plugin": True, "free_slug": "baz"}, "baz": {}},
            "sections": {"s1": {"dependencies": ["bar"]}},
        }
        annotate(catalog, "sections")
        assert catalog["sections"]["s1"] == {"dependencies": ["bar"]}

    def test_core_never_listed(self) -> None:
        catalog = {
            "plugins": {"core": {}},
            "pages": {"p1": {"dependencies": ["core"]}},
        }
        annotate(catalog, "pages")
        assert catalog["pages"]["p1"] == {"dependencies": ["core"]}

    def test_installed_vs_missing(self) -> None:
        catalog = {
            "plugins": {"a": {"version": "1.0"}, "b": {}},
            "pages": {"p1": {"dependencies": ["a", "b"]}},
        }
        annotate(catalog, "pages")
        p1 = catalog["pages"]["p1"]
        assert p1["installDependencies"] == ["a", "b"]
        assert p1["installDependenciesMissing"] == ["b"]

    def test_unknown_dependency_ignored(self) -> None:
        catalog = {"plugins": {}, "pages": {"p1": {"dependencies": ["ghost"]}}}
        annotate(catalog, "pages")
        assert catalog["pages"]["p1"] == {"dependencies": ["ghost"]}

    def test_duplicates_preserved(self, sample_catalog: dict[str, Any]) -> None:
        annotate(sample_catalog, "pages")
        p1 = sample_catalog["pages"]["p1"]
        assert p1["installDependencies"] == ["stackable", "stackable"]
        assert p1["installDependenciesMissing"] == ["stackable", "stackable"]

    def test_missing_collection_is_noop(self) -> None:
        catalog: dict[str, Any] = {"plugins": {}}
        assert annotate(catalog, "sections") == {"plugins": {}}


class TestAnnotateCatalog:
    def test_sections_and_pages(self, sample_catalog: dict[str, Any]) -> None:
        annotate_catalog(sample_catalog)
        s1 = sample_catalog["sections"]["s1"]
        s2 = sample_catalog["sections"]["s2"]
        assert s1["installDependencies"] == ["stackable"]
        assert s2["proDependencies"] == ["stackable-pro"]
        assert s2["proDependenciesMissing"] == ["stackable-pro"]
        assert "installDependencies" not in s2
        assert "installDependencies" in sample_catalog["pages"]["p1"]


class TestMergeRegisteredBlocks:
    def test_installed_plugins_prefixed(self) -> None:
        plugins = {
            "stackable-ultimate-gutenberg-blocks": {"version": "2.1", "namespace": "ugb"},
            "qubely": {"version": "1.5"},
            "kadence": {},
        }
        blocks = merge_registered_blocks(["core", "ugb", "qubely", "kadence"], plugins)
        assert blocks == [
            "stackable-ultimate-gutenberg-blocks~2.1",
            "qubely~1.5",
            "core",
            "kadence",
        ]

    def test_no_caller_blocks(self) -> None:
        assert merge_registered_blocks(None, {"a": {"version": "1"}}) == ["a~1"]
