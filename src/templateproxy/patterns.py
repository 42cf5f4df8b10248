"""Registry of local block patterns offered alongside catalog sections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from templateproxy.jsonstore import JsonFileStore

if TYPE_CHECKING:
    from pathlib import Path

log = structlog.get_logger()

PATTERN_SOURCE = "wp_block_patterns"
PATTERN_ID_PREFIX = "wp_block_pattern_"
PATTERN_CATEGORY = "WP Block Patterns"


@dataclass
class BlockPattern:
    name: str
    title: str
    content: str
    categories: list[str] = field(default_factory=list)


class PatternRegistry:
    def __init__(self, patterns: list[BlockPattern] | None = None) -> None:
        self._patterns: dict[str, BlockPattern] = {}
        for pattern in patterns or []:
            self.register(pattern)

    @classmethod
    def from_file(cls, path: Path) -> PatternRegistry:
        """Load ``{name: {"title": ..., "content": ...}}`` from a JSON file."""
        patterns = []
        for name, raw in JsonFileStore(path).load().items():
            if not isinstance(raw, dict) or "content" not in raw:
                log.warning("pattern_bad_entry", name=name)
                continue
            patterns.append(
                BlockPattern(
                    name=name,
                    title=str(raw.get("title", name)),
                    content=str(raw["content"]),
                    categories=list(raw.get("categories", [])),
                )
            )
        return cls(patterns)

    def register(self, pattern: BlockPattern) -> None:
        self._patterns[pattern.name] = pattern

    def get(self, name: str) -> BlockPattern | None:
        return self._patterns.get(name)

    def get_by_section_id(self, section_id: str) -> BlockPattern | None:
        """Look up a pattern from the section id produced by ``as_sections``."""
        if section_id.startswith(PATTERN_ID_PREFIX):
            return self._patterns.get(section_id.removeprefix(PATTERN_ID_PREFIX))
        return None

    def as_sections(self) -> dict[str, dict[str, Any]]:
        sections = {}
        for name, pattern in self._patterns.items():
            section_id = PATTERN_ID_PREFIX + name
            sections[section_id] = {
                "name": pattern.title,
                "categories": [PATTERN_CATEGORY],
                "source": PATTERN_SOURCE,
                "id": section_id,
            }
        return sections
