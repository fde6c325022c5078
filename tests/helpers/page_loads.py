"""Helpers for simulating page loads against a shared persistence gateway."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from markwell.highlights import HighlightStore, RangeGroupPaint
from markwell.migration import (
    InMemoryPersistence,
    MigrationEngine,
    TreeLegacyReader,
    has_class,
)

if TYPE_CHECKING:
    from markwell.config import MigrationConfig
    from markwell.dom import Element

PAGE_URL = "https://example.com/article"


class FlakyPersistence(InMemoryPersistence):
    """In-memory gateway whose reads or writes can be made to fail."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        super().__init__(initial)
        self.fail_get = False
        self.fail_set = False
        # Fail only writes that store one of these phases
        self.fail_set_phases: set[str] = set()

    async def get(self, key: str) -> Any | None:
        if self.fail_get:
            msg = "storage unavailable"
            raise OSError(msg)
        return await super().get(key)

    async def set(self, key: str, value: Any) -> None:
        if self.fail_set or (
            isinstance(value, dict) and value.get("phase") in self.fail_set_phases
        ):
            msg = "quota exceeded"
            raise OSError(msg)
        await super().set(key, value)


class PageLoad:
    """One simulated page load: a tree plus fresh store, reader and engine."""

    def __init__(
        self,
        root: Element,
        persistence: InMemoryPersistence,
        legacy_class: str = "simple-highlight",
        url: str = PAGE_URL,
        config: MigrationConfig | None = None,
    ) -> None:
        self.root = root
        self.paint = RangeGroupPaint()
        self.store = HighlightStore(root, self.paint)
        self.reader = TreeLegacyReader(root, has_class(legacy_class))
        self.engine = MigrationEngine(
            url, self.store, self.reader, persistence, config=config
        )
