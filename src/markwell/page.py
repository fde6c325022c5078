"""Per-page composition of store, legacy reader and migration engine.

The host creates one :class:`PageSession` when a page is loaded and calls
:meth:`PageSession.dispose` when the user navigates away. Nothing is kept
in module-level state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from markwell.anchoring.stability import decode_with_retry
from markwell.config import Settings, get_settings
from markwell.highlights.store import HighlightStore
from markwell.migration.engine import MigrationEngine
from markwell.migration.legacy import TreeLegacyReader, has_class
from markwell.migration.state import MigrationResult

if TYPE_CHECKING:
    import asyncio

    from markwell.anchoring.codec import RangeAnchor
    from markwell.anchoring.range import Range
    from markwell.dom.nodes import Element
    from markwell.highlights.paint import PaintCapability
    from markwell.migration.persistence import PersistenceGateway

logger = logging.getLogger(__name__)


class PageSession:
    """Everything highlight-related for one loaded page.

    Args:
        url: The page URL.
        root: Root element anchors are relative to (the page body).
        paint: Rendering capability for the store.
        persistence: Gateway holding the page's migration state.
        settings: Settings to use; ``get_settings()`` when omitted.
    """

    def __init__(
        self,
        url: str,
        root: Element,
        paint: PaintCapability,
        persistence: PersistenceGateway,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.url = url
        self.root = root
        self.store = HighlightStore(
            root, paint, default_color=self.settings.highlight.default_color
        )
        self.reader = TreeLegacyReader(
            root, has_class(self.settings.migration.legacy_class)
        )
        self.engine = MigrationEngine(
            url,
            self.store,
            self.reader,
            persistence,
            config=self.settings.migration,
        )
        self.disposed = False

    async def migrate(self) -> MigrationResult:
        """Run this load's migration pass."""
        if self.disposed:
            return MigrationResult(skipped=True, reason="disposed")
        result = await self.engine.perform_migration()
        logger.debug("Migration pass for %s: %s", self.url, result)
        return result

    async def resolve_anchor(
        self, anchor: RangeAnchor, cancel: asyncio.Event | None = None
    ) -> Range | None:
        """Re-resolve an anchor, waiting for the page to settle between attempts."""
        stability = self.settings.stability
        return await decode_with_retry(
            anchor,
            self.root,
            retries=stability.restore_retries,
            threshold=stability.threshold_ms / 1000,
            max_wait=stability.max_wait_ms / 1000,
            poll_interval=stability.poll_interval_ms / 1000,
            cancel=cancel,
        )

    def dispose(self) -> None:
        """Release the page: clear highlights and stop migrating."""
        if self.disposed:
            return
        self.disposed = True
        self.engine.dispose()
        self.store.dispose()
        logger.debug("Disposed page session for %s", self.url)
