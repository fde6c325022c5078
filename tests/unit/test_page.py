"""Tests for the per-page session."""

from __future__ import annotations

import pytest

from markwell.anchoring import Range, encode
from markwell.config import Settings
from markwell.dom import Element, Text, parse_html
from markwell.highlights import RangeGroupPaint
from markwell.migration import MigrationPhase
from markwell.page import PageSession
from tests.helpers.page_loads import PAGE_URL, FlakyPersistence


def _session_settings() -> Settings:
    return Settings(  # type: ignore[call-arg]
        _env_file=None,
        highlight={"default_color": "green"},
        migration={"legacy_class": "legacy-hl"},
        stability={"threshold_ms": 10, "max_wait_ms": 200, "poll_interval_ms": 5},
    )


class TestPageSession:
    """Tests for PageSession wiring and lifecycle."""

    @pytest.mark.asyncio
    async def test_migrate_uses_configured_markup(
        self, paint: RangeGroupPaint, persistence: FlakyPersistence
    ) -> None:
        root = parse_html('<p><span class="legacy-hl">old note</span></p>')
        session = PageSession(PAGE_URL, root, paint, persistence, _session_settings())

        result = await session.migrate()

        assert result.phase is MigrationPhase.PHASE_1_CREATED
        assert session.store.get_count() == 1
        assert len(paint.ranges("yellow")) == 1

    def test_default_color_from_settings(
        self, abcde: Element, paint: RangeGroupPaint, persistence: FlakyPersistence
    ) -> None:
        session = PageSession(PAGE_URL, abcde, paint, persistence, _session_settings())
        text = abcde.children[0].children[0]  # type: ignore[union-attr]

        new_id = session.store.add_highlight(Range(text, 0, text, 3))

        assert new_id is not None
        assert session.store.get(new_id).color == "green"  # type: ignore[union-attr]

    @pytest.mark.asyncio
    async def test_resolve_anchor(
        self, abcde: Element, paint: RangeGroupPaint, persistence: FlakyPersistence
    ) -> None:
        session = PageSession(PAGE_URL, abcde, paint, persistence, _session_settings())
        text = abcde.children[0].children[0]  # type: ignore[union-attr]
        anchor = encode(Range(text, 2, text, 5), abcde)

        resolved = await session.resolve_anchor(anchor)

        assert resolved is not None
        assert resolved.to_string() == "CDE"

    @pytest.mark.asyncio
    async def test_resolve_stale_anchor(
        self, abcde: Element, paint: RangeGroupPaint, persistence: FlakyPersistence
    ) -> None:
        session = PageSession(PAGE_URL, abcde, paint, persistence, _session_settings())
        text = abcde.children[0].children[0]  # type: ignore[union-attr]
        assert isinstance(text, Text)
        anchor = encode(Range(text, 2, text, 5), abcde)
        text.data = "vwxyz"

        assert await session.resolve_anchor(anchor) is None

    @pytest.mark.asyncio
    async def test_dispose(
        self, abcde: Element, paint: RangeGroupPaint, persistence: FlakyPersistence
    ) -> None:
        """Disposing clears painted highlights and stops further passes."""
        session = PageSession(PAGE_URL, abcde, paint, persistence, _session_settings())
        text = abcde.children[0].children[0]  # type: ignore[union-attr]
        session.store.add_highlight(Range(text, 0, text, 3))

        session.dispose()
        session.dispose()
        result = await session.migrate()

        assert paint.total() == 0
        assert result.skipped
        assert result.reason == "disposed"
        assert persistence.writes == 0
