"""In-memory registry of a page's highlights.

The store owns highlight records, assigns ids, encodes anchors eagerly at
creation time and forwards painting to an injected PaintCapability.
Persisting records and restoring them on load are the host's job; the
store only exposes ``records()`` and ``seed()`` for that.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel

from markwell.anchoring.codec import RangeAnchor, encode
from markwell.anchoring.range import compare_points, point_at_text_offset, text_offset
from markwell.dom.nodes import Element
from markwell.errors import DuplicateHighlightError
from markwell.highlights.colors import (
    COLORS,
    DEFAULT_COLOR,
    export_color_name,
    is_valid_color,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from markwell.anchoring.range import Range
    from markwell.dom.nodes import Node
    from markwell.highlights.paint import PaintCapability

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Highlight:
    """A colored annotation over a span of page text.

    Attributes:
        id: Store-unique identifier (``h<n>``).
        color: Internal color name.
        text: The covered text, trimmed.
        created_at: Creation time (UTC).
        anchor: Serialized boundaries used to find the text again.
        range: The live range being painted.
    """

    id: str
    color: str
    text: str
    created_at: datetime
    anchor: RangeAnchor
    range: Range = field(repr=False, compare=False)

    def to_record(self) -> HighlightRecord:
        return HighlightRecord(
            id=self.id,
            color=self.color,
            text=self.text,
            created_at=self.created_at,
            anchor=self.anchor,
        )


class HighlightRecord(BaseModel):
    """Persisted form of a highlight (no live range)."""

    id: str
    color: str
    text: str
    created_at: datetime
    anchor: RangeAnchor


@dataclass(frozen=True)
class ExportItem:
    """One highlight as handed to the export consumer."""

    text: str
    color: str


class HighlightStore:
    """Registry of highlights for one page.

    Args:
        root: Fixed root that anchors are computed against.
        paint: Rendering capability, keyed by color.
        default_color: Color used when ``add_highlight`` gets none.
    """

    def __init__(
        self,
        root: Node,
        paint: PaintCapability,
        default_color: str = DEFAULT_COLOR,
    ) -> None:
        self.root = root
        self._paint = paint
        self._highlights: dict[str, Highlight] = {}
        self._next_id = 1
        self.current_color = default_color if default_color in COLORS else DEFAULT_COLOR

    # --- queries ----------------------------------------------------------

    def get_count(self) -> int:
        return len(self._highlights)

    def __len__(self) -> int:
        return len(self._highlights)

    def __contains__(self, highlight_id: object) -> bool:
        return highlight_id in self._highlights

    def __iter__(self) -> Iterator[Highlight]:
        return iter(list(self._highlights.values()))

    def get(self, highlight_id: str) -> Highlight | None:
        return self._highlights.get(highlight_id)

    def highlight_at(self, node: Node, offset: int) -> str | None:
        """Id of the first highlight containing the point, if any."""
        for highlight in self._highlights.values():
            if highlight.range.is_point_in_range(node, offset):
                return highlight.id
        return None

    # --- mutation ---------------------------------------------------------

    def _generate_id(self) -> str:
        highlight_id = f"h{self._next_id}"
        self._next_id += 1
        # Restored highlights keep their stored ids, so skip past them
        while highlight_id in self._highlights:
            highlight_id = f"h{self._next_id}"
            self._next_id += 1
        return highlight_id

    def add_highlight(self, range_: Range | None, color: str | None = None) -> str | None:
        """Highlight ``range_``.

        Returns:
            The new id, or None when the range is missing, collapsed or
            covers only whitespace.

        Raises:
            AddressingError: the range lies outside the store's root.
        """
        if range_ is None or range_.collapsed:
            return None
        text = range_.to_string().strip()
        if not text:
            return None

        color = color or self.current_color
        anchor = encode(range_, self.root)
        live = range_.clone()
        highlight_id = self._generate_id()

        self._paint.register(color, live)
        self._highlights[highlight_id] = Highlight(
            id=highlight_id,
            color=color,
            text=text,
            created_at=datetime.now(UTC),
            anchor=anchor,
            range=live,
        )
        logger.debug("Added highlight %s (%s, %d chars)", highlight_id, color, len(text))
        return highlight_id

    def seed(self, record: HighlightRecord, range_: Range) -> Highlight:
        """Register a previously persisted highlight under its own id.

        Raises:
            DuplicateHighlightError: the id is already in use.
        """
        if record.id in self._highlights:
            raise DuplicateHighlightError(record.id)
        highlight = Highlight(
            id=record.id,
            color=record.color,
            text=record.text,
            created_at=record.created_at,
            anchor=record.anchor,
            range=range_,
        )
        self._paint.register(record.color, range_)
        self._highlights[record.id] = highlight
        return highlight

    def remove_highlight(self, highlight_id: str) -> bool:
        """Remove a highlight; False if it does not exist."""
        highlight = self._highlights.pop(highlight_id, None)
        if highlight is None:
            return False
        self._paint.unregister(highlight.color, highlight.range)
        logger.debug("Removed highlight %s", highlight_id)
        return True

    def clear_all(self) -> None:
        """Remove every highlight and clear every color group."""
        colors = dict.fromkeys([*COLORS, *(h.color for h in self._highlights.values())])
        for color in colors:
            self._paint.clear(color)
        self._highlights.clear()

    def set_color(self, name: str) -> None:
        """Set the default color; unknown names are ignored."""
        if is_valid_color(name):
            self.current_color = name
        else:
            logger.debug("Ignoring unknown highlight color %r", name)

    @contextmanager
    def preserving_ranges(self) -> Iterator[None]:
        """Keep every highlight on the same text across a restructuring.

        Boundaries are recorded as character offsets into the root's text
        and re-seated afterwards, so the change must not alter that text
        (unwrapping and normalising do not). Anchors are re-encoded against
        the new structure.
        """
        root = self.root
        if not isinstance(root, Element):
            yield
            return

        saved: list[tuple[str, int, int]] = []
        for highlight in self._highlights.values():
            range_ = highlight.range
            if not (
                _within(range_.start_container, root)
                and _within(range_.end_container, root)
            ):
                continue
            start = text_offset(range_.start, root)
            saved.append((highlight.id, start, text_offset(range_.end, root)))

        try:
            yield
        finally:
            for highlight_id, start, end in saved:
                highlight = self._highlights.get(highlight_id)
                if highlight is None:
                    continue
                # Same Range object: the paint capability keeps drawing it
                start_point = point_at_text_offset(root, start, forward=True)
                end_point = point_at_text_offset(root, end, forward=False)
                highlight.range.set_start(start_point.node, start_point.offset)
                highlight.range.set_end(end_point.node, end_point.offset)
                self._highlights[highlight_id] = replace(
                    highlight, anchor=encode(highlight.range, root)
                )

    def dispose(self) -> None:
        """Release everything when the page goes away."""
        self.clear_all()
        self._next_id = 1

    # --- export -----------------------------------------------------------

    def records(self) -> list[HighlightRecord]:
        return [highlight.to_record() for highlight in self._highlights.values()]

    def collect_for_export(self) -> list[ExportItem]:
        return [
            ExportItem(text=highlight.text, color=export_color_name(highlight.color))
            for highlight in self._highlights.values()
        ]

    # --- geometry ---------------------------------------------------------

    @staticmethod
    def overlaps(a: Range, b: Range) -> bool:
        """Strict overlap: touching boundaries do not count."""
        if a.start_container.root() is not b.start_container.root():
            return False
        return compare_points(a.end, b.start) > 0 and compare_points(a.start, b.end) < 0


def _within(node: Node, root: Node) -> bool:
    return node is root or node.is_descendant_of(root)
