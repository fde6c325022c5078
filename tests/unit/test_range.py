"""Tests for ranges and boundary-point ordering."""

from __future__ import annotations

import pytest

from markwell.anchoring import (
    BoundaryPoint,
    Range,
    compare_points,
    point_at_text_offset,
    text_offset,
)
from markwell.dom import Element, Text, parse_html
from markwell.errors import RangeError


def _sentence() -> tuple[Element, Text, Element, Text]:
    """``<p>Hello <b>bold</b> world</p>`` and its pieces."""
    root = parse_html("<p>Hello <b>bold</b> world</p>")
    para = root.children[0]
    assert isinstance(para, Element)
    first, bold, last = para.children
    assert isinstance(first, Text)
    assert isinstance(bold, Element)
    assert isinstance(last, Text)
    return para, first, bold, last


class TestToString:
    """Tests for Range.to_string()."""

    def test_within_one_text_node(self, abcde: Element) -> None:
        text = abcde.children[0].children[0]  # type: ignore[union-attr]

        assert Range(text, 1, text, 4).to_string() == "BCD"

    def test_across_elements(self) -> None:
        """Partially selected ends plus fully contained text in between."""
        _, first, _, last = _sentence()

        assert Range(first, 2, last, 3).to_string() == "llo bold wo"

    def test_element_boundaries(self) -> None:
        """Offsets on an element count children."""
        para, _, _, _ = _sentence()

        assert Range(para, 1, para, 2).to_string() == "bold"
        assert Range.select_node_contents(para).to_string() == "Hello bold world"

    def test_collapsed(self) -> None:
        _, first, _, _ = _sentence()
        range_ = Range(first, 3, first, 3)

        assert range_.collapsed
        assert range_.to_string() == ""


class TestBoundaries:
    """Tests for boundary handling."""

    def test_offset_out_of_bounds(self) -> None:
        _, first, _, _ = _sentence()

        with pytest.raises(RangeError):
            Range(first, 0, first, 99)

    def test_end_before_start_collapses(self) -> None:
        """Setting an end before the start collapses onto the end."""
        _, first, _, last = _sentence()
        range_ = Range(last, 2, last, 4)

        range_.set_end(first, 1)

        assert range_.collapsed
        assert range_.start == BoundaryPoint(first, 1)

    def test_is_point_in_range_is_inclusive(self) -> None:
        _, first, bold, last = _sentence()
        range_ = Range(first, 2, last, 3)

        assert range_.is_point_in_range(first, 2)
        assert range_.is_point_in_range(bold, 0)
        assert range_.is_point_in_range(last, 3)
        assert not range_.is_point_in_range(first, 1)
        assert not range_.is_point_in_range(Text("other"), 0)


class TestComparePoints:
    """Tests for compare_points()."""

    def test_same_node(self) -> None:
        _, first, _, _ = _sentence()

        assert compare_points(BoundaryPoint(first, 1), BoundaryPoint(first, 2)) == -1
        assert compare_points(BoundaryPoint(first, 2), BoundaryPoint(first, 2)) == 0

    def test_ancestor_offsets(self) -> None:
        """A point in a child sits between the parent's child offsets."""
        para, _, bold, _ = _sentence()
        inside = BoundaryPoint(bold, 0)

        assert compare_points(BoundaryPoint(para, 1), inside) == -1
        assert compare_points(BoundaryPoint(para, 2), inside) == 1
        assert compare_points(inside, BoundaryPoint(para, 1)) == 1

    def test_document_order(self) -> None:
        _, first, _, last = _sentence()

        assert compare_points(BoundaryPoint(last, 0), BoundaryPoint(first, 5)) == 1

    def test_different_trees(self) -> None:
        with pytest.raises(ValueError):
            compare_points(BoundaryPoint(Text("a"), 0), BoundaryPoint(Text("b"), 0))


class TestTextOffsets:
    """Tests for text_offset() and point_at_text_offset()."""

    def test_offset_counts_preceding_text(self) -> None:
        para, first, bold, last = _sentence()
        inner = bold.children[0]

        assert text_offset(BoundaryPoint(first, 2), para) == 2
        assert text_offset(BoundaryPoint(inner, 0), para) == 6
        assert text_offset(BoundaryPoint(inner, 4), para) == 10
        assert text_offset(BoundaryPoint(last, 3), para) == 13

    def test_element_boundary(self) -> None:
        """A point between children counts the text before that child."""
        para, _, _, _ = _sentence()

        assert text_offset(BoundaryPoint(para, 2), para) == 10

    def test_seam_picks_side(self) -> None:
        para, _, bold, last = _sentence()
        inner = bold.children[0]

        after = point_at_text_offset(para, 10, forward=True)
        before = point_at_text_offset(para, 10, forward=False)

        assert (after.node, after.offset) == (last, 0)
        assert (before.node, before.offset) == (inner, 4)

    def test_offset_past_end_clamps(self) -> None:
        para, _, _, last = _sentence()

        point = point_at_text_offset(para, 99, forward=True)

        assert (point.node, point.offset) == (last, 6)
