"""Text ranges over the document tree.

Follows DOM Range semantics: a range is a pair of boundary points
``(container, offset)`` where the offset counts characters inside a text
node and children inside an element. Ranges are static: they do not track
later tree mutations. Callers that restructure the tree carry ranges over
by character offset (see ``text_offset`` and ``point_at_text_offset``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from markwell.dom.nodes import Element, Node, Text
from markwell.errors import RangeError

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(frozen=True)
class BoundaryPoint:
    """A position in the tree."""

    node: Node
    offset: int


def _path_from_root(node: Node) -> list[Node]:
    chain = [node, *node.ancestors()]
    chain.reverse()
    return chain


def _tree_order(a: Node, b: Node) -> int:
    """-1 if ``a`` precedes ``b`` in document order, 1 if it follows, 0 if same."""
    if a is b:
        return 0
    chain_a = _path_from_root(a)
    chain_b = _path_from_root(b)
    if chain_a[0] is not chain_b[0]:
        msg = "nodes are in different trees"
        raise ValueError(msg)
    depth = 0
    while (
        depth < len(chain_a)
        and depth < len(chain_b)
        and chain_a[depth] is chain_b[depth]
    ):
        depth += 1
    # One chain is a prefix of the other: the ancestor comes first
    if depth == len(chain_a):
        return -1
    if depth == len(chain_b):
        return 1
    return -1 if chain_a[depth].index < chain_b[depth].index else 1


def compare_points(a: BoundaryPoint, b: BoundaryPoint) -> int:
    """Return -1, 0 or 1 as ``a`` is before, equal to or after ``b``."""
    if a.node is b.node:
        return (a.offset > b.offset) - (a.offset < b.offset)

    if a.node.is_descendant_of(b.node):
        return -compare_points(b, a)

    if b.node.is_descendant_of(a.node):
        child = b.node
        while child.parent is not a.node:
            assert child.parent is not None
            child = child.parent
        return 1 if child.index < a.offset else -1

    return _tree_order(a.node, b.node)


class Range:
    """A mutable range between two boundary points of one tree."""

    def __init__(
        self,
        start_node: Node,
        start_offset: int,
        end_node: Node | None = None,
        end_offset: int | None = None,
    ) -> None:
        _check_offset(start_node, start_offset)
        self._start = BoundaryPoint(start_node, start_offset)
        self._end = self._start
        if end_node is not None:
            self.set_end(end_node, start_offset if end_offset is None else end_offset)

    @classmethod
    def select_node_contents(cls, node: Node) -> Range:
        """Range spanning everything inside ``node``."""
        return cls(node, 0, node, node.length)

    @property
    def start(self) -> BoundaryPoint:
        return self._start

    @property
    def end(self) -> BoundaryPoint:
        return self._end

    @property
    def start_container(self) -> Node:
        return self._start.node

    @property
    def start_offset(self) -> int:
        return self._start.offset

    @property
    def end_container(self) -> Node:
        return self._end.node

    @property
    def end_offset(self) -> int:
        return self._end.offset

    @property
    def collapsed(self) -> bool:
        return self._start == self._end

    def set_start(self, node: Node, offset: int) -> None:
        """Move the start; a start after the end collapses the range onto it."""
        _check_offset(node, offset)
        point = BoundaryPoint(node, offset)
        if node.root() is not self._end.node.root() or compare_points(point, self._end) > 0:
            self._end = point
        self._start = point

    def set_end(self, node: Node, offset: int) -> None:
        """Move the end; an end before the start collapses the range onto it."""
        _check_offset(node, offset)
        point = BoundaryPoint(node, offset)
        if node.root() is not self._start.node.root() or compare_points(point, self._start) < 0:
            self._start = point
        self._end = point

    def clone(self) -> Range:
        return Range(self.start_container, self.start_offset, self.end_container, self.end_offset)

    def is_point_in_range(self, node: Node, offset: int) -> bool:
        """Inclusive containment test for a boundary point."""
        if node.root() is not self._start.node.root():
            return False
        point = BoundaryPoint(node, offset)
        return compare_points(point, self._start) >= 0 and compare_points(point, self._end) <= 0

    def iter_contained_text(self) -> Iterator[tuple[Text, int, int]]:
        """Yield ``(text_node, start, end)`` slices covered by the range."""
        start, end = self._start, self._end
        if start.node is end.node and isinstance(start.node, Text):
            yield start.node, start.offset, end.offset
            return

        if isinstance(start.node, Text):
            yield start.node, start.offset, start.node.length

        root = start.node.root()
        candidates = root.iter_text() if isinstance(root, Element) else iter(())
        for text in candidates:
            if text is start.node or text is end.node:
                continue
            if (
                compare_points(BoundaryPoint(text, 0), start) > 0
                and compare_points(BoundaryPoint(text, text.length), end) < 0
            ):
                yield text, 0, text.length

        if isinstance(end.node, Text):
            yield end.node, 0, end.offset

    def to_string(self) -> str:
        """The text the range covers, like ``Range.toString()``."""
        return "".join(text.data[lo:hi] for text, lo, hi in self.iter_contained_text())

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return (
            f"Range({self.start_container!r}, {self.start_offset}, "
            f"{self.end_container!r}, {self.end_offset})"
        )


def _check_offset(node: Node, offset: int) -> None:
    if offset < 0 or offset > node.length:
        raise RangeError(offset, node.length)


def text_offset(point: BoundaryPoint, root: Element) -> int:
    """Number of characters of ``root``'s text that precede ``point``."""
    total = 0
    for text in root.iter_text():
        if text is point.node:
            return total + point.offset
        if compare_points(BoundaryPoint(text, text.length), point) > 0:
            break
        total += text.length
    return total


def point_at_text_offset(root: Element, offset: int, *, forward: bool) -> BoundaryPoint:
    """Boundary point ``offset`` characters into ``root``'s text.

    On a text-node seam, ``forward`` picks the start of the following node
    (suits range starts) instead of the end of the preceding one.
    """
    remaining = offset
    last: Text | None = None
    for text in root.iter_text():
        if remaining < text.length or (remaining == text.length and not forward):
            return BoundaryPoint(text, remaining)
        remaining -= text.length
        last = text
    if last is not None:
        return BoundaryPoint(last, last.length)
    return BoundaryPoint(root, root.length)
