"""Mutable document tree used for highlighting and migration.

A deliberately small subset of the DOM: elements and text nodes with
parent pointers, sibling navigation, inline style access and the two
structural operations the migration needs (``unwrap`` and ``normalize``).

Every mutation bumps a revision counter kept on the tree's root node,
which lets callers detect that the tree changed between two reads.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


class NodeKind(StrEnum):
    """Node categories used for structural addressing."""

    TEXT = "text"
    ELEMENT = "element"


class Node:
    """Common base for tree nodes."""

    kind: NodeKind

    def __init__(self) -> None:
        self.parent: Element | None = None
        self._revision = 0

    # --- navigation -------------------------------------------------------

    @property
    def index(self) -> int:
        """Position among the parent's children (0 for a detached node)."""
        if self.parent is None:
            return 0
        for i, child in enumerate(self.parent.children):
            if child is self:
                return i
        msg = "node is not among its parent's children"
        raise RuntimeError(msg)

    @property
    def next_sibling(self) -> Node | None:
        if self.parent is None:
            return None
        siblings = self.parent.children
        i = self.index + 1
        return siblings[i] if i < len(siblings) else None

    @property
    def previous_sibling(self) -> Node | None:
        if self.parent is None:
            return None
        i = self.index - 1
        return self.parent.children[i] if i >= 0 else None

    def root(self) -> Node:
        """Return the topmost ancestor (self for a detached node)."""
        node: Node = self
        while node.parent is not None:
            node = node.parent
        return node

    def ancestors(self) -> Iterator[Element]:
        """Yield ancestors from the parent upwards."""
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def is_descendant_of(self, other: Node) -> bool:
        return any(ancestor is other for ancestor in self.ancestors())

    def contains(self, other: Node) -> bool:
        """True if ``other`` is this node or one of its descendants."""
        return other is self or other.is_descendant_of(self)

    # --- content ----------------------------------------------------------

    @property
    def length(self) -> int:
        """Boundary-point length: characters for text, children for elements."""
        raise NotImplementedError

    @property
    def text_content(self) -> str:
        raise NotImplementedError

    @property
    def revision(self) -> int:
        """Mutation counter of the tree this node belongs to."""
        return self.root()._revision

    def _touch(self) -> None:
        self.root()._revision += 1

    def remove(self) -> None:
        """Detach this node from its parent (no-op when detached)."""
        if self.parent is not None:
            self.parent.remove_child(self)


class Text(Node):
    """A text node."""

    kind = NodeKind.TEXT

    def __init__(self, data: str = "") -> None:
        super().__init__()
        self._data = data

    @property
    def data(self) -> str:
        return self._data

    @data.setter
    def data(self, value: str) -> None:
        self._data = value
        self._touch()

    @property
    def length(self) -> int:
        return len(self._data)

    @property
    def text_content(self) -> str:
        return self._data

    def __repr__(self) -> str:
        return f"Text({self._data!r})"


class Element(Node):
    """An element node with attributes and ordered children."""

    kind = NodeKind.ELEMENT

    def __init__(
        self,
        tag: str,
        attrs: dict[str, str] | None = None,
        children: list[Node] | None = None,
    ) -> None:
        super().__init__()
        self.tag = tag.lower()
        self.attrs: dict[str, str] = dict(attrs or {})
        self.children: list[Node] = []
        for child in children or ():
            self.append(child)

    def __repr__(self) -> str:
        return f"Element({self.tag!r}, children={len(self.children)})"

    @property
    def length(self) -> int:
        return len(self.children)

    @property
    def text_content(self) -> str:
        return "".join(node.data for node in self.iter_text())

    # --- traversal --------------------------------------------------------

    def iter_descendants(self) -> Iterator[Node]:
        """Yield all descendants in document (pre-)order."""
        for child in self.children:
            yield child
            if isinstance(child, Element):
                yield from child.iter_descendants()

    def iter_text(self) -> Iterator[Text]:
        for node in self.iter_descendants():
            if isinstance(node, Text):
                yield node

    def find_all(self, predicate: Callable[[Element], bool]) -> list[Element]:
        """Return descendant elements matching ``predicate`` in document order."""
        return [
            node
            for node in self.iter_descendants()
            if isinstance(node, Element) and predicate(node)
        ]

    # --- mutation ---------------------------------------------------------

    def append(self, node: Node) -> Node:
        return self.insert_before(node, None)

    def insert_before(self, node: Node, reference: Node | None) -> Node:
        """Insert ``node`` before ``reference`` (append when ``reference`` is None)."""
        if node is self or (isinstance(node, Element) and node.contains(self)):
            msg = "cannot insert a node into its own subtree"
            raise ValueError(msg)
        if reference is not None and reference.parent is not self:
            msg = "reference node is not a child of this element"
            raise ValueError(msg)
        if node is reference:
            return node
        node.remove()
        if reference is None:
            self.children.append(node)
        else:
            self.children.insert(reference.index, node)
        node.parent = self
        self._touch()
        return node

    def remove_child(self, node: Node) -> Node:
        if node.parent is not self:
            msg = "node is not a child of this element"
            raise ValueError(msg)
        del self.children[node.index]
        self._touch()
        node.parent = None
        return node

    def unwrap(self) -> Element:
        """Move all children into the parent in place, then remove self.

        Returns the former parent.
        """
        parent = self.parent
        if parent is None:
            msg = "cannot unwrap a detached element"
            raise ValueError(msg)
        while self.children:
            parent.insert_before(self.children[0], self)
        parent.remove_child(self)
        return parent

    def normalize(self) -> None:
        """Drop empty text nodes and merge adjacent ones, recursively."""
        i = 0
        while i < len(self.children):
            child = self.children[i]
            if isinstance(child, Element):
                child.normalize()
                i += 1
                continue
            assert isinstance(child, Text)
            if not child.data:
                self.remove_child(child)
                continue
            while i + 1 < len(self.children) and isinstance(
                self.children[i + 1], Text
            ):
                following = self.children[i + 1]
                assert isinstance(following, Text)
                child.data += following.data
                self.remove_child(following)
            i += 1

    # --- attributes -------------------------------------------------------

    def get_attribute(self, name: str) -> str | None:
        return self.attrs.get(name)

    def set_attribute(self, name: str, value: str) -> None:
        self.attrs[name] = value
        self._touch()

    def remove_attribute(self, name: str) -> None:
        if self.attrs.pop(name, None) is not None:
            self._touch()

    def has_attribute(self, name: str) -> bool:
        return name in self.attrs

    @property
    def classes(self) -> list[str]:
        return self.attrs.get("class", "").split()

    # --- inline style -----------------------------------------------------

    @property
    def style(self) -> dict[str, str]:
        """Parsed copy of the inline ``style`` attribute."""
        return parse_style(self.attrs.get("style", ""))

    def get_style(self, prop: str) -> str | None:
        return self.style.get(prop.lower())

    def set_style(self, prop: str, value: str) -> None:
        declarations = self.style
        declarations[prop.lower()] = value
        self.set_attribute("style", format_style(declarations))

    def remove_style(self, prop: str) -> None:
        declarations = self.style
        if declarations.pop(prop.lower(), None) is None:
            return
        if declarations:
            self.set_attribute("style", format_style(declarations))
        else:
            self.remove_attribute("style")


def parse_style(text: str) -> dict[str, str]:
    """Parse ``a: b; c: d`` into an ordered dict with lowercased property names."""
    declarations: dict[str, str] = {}
    for chunk in text.split(";"):
        name, sep, value = chunk.partition(":")
        if not sep:
            continue
        name = name.strip().lower()
        value = value.strip()
        if name and value:
            declarations[name] = value
    return declarations


def format_style(declarations: dict[str, str]) -> str:
    return "; ".join(f"{name}: {value}" for name, value in declarations.items())
