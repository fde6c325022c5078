"""Access to legacy highlight markup.

Old releases wrapped highlighted text in ``<span class="simple-highlight"
style="background-color: ...">``. The engine only sees the
:class:`LegacyMarkupReader` protocol; :class:`TreeLegacyReader` implements
it over :mod:`markwell.dom` with an injected element predicate.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Protocol, TypeVar

from markwell.anchoring.range import Range

if TYPE_CHECKING:
    from collections.abc import Callable

    from markwell.dom.nodes import Element

MIGRATED_ATTR = "data-migrated"
NEW_ID_ATTR = "data-new-id"

_FIRST_COMPONENT = re.compile(r"rgba?\([^)]*\)|\S+")


def has_class(name: str) -> Callable[[Element], bool]:
    """Predicate matching elements that carry CSS class ``name``."""

    def predicate(element: Element) -> bool:
        return name in element.classes

    return predicate


E = TypeVar("E")


class LegacyMarkupReader(Protocol[E]):
    """Tree-query capability over legacy highlight elements."""

    def find_legacy(self) -> list[E]:
        """All legacy highlight elements, in document order."""
        ...

    def find_migrated(self) -> list[E]:
        """Legacy elements marked as migrated."""
        ...

    def text_of(self, element: E) -> str: ...

    def color_token_of(self, element: E) -> str | None:
        """The element's style-derived background color, if any."""
        ...

    def contents_range(self, element: E) -> Range:
        """A range covering the element's contents."""
        ...

    def mark_migrated(self, element: E, new_id: str) -> None: ...

    def new_id_of(self, element: E) -> str | None:
        """Id of the highlight a migrated element was converted to."""
        ...

    def clear_marker(self, element: E) -> None: ...

    def hide(self, element: E) -> None:
        """Make the element invisible and non-interactive, keeping it in place."""
        ...

    def reveal(self, element: E) -> None: ...

    def unwrap(self, element: E) -> None:
        """Replace the element by its children and merge adjacent text."""
        ...


class TreeLegacyReader:
    """LegacyMarkupReader over a :mod:`markwell.dom` tree."""

    def __init__(self, root: Element, predicate: Callable[[Element], bool]) -> None:
        self.root = root
        self.predicate = predicate

    def find_legacy(self) -> list[Element]:
        return self.root.find_all(self.predicate)

    def find_migrated(self) -> list[Element]:
        return [
            element
            for element in self.find_legacy()
            if element.get_attribute(MIGRATED_ATTR) == "true"
        ]

    def text_of(self, element: Element) -> str:
        return element.text_content

    def color_token_of(self, element: Element) -> str | None:
        style = element.style
        token = style.get("background-color")
        if token is None and "background" in style:
            # Shorthand: the color is the first component
            match = _FIRST_COMPONENT.match(style["background"])
            token = match.group(0) if match else None
        return token

    def contents_range(self, element: Element) -> Range:
        return Range.select_node_contents(element)

    def mark_migrated(self, element: Element, new_id: str) -> None:
        element.set_attribute(MIGRATED_ATTR, "true")
        element.set_attribute(NEW_ID_ATTR, new_id)

    def new_id_of(self, element: Element) -> str | None:
        if element.get_attribute(MIGRATED_ATTR) != "true":
            return None
        return element.get_attribute(NEW_ID_ATTR) or None

    def clear_marker(self, element: Element) -> None:
        element.remove_attribute(MIGRATED_ATTR)
        element.remove_attribute(NEW_ID_ATTR)

    def hide(self, element: Element) -> None:
        element.set_style("opacity", "0")
        element.set_style("pointer-events", "none")

    def reveal(self, element: Element) -> None:
        element.set_style("opacity", "1")
        element.set_style("pointer-events", "auto")

    def unwrap(self, element: Element) -> None:
        parent = element.unwrap()
        parent.normalize()
