"""Structural node addressing.

A node is addressed from a fixed root by one step per ancestor. Each step
records the node kind and its index among preceding siblings of the same
kind: text nodes count only text siblings, elements count only element
siblings with the same tag. Inserting a sibling of a different kind does
not shift the index; inserting one of the same kind does, which the
text-snapshot check in the codec detects.

String form, as persisted by earlier releases::

    div[0]/p[2]/text[0]
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, model_validator

from markwell.dom.nodes import Element, Node, NodeKind, Text
from markwell.errors import AddressingError

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)

_STEP_PATTERN = re.compile(r"^(\w+)\[(\d+)\]$")


class PathStep(BaseModel):
    """One level of a NodePath."""

    model_config = ConfigDict(frozen=True)

    kind: NodeKind
    tag: str | None = None
    index: int = Field(ge=0)

    @model_validator(mode="after")
    def _tag_matches_kind(self) -> PathStep:
        if self.kind is NodeKind.ELEMENT and not self.tag:
            msg = "element steps require a tag"
            raise ValueError(msg)
        if self.kind is NodeKind.TEXT and self.tag is not None:
            msg = "text steps cannot carry a tag"
            raise ValueError(msg)
        return self

    def matches(self, node: Node) -> bool:
        """True if ``node`` is of this step's kind (and tag)."""
        if self.kind is NodeKind.TEXT:
            return isinstance(node, Text)
        return isinstance(node, Element) and node.tag == self.tag

    def __str__(self) -> str:
        label = "text" if self.kind is NodeKind.TEXT else self.tag
        return f"{label}[{self.index}]"


NodePath: TypeAlias = list[PathStep]


def _same_kind(a: Node, b: Node) -> bool:
    if isinstance(a, Text):
        return isinstance(b, Text)
    return isinstance(b, Element) and isinstance(a, Element) and a.tag == b.tag


def _step_for(node: Node) -> PathStep:
    parent = node.parent
    assert parent is not None
    index = 0
    for sibling in parent.children:
        if sibling is node:
            break
        if _same_kind(sibling, node):
            index += 1
    if isinstance(node, Text):
        return PathStep(kind=NodeKind.TEXT, index=index)
    assert isinstance(node, Element)
    return PathStep(kind=NodeKind.ELEMENT, tag=node.tag, index=index)


def compute_path(node: Node, root: Node) -> NodePath:
    """Compute the path of ``node`` relative to ``root``.

    Raises:
        AddressingError: ``node`` is not ``root`` or one of its descendants.
    """
    steps: NodePath = []
    current = node
    while current is not root:
        if current.parent is None:
            msg = f"{node!r} is not inside {root!r}"
            raise AddressingError(msg)
        steps.append(_step_for(current))
        current = current.parent
    steps.reverse()
    return steps


def resolve_path(path: Iterable[PathStep], root: Node) -> Node | None:
    """Resolve a path from ``root``; ``None`` as soon as a step is unresolvable."""
    current = root
    for step in path:
        if not isinstance(current, Element):
            return None
        candidates = [child for child in current.children if step.matches(child)]
        if step.index >= len(candidates):
            return None
        current = candidates[step.index]
    return current


def format_path(path: Iterable[PathStep]) -> str:
    """Render a path as ``div[0]/p[2]/text[0]`` (empty string for the root)."""
    return "/".join(str(step) for step in path)


def parse_path(text: str) -> NodePath | None:
    """Parse the string form; ``None`` when malformed."""
    if not isinstance(text, str):
        return None
    trimmed = text.strip()
    if not trimmed:
        return []

    steps: NodePath = []
    for raw in trimmed.split("/"):
        if not raw:
            continue
        match = _STEP_PATTERN.match(raw)
        if match is None:
            logger.debug("Malformed path step %r in %r", raw, text)
            return None
        label, index = match.group(1), int(match.group(2))
        if label == "text":
            steps.append(PathStep(kind=NodeKind.TEXT, index=index))
        else:
            steps.append(PathStep(kind=NodeKind.ELEMENT, tag=label.lower(), index=index))
    return steps


def is_valid_path_string(text: object) -> bool:
    """Strict format check; the empty string is valid and denotes the root."""
    if not isinstance(text, str):
        return False
    if not text.strip():
        return True
    return all(_STEP_PATTERN.match(step) for step in text.split("/"))
