"""Range serialisation with snapshot verification.

``decode`` returning ``None`` is the only staleness signal: the addressed
nodes are gone, an offset no longer fits, or the resolved text differs
from the snapshot taken at encode time. Choosing a fallback (e.g. a text
search) is left to the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from markwell.anchoring.node_path import (
    PathStep,
    compute_path,
    format_path,
    resolve_path,
)
from markwell.anchoring.range import Range
from markwell.errors import RangeError

if TYPE_CHECKING:
    from markwell.dom.nodes import Node

logger = logging.getLogger(__name__)


class RangeAnchor(BaseModel):
    """Serializable form of a range's boundaries."""

    model_config = ConfigDict(frozen=True)

    start_path: list[PathStep]
    start_offset: int = Field(ge=0)
    end_path: list[PathStep]
    end_offset: int = Field(ge=0)
    text_snapshot: str

    def describe(self) -> str:
        return (
            f"{format_path(self.start_path)}:{self.start_offset}"
            f"..{format_path(self.end_path)}:{self.end_offset}"
        )


def encode(range_: Range, root: Node) -> RangeAnchor:
    """Capture ``range_`` relative to ``root``.

    Raises:
        AddressingError: a boundary container lies outside ``root``.
    """
    return RangeAnchor(
        start_path=compute_path(range_.start_container, root),
        start_offset=range_.start_offset,
        end_path=compute_path(range_.end_container, root),
        end_offset=range_.end_offset,
        text_snapshot=range_.to_string(),
    )


def decode(anchor: RangeAnchor, root: Node) -> Range | None:
    """Rebuild the range, or ``None`` if the anchor no longer fits the tree."""
    start = resolve_path(anchor.start_path, root)
    end = resolve_path(anchor.end_path, root)
    if start is None or end is None:
        logger.debug("Unresolvable anchor %s", anchor.describe())
        return None

    try:
        range_ = Range(start, anchor.start_offset, end, anchor.end_offset)
    except RangeError as exc:
        logger.debug("Anchor %s offset no longer fits: %s", anchor.describe(), exc)
        return None

    if not validate_range(range_, anchor.text_snapshot):
        logger.debug("Anchor %s text no longer matches snapshot", anchor.describe())
        return None
    return range_


def validate_range(range_: Range | None, expected_text: str) -> bool:
    """True if ``range_`` exists and covers exactly ``expected_text``."""
    if range_ is None:
        return False
    return range_.to_string() == expected_text
