"""Paint capability: how highlights become visible.

The store never touches rendering directly. It registers each highlight's
range with a paint capability under its color; the capability decides how
(if at all) that is drawn.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from markwell.anchoring.range import Range


class PaintCapability(Protocol):
    """Protocol for highlight renderers."""

    def register(self, color: str, range_: Range) -> None:
        """Start painting ``range_`` in ``color``."""
        ...

    def unregister(self, color: str, range_: Range) -> None:
        """Stop painting ``range_`` in ``color``."""
        ...

    def clear(self, color: str) -> None:
        """Stop painting every range of ``color``."""
        ...


class RangeGroupPaint:
    """Keeps one named group of ranges per color.

    Mirrors a registry of named highlight objects (one per color, named
    ``<prefix>-<color>``); a renderer reads the groups when drawing.
    """

    def __init__(self, colors: list[str] | None = None, prefix: str = "markwell") -> None:
        self.prefix = prefix
        self._groups: dict[str, list[Range]] = {color: [] for color in colors or ()}

    def group_name(self, color: str) -> str:
        return f"{self.prefix}-{color}"

    def register(self, color: str, range_: Range) -> None:
        group = self._groups.setdefault(color, [])
        if not any(existing is range_ for existing in group):
            group.append(range_)

    def unregister(self, color: str, range_: Range) -> None:
        group = self._groups.get(color)
        if not group:
            return
        self._groups[color] = [existing for existing in group if existing is not range_]

    def clear(self, color: str) -> None:
        if color in self._groups:
            self._groups[color] = []

    def colors(self) -> list[str]:
        return list(self._groups)

    def ranges(self, color: str) -> list[Range]:
        return list(self._groups.get(color, ()))

    def total(self) -> int:
        return sum(len(group) for group in self._groups.values())
