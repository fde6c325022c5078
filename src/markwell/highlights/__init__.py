"""Highlight records, colors and painting."""

from markwell.highlights.colors import (
    COLORS,
    DEFAULT_COLOR,
    EXPORT_COLOR_NAMES,
    legacy_color_to_name,
)
from markwell.highlights.paint import PaintCapability, RangeGroupPaint
from markwell.highlights.store import (
    ExportItem,
    Highlight,
    HighlightRecord,
    HighlightStore,
)

__all__ = [
    "COLORS",
    "DEFAULT_COLOR",
    "EXPORT_COLOR_NAMES",
    "ExportItem",
    "Highlight",
    "HighlightRecord",
    "HighlightStore",
    "PaintCapability",
    "RangeGroupPaint",
    "legacy_color_to_name",
]
