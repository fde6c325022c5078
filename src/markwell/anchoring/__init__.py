"""Structural anchoring of text ranges."""

from markwell.anchoring.codec import RangeAnchor, decode, encode, validate_range
from markwell.anchoring.node_path import (
    NodePath,
    PathStep,
    compute_path,
    format_path,
    is_valid_path_string,
    parse_path,
    resolve_path,
)
from markwell.anchoring.range import (
    BoundaryPoint,
    Range,
    compare_points,
    point_at_text_offset,
    text_offset,
)
from markwell.anchoring.stability import decode_with_retry, wait_for_stability

__all__ = [
    "BoundaryPoint",
    "NodePath",
    "PathStep",
    "Range",
    "RangeAnchor",
    "compare_points",
    "compute_path",
    "decode",
    "decode_with_retry",
    "encode",
    "format_path",
    "is_valid_path_string",
    "parse_path",
    "point_at_text_offset",
    "resolve_path",
    "text_offset",
    "validate_range",
    "wait_for_stability",
]
