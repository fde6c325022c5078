"""Highlight color palette and conversions."""

from __future__ import annotations

import re

# Internal color name -> background color
COLORS: dict[str, str] = {
    "yellow": "#fff3cd",
    "green": "#d4edda",
    "blue": "#cce7ff",
    "red": "#f8d7da",
}

DEFAULT_COLOR = "yellow"

# Internal color name -> color name understood by the export consumer
EXPORT_COLOR_NAMES: dict[str, str] = {
    "yellow": "yellow_background",
    "green": "green_background",
    "blue": "blue_background",
    "red": "red_background",
}

DEFAULT_EXPORT_COLOR = "yellow_background"

# Legacy markup stored either the hex value or the browser-computed rgb()
_LEGACY_TOKENS: dict[str, str] = {
    "#fff3cd": "yellow",
    "rgb(255, 243, 205)": "yellow",
    "#d4edda": "green",
    "rgb(212, 237, 218)": "green",
    "#cce7ff": "blue",
    "rgb(204, 231, 255)": "blue",
    "#f8d7da": "red",
    "rgb(248, 215, 218)": "red",
}

_RGB_PATTERN = re.compile(r"^rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*[\d.]+\s*)?\)$")


def is_valid_color(name: object) -> bool:
    return isinstance(name, str) and name in COLORS


def normalize_color_token(token: str) -> str:
    """Canonical form of a CSS color token: lowercase hex or ``rgb(r, g, b)``."""
    token = token.strip().lower()
    match = _RGB_PATTERN.match(token)
    if match:
        r, g, b = match.groups()
        return f"rgb({int(r)}, {int(g)}, {int(b)})"
    return token


def legacy_color_to_name(token: str | None) -> str:
    """Map a legacy background color token to a color name (default yellow)."""
    if not token:
        return DEFAULT_COLOR
    return _LEGACY_TOKENS.get(normalize_color_token(token), DEFAULT_COLOR)


def export_color_name(color: str) -> str:
    return EXPORT_COLOR_NAMES.get(color, DEFAULT_EXPORT_COLOR)
