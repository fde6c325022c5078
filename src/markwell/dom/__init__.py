"""Document tree model and HTML conversion."""

from markwell.dom.html import inner_html, parse_html, to_html
from markwell.dom.nodes import Element, Node, NodeKind, Text

__all__ = [
    "Element",
    "Node",
    "NodeKind",
    "Text",
    "inner_html",
    "parse_html",
    "to_html",
]
