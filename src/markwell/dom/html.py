"""HTML <-> tree conversion.

Parsing walks the selectolax (Lexbor) tree via child/next iteration,
which exposes text nodes, and copies it into the mutable
:mod:`markwell.dom.nodes` model. Whitespace-only text nodes are kept:
structural paths must count the same text nodes a browser would.
"""

from __future__ import annotations

import html
from typing import Any

from selectolax.lexbor import LexborHTMLParser

from markwell.dom.nodes import Element, Node, Text

# Elements serialised without a closing tag
_VOID_TAGS = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "source",
        "track",
        "wbr",
    }
)


def parse_html(markup: str) -> Element:
    """Parse an HTML document or fragment and return its ``<body>`` element.

    Comments, doctypes and processing instructions are dropped.
    """
    body = Element("body")
    if not markup:
        return body

    tree = LexborHTMLParser(markup)
    source = tree.body
    if source is None:
        return body

    body.attrs.update(_attributes(source))
    _copy_children(source, body)
    return body


def _attributes(node: Any) -> dict[str, str]:
    # Valueless attributes (e.g. ``hidden``) come back as None
    return {name: value or "" for name, value in node.attributes.items()}


def _copy_children(source: Any, dest: Element) -> None:
    child = source.child
    while child is not None:
        tag = child.tag
        # selectolax reports text nodes with the pseudo-tag "-text"
        if tag == "-text":
            text = child.text_content
            if text:
                dest.append(Text(text))
        elif tag and tag[0].isalpha():
            element = Element(tag, _attributes(child))
            dest.append(element)
            _copy_children(child, element)
        child = child.next


def to_html(node: Node) -> str:
    """Serialise a node (and its subtree) back to HTML."""
    if isinstance(node, Text):
        return html.escape(node.data, quote=False)
    assert isinstance(node, Element)
    attrs = "".join(
        f' {name}="{html.escape(value, quote=True)}"'
        for name, value in node.attrs.items()
    )
    if node.tag in _VOID_TAGS:
        return f"<{node.tag}{attrs}>"
    inner = "".join(to_html(child) for child in node.children)
    return f"<{node.tag}{attrs}>{inner}</{node.tag}>"


def inner_html(element: Element) -> str:
    return "".join(to_html(child) for child in element.children)
