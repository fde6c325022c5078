"""Exceptions raised by markwell.

Most staleness conditions are reported as ``None`` rather than raised;
these exceptions cover programming errors and collaborator failures.
"""

from __future__ import annotations


class MarkwellError(Exception):
    """Base class for markwell errors."""


class AddressingError(MarkwellError, ValueError):
    """A node cannot be addressed relative to the given root."""


class RangeError(MarkwellError, ValueError):
    """A range boundary offset is outside its container."""

    def __init__(self, offset: int, length: int) -> None:
        self.offset = offset
        self.length = length
        super().__init__(f"offset {offset} out of bounds (length {length})")


class PersistenceError(MarkwellError):
    """The persistence gateway failed to read or write a value."""

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)

    def __str__(self) -> str:
        if self.key is None:
            return self.args[0]
        return f"{self.args[0]} (key: {self.key})"


class DuplicateHighlightError(MarkwellError):
    """A highlight with this id is already registered."""

    def __init__(self, highlight_id: str) -> None:
        self.highlight_id = highlight_id
        super().__init__(f"Highlight {highlight_id!r} already exists")
