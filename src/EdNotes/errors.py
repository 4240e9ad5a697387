from __future__ import annotations

from typing import Sequence


def format_path(path: Sequence[int]) -> str:
    return ".".join(str(i) for i in path) if path else "<root>"


class ValidationError(ValueError):
    """Document shape does not match the block schema."""

    def __init__(self, path: Sequence[int], reason: str, field: str | None = None) -> None:
        self.path = tuple(path)
        self.reason = reason
        self.field = field
        location = format_path(self.path)
        if field:
            location = f"{location} ({field})"
        super().__init__(f"{location}: {reason}")


class ParseError(ValueError):
    """Raw text is not valid in the wire format."""

    def __init__(self, message: str, line: int | None = None, column: int | None = None) -> None:
        self.message = message
        self.line = line
        self.column = column
        if line is not None:
            message = f"line {line}, column {column}: {message}"
        super().__init__(message)


class PathError(LookupError):
    """A structural edit addressed a node that does not exist."""

    def __init__(self, path: Sequence[int], reason: str) -> None:
        self.path = tuple(path)
        self.reason = reason
        super().__init__(f"{format_path(self.path)}: {reason}")


class RenderFallback(Exception):
    """A single block could not be rendered and was replaced by a marker."""

    def __init__(self, path: Sequence[int], reason: str) -> None:
        self.path = tuple(path)
        self.reason = reason
        super().__init__(f"{format_path(self.path)}: {reason}")


class SessionError(RuntimeError):
    """An editor session action could not be carried out."""
