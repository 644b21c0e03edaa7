"""Failures raised while parsing and checking, and their single-line text form.

Every error renders as ``Line <l1>..<l2> col <c1>..<c2>: <message>`` when it
has a location, or just as its message otherwise.
"""

from __future__ import annotations

import re
from typing import Optional

from duckscript.source import Loc, Position

_ERROR_LINE = re.compile(r"^Line (-?\d+)\.\.(-?\d+) col (-?\d+)\.\.(-?\d+): (.+)$", re.DOTALL)


def format_error(loc: Optional[Loc], message: str) -> str:
    if loc is None:
        return message
    return (
        f"Line {loc.start.line}..{loc.end.line} "
        f"col {loc.start.column}..{loc.end.column}: {message}"
    )


def parse_error(text: str) -> tuple[Optional[Loc], str]:
    match = _ERROR_LINE.match(text)
    if match is None:
        return None, text
    start_line, end_line, start_col, end_col = map(int, match.groups()[:4])
    loc = Loc(Position(start_line, start_col), Position(end_line, end_col))
    return loc, match.group(5)


class DuckscriptError(Exception):
    def __init__(self, message: str, loc: Optional[Loc] = None):
        super().__init__(message, loc)
        self.message = message
        self.loc = loc

    def __str__(self):
        return format_error(self.loc, self.message)

    @classmethod
    def from_text(cls, text: str) -> DuckscriptError:
        # subclasses build their message from other arguments; keep the text as is
        loc, message = parse_error(text)
        error = cls.__new__(cls)
        DuckscriptError.__init__(error, message, loc)
        return error


class GrammarError(DuckscriptError):
    """The annotation mini-language in a comment is malformed."""

    def __init__(self, expected: list[str], loc: Optional[Loc] = None):
        super().__init__(f"Expected {' or '.join(expected)}", loc)
        self.expected = expected


class StructuralError(DuckscriptError):
    """Source syntax outside the supported subset."""


class UndeclaredNameError(DuckscriptError):
    def __init__(self, name: str, loc: Optional[Loc] = None, is_type: bool = False):
        kind = "type variable" if is_type else "variable"
        super().__init__(f"Undeclared {kind} {name}", loc)
        self.name = name


class RedefinitionError(DuckscriptError):
    def __init__(self, name: str, loc: Optional[Loc] = None):
        super().__init__(f"{name} is already defined", loc)
        self.name = name


class ReservedWordError(DuckscriptError):
    def __init__(self, name: str, loc: Optional[Loc] = None):
        super().__init__(f"{name} is a reserved word", loc)
        self.name = name


class TypeMismatchError(DuckscriptError):
    pass


class MissingFieldError(TypeMismatchError):
    pass


class CircularTypeError(DuckscriptError):
    pass


class OutOfTypeVariablesError(DuckscriptError):
    def __init__(self, loc: Optional[Loc] = None):
        super().__init__("Ran out of lowercase type variables", loc)
