"""Source positions.

Lines are 1-indexed, columns are 0-indexed and end positions are exclusive.
"""

from __future__ import annotations

import dataclasses

import pyparsing as pp


@dataclasses.dataclass(frozen=True)
class Position:
    line: int
    column: int

    def __str__(self):
        return f"{self.line}:{self.column}"


@dataclasses.dataclass(frozen=True)
class Loc:
    start: Position
    end: Position

    @staticmethod
    def from_offsets(src: str, start: int, end: int) -> Loc:
        return Loc(position_at(src, start), position_at(src, end))

    @staticmethod
    def point(line: int, column: int) -> Loc:
        return Loc(Position(line, column), Position(line, column + 1))

    def merge(self, other: Loc) -> Loc:
        return Loc(min(self.start, other.start, key=_key), max(self.end, other.end, key=_key))

    def contains(self, line: int, column: int) -> bool:
        start, end = self.start, self.end
        if start.line == end.line:
            return line == start.line and start.column <= column <= end.column
        if line == start.line:
            return column >= start.column
        if line == end.line:
            return column <= end.column
        return start.line < line < end.line

    def __str__(self):
        return f"{self.start}-{self.end}"


# synthetic nodes get this location so they never match a position query
NO_LOC = Loc(Position(-1, -1), Position(-1, -1))


def position_at(src: str, offset: int) -> Position:
    return Position(pp.lineno(offset, src), pp.col(offset, src) - 1)


def _key(p: Position):
    return p.line, p.column
