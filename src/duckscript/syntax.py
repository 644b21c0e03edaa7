"""Generic syntax tree produced by the parsers.

The script nodes follow the shape of the usual JavaScript ASTs; the ``Type*``
nodes come from annotations written in comments. Nothing here is checked yet,
that happens when the tree is translated into terms and types.
"""

from __future__ import annotations

import abc
import dataclasses
from typing import Any, Optional

from duckscript.source import Loc


class Node(abc.ABC):
    loc: Loc

    @property
    def kind(self) -> str:
        return type(self).__name__


@dataclasses.dataclass(frozen=True)
class Comment(Node):
    loc: Loc
    is_block: bool
    value: str
    # offset of ``value`` within the source text
    offset: int


@dataclasses.dataclass(frozen=True)
class Program(Node):
    loc: Loc
    body: list[Node]
    comments: list[Comment]


# Statements


@dataclasses.dataclass(frozen=True)
class VariableDeclaration(Node):
    loc: Loc
    declaration_kind: str
    declarations: list[VariableDeclarator]


@dataclasses.dataclass(frozen=True)
class VariableDeclarator(Node):
    loc: Loc
    id: Node
    init: Optional[Node]


@dataclasses.dataclass(frozen=True)
class ExpressionStatement(Node):
    loc: Loc
    expression: Node


@dataclasses.dataclass(frozen=True)
class ReturnStatement(Node):
    loc: Loc
    argument: Optional[Node]


@dataclasses.dataclass(frozen=True)
class BlockStatement(Node):
    loc: Loc
    body: list[Node]


# Expressions


@dataclasses.dataclass(frozen=True)
class Identifier(Node):
    loc: Loc
    name: str


@dataclasses.dataclass(frozen=True)
class Literal(Node):
    loc: Loc
    value: Any
    raw: str


@dataclasses.dataclass(frozen=True)
class ArrowFunctionExpression(Node):
    loc: Loc
    params: list[Identifier]
    body: Node


@dataclasses.dataclass(frozen=True)
class ConditionalExpression(Node):
    loc: Loc
    test: Node
    consequent: Node
    alternate: Node


@dataclasses.dataclass(frozen=True)
class BinaryExpression(Node):
    loc: Loc
    operator: str
    left: Node
    right: Node


@dataclasses.dataclass(frozen=True)
class UnaryExpression(Node):
    loc: Loc
    operator: str
    argument: Node


@dataclasses.dataclass(frozen=True)
class CallExpression(Node):
    loc: Loc
    callee: Node
    arguments: list[Node]


@dataclasses.dataclass(frozen=True)
class MemberExpression(Node):
    loc: Loc
    object: Node
    property: Node
    computed: bool


@dataclasses.dataclass(frozen=True)
class ObjectExpression(Node):
    loc: Loc
    properties: list[Node]


@dataclasses.dataclass(frozen=True)
class Property(Node):
    loc: Loc
    key: Node
    value: Node
    computed: bool


@dataclasses.dataclass(frozen=True)
class SpreadElement(Node):
    loc: Loc
    argument: Node


@dataclasses.dataclass(frozen=True)
class ArrayExpression(Node):
    loc: Loc
    elements: list[Node]


@dataclasses.dataclass(frozen=True)
class ObjectPattern(Node):
    loc: Loc


@dataclasses.dataclass(frozen=True)
class ArrayPattern(Node):
    loc: Loc


# Annotations


@dataclasses.dataclass(frozen=True)
class TypeIdentifier(Node):
    loc: Loc
    name: str


@dataclasses.dataclass(frozen=True)
class TypeParameter(Node):
    loc: Loc
    name: str


@dataclasses.dataclass(frozen=True)
class TypeArrow(Node):
    loc: Loc
    argument: Node
    body: Node


@dataclasses.dataclass(frozen=True)
class TypeApplication(Node):
    loc: Loc
    callee: TypeIdentifier
    arguments: list[Node]


@dataclasses.dataclass(frozen=True)
class TypeArray(Node):
    loc: Loc
    element: Node


@dataclasses.dataclass(frozen=True)
class TypeRecord(Node):
    loc: Loc
    properties: list[Node]


@dataclasses.dataclass(frozen=True)
class TypeProperty(Node):
    loc: Loc
    key: TypeIdentifier
    value: Node


@dataclasses.dataclass(frozen=True)
class TypeSpread(Node):
    loc: Loc
    argument: TypeIdentifier


@dataclasses.dataclass(frozen=True)
class TypeAbstraction(Node):
    loc: Loc
    params: list[TypeParameter]
    body: Node


@dataclasses.dataclass(frozen=True)
class TypeDeclaration(Node):
    loc: Loc
    id: TypeIdentifier
    init: Node


@dataclasses.dataclass(frozen=True)
class TypeGlobal(Node):
    loc: Loc
    name: str
    value: Node
