from __future__ import annotations

import abc
import dataclasses
from typing import Optional, TYPE_CHECKING

from duckscript.source import Loc, NO_LOC

if TYPE_CHECKING:
    from duckscript.context import Context


def _loc():
    return dataclasses.field(default=NO_LOC, compare=False, repr=False)


### Terms


class Term(abc.ABC):
    loc: Loc


@dataclasses.dataclass(frozen=True)
class Param:
    name: str
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class Reference(Term):
    name: str
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class Function(Term):
    param: Optional[Param]
    body: Term
    annotation: Optional[Type] = None
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class Application(Term):
    func: Term
    arg: Term
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class Let(Term):
    name: str
    value: Term
    body: Term
    name_loc: Loc = _loc()
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class Conditional(Term):
    condition: Term
    consequence: Term
    alternative: Term
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class BooleanLiteral(Term):
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class NumberLiteral(Term):
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class StringLiteral(Term):
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class UnitLiteral(Term):
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class EmptyRecord(Term):
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class RecordExtend(Term):
    key: str
    value: Term
    record: Term
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class RecordRestrict(Term):
    key: str
    record: Term
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class FieldAccess(Term):
    key: str
    record: Term
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class ArrayLiteral(Term):
    elements: tuple[Term, ...]
    loc: Loc = _loc()


### Types


class Type(abc.ABC):
    pass


@dataclasses.dataclass(frozen=True)
class TypeVar(Type):
    """A named type: a declared alias, a built-in, or a bound type parameter."""

    name: str
    loc: Loc = _loc()

    def __str__(self):
        return self.name


@dataclasses.dataclass(frozen=True)
class Placeholder(Type):
    """A unification variable; never survives past the command it was made for."""

    id: int
    original_name: Optional[str] = dataclasses.field(default=None, compare=False)

    def __str__(self):
        return f"?X{self.id}"


@dataclasses.dataclass(frozen=True)
class Arrow(Type):
    arg: Type
    ret: Type


@dataclasses.dataclass(frozen=True)
class TypeAbs(Type):
    name: str
    body: Type


@dataclasses.dataclass(frozen=True)
class TypeApp(Type):
    callee: Type
    arg: Type
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class RecordType(Type):
    row: Type
    # set on global declarations so built-in records print by name
    name: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class EmptyRow(Type):
    pass


@dataclasses.dataclass(frozen=True)
class RowExtend(Type):
    key: str
    field: Type
    base: Type


UNIT = TypeVar("()")
BOOLEAN = TypeVar("Boolean")
NUMBER = TypeVar("Number")
STRING = TypeVar("String")
ARRAY = TypeVar("Array")


def array_of(element: Type) -> Type:
    return TypeApp(ARRAY, element)


### Bindings


class Binding(abc.ABC):
    is_global: bool = False


@dataclasses.dataclass(frozen=True)
class VarBinding(Binding):
    type: Type
    name_loc: Loc = _loc()
    is_global: bool = False


@dataclasses.dataclass(frozen=True)
class TermBinding(Binding):
    term: Term
    type: Optional[Type] = None
    name_loc: Loc = _loc()
    # context as seen from inside the term, kept for position queries
    nested: Optional[Context] = dataclasses.field(default=None, compare=False, repr=False)
    is_global: bool = False


@dataclasses.dataclass(frozen=True)
class TypeBinding(Binding):
    type: Type
    name_loc: Loc = _loc()
    is_global: bool = False


@dataclasses.dataclass(frozen=True)
class TypeVarMarker(Binding):
    pass


### Commands


class Command(abc.ABC):
    loc: Loc


@dataclasses.dataclass(frozen=True)
class Eval(Command):
    term: Term
    loc: Loc = _loc()


@dataclasses.dataclass(frozen=True)
class Bind(Command):
    name: str
    binding: Binding
    loc: Loc = _loc()
