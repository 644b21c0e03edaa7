"""Find the symbol at a source position and the type it was given."""

from __future__ import annotations

import dataclasses
from typing import Mapping, Optional, Sequence

from duckscript import printer
from duckscript.abstract_syntax import (
    Application,
    ArrayLiteral,
    BooleanLiteral,
    Command,
    Conditional,
    EmptyRecord,
    EmptyRow,
    Eval,
    FieldAccess,
    Function,
    Let,
    NumberLiteral,
    RecordExtend,
    RecordRestrict,
    RecordType,
    Reference,
    StringLiteral,
    Term,
    TermBinding,
    Type,
    TypeAbs,
    TypeBinding,
    UnitLiteral,
    VarBinding,
    BOOLEAN,
    NUMBER,
    STRING,
)
from duckscript.context import Context
from duckscript.source import Loc
from duckscript.substitution import substitute_type

VARIABLE_DECLARATION = "variable-declaration"
FUNCTION_ARGUMENT = "function-argument"
VARIABLE_USAGE = "variable-usage"
BUILTIN = "builtin"
TYPE_DECLARATION = "type-declaration"


@dataclasses.dataclass(frozen=True)
class Symbol:
    kind: str
    name: str
    type: Type

    @property
    def generics(self) -> list[str]:
        return printer.print_type(self.type)[1]

    def __str__(self):
        return printer.signature(self.name, self.type)


def get_symbol(
    ctx: Context,
    commands: Sequence[Command],
    line: int,
    column: int,
    instantiations: Mapping[Loc, Mapping[str, Type]] = {},
    evaluated: Mapping[Loc, Context] = {},
) -> Optional[Symbol]:
    """Resolve the symbol at a 1-indexed line and 0-indexed column.

    Declarations bound in `ctx` are searched first, then the expression
    statements among `commands`.
    """
    finder = _Finder(line, column, instantiations)
    for name, binding in reversed(list(ctx)):
        if binding.is_global:
            continue
        match binding:
            case TermBinding(term=term, type=ty, name_loc=name_loc, nested=nested):
                if name_loc.contains(line, column):
                    return Symbol(VARIABLE_DECLARATION, name, ty)
                if term.loc.contains(line, column):
                    return finder.search(term, nested or ctx)
            case TypeBinding(type=ty, name_loc=name_loc):
                if name_loc.contains(line, column):
                    return Symbol(TYPE_DECLARATION, name, ty)
    for cmd in commands:
        if isinstance(cmd, Eval) and cmd.loc.contains(line, column):
            return finder.search(cmd.term, evaluated.get(cmd.loc, ctx))
    return None


class _Finder:
    def __init__(self, line: int, column: int, instantiations: Mapping[Loc, Mapping[str, Type]]):
        self.line = line
        self.column = column
        self.instantiations = instantiations

    def at(self, loc: Loc) -> bool:
        return loc.contains(self.line, self.column)

    def search(self, term: Term, ctx: Context) -> Optional[Symbol]:
        # a let spans only its declaration, its body follows it
        if not isinstance(term, Let) and not self.at(term.loc):
            return None
        match term:
            case Function(param=param, body=body):
                if param is not None and self.at(param.loc):
                    return self.lookup(FUNCTION_ARGUMENT, param.name, ctx)
                return self.search(body, ctx)
            case Reference(name=name):
                return self.lookup(VARIABLE_USAGE, name, ctx)
            case Application(func=func, arg=arg):
                if self.at(func.loc):
                    found = self.search(func, ctx)
                    if isinstance(func, Reference):
                        return self.instantiated(func.loc, found)
                    return found
                return self.search(arg, ctx)
            case Conditional(condition=c, consequence=a, alternative=b):
                for branch in (c, a, b):
                    if self.at(branch.loc):
                        return self.search(branch, ctx)
                return None
            case Let(name=name, value=value, body=body, name_loc=name_loc):
                if self.at(name_loc):
                    return self.lookup(VARIABLE_DECLARATION, name, ctx)
                if self.at(value.loc):
                    binding = ctx.lookup(name)
                    inner = binding.nested if isinstance(binding, TermBinding) and binding.nested else ctx
                    return self.search(value, inner)
                return self.search(body, ctx)
            case FieldAccess(record=record) | RecordRestrict(record=record):
                return self.search(record, ctx)
            case RecordExtend(value=value, record=record):
                if not isinstance(record, EmptyRecord) and self.at(record.loc):
                    return self.search(record, ctx)
                return self.search(value, ctx)
            case ArrayLiteral(elements=elements):
                for element in elements:
                    if self.at(element.loc):
                        return self.search(element, ctx)
                return None
            case EmptyRecord():
                return Symbol(BUILTIN, "", RecordType(EmptyRow()))
            case StringLiteral():
                return Symbol(BUILTIN, "", STRING)
            case NumberLiteral():
                return Symbol(BUILTIN, "", NUMBER)
            case BooleanLiteral():
                return Symbol(BUILTIN, "", BOOLEAN)
            case UnitLiteral():
                return None
        raise NotImplementedError(term)

    @staticmethod
    def lookup(kind: str, name: str, ctx: Context) -> Optional[Symbol]:
        match ctx.lookup(name):
            case VarBinding(type=ty) | TermBinding(type=ty) if ty is not None:
                return Symbol(kind, name, ty)
        return None

    def instantiated(self, callee: Loc, symbol: Optional[Symbol]) -> Optional[Symbol]:
        """Show a generic callee with the types it was called with."""
        args = self.instantiations.get(callee)
        if symbol is None or not args:
            return symbol
        ty = symbol.type
        while isinstance(ty, TypeAbs) and ty.name in args:
            ty = substitute_type(ty.name, args[ty.name], ty.body)
        return dataclasses.replace(symbol, type=ty)
