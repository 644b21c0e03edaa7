"""Constraint solving with row-polymorphic records."""

from __future__ import annotations

import dataclasses
from typing import Callable, Optional, Sequence

from duckscript import printer
from duckscript.abstract_syntax import (
    Arrow,
    EmptyRow,
    Placeholder,
    RecordType,
    RowExtend,
    Type,
    TypeAbs,
    TypeApp,
    TypeBinding,
    TypeVar,
    TypeVarMarker,
)
from duckscript.context import Context
from duckscript.errors import (
    CircularTypeError,
    MissingFieldError,
    TypeMismatchError,
    UndeclaredNameError,
)
from duckscript.simplify import expand_application
from duckscript.source import Loc
from duckscript.substitution import Constraint, generalize, occurs, substitute_type


def unify(
    constraints: Sequence[Constraint],
    ctx: Context,
    loc: Optional[Loc],
    fresh: Callable[..., Placeholder],
) -> list[Constraint]:
    """Solve `constraints` and return the placeholder assignments found,
    latest first."""
    return Unifier(ctx, loc, fresh).run(constraints)


class Unifier:
    def __init__(self, ctx: Context, loc: Optional[Loc], fresh: Callable[..., Placeholder]):
        self.ctx = ctx
        self.loc = loc
        self.fresh = fresh
        self.solved: list[Constraint] = []
        # stack of (lhs, rhs, enclosing record pair); the top is solved next
        self.pending: list[tuple[Type, Type, Optional[Constraint]]] = []

    def push(self, lhs: Type, rhs: Type, parent: Optional[Constraint] = None):
        self.pending.append((lhs, rhs, parent))

    def run(self, constraints: Sequence[Constraint]) -> list[Constraint]:
        for lhs, rhs in reversed(constraints):
            self.push(lhs, rhs)
        while self.pending:
            self.step(*self.pending.pop())
        return self.solved[::-1]

    def step(self, lhs: Type, rhs: Type, parent: Optional[Constraint]):
        if lhs == rhs:
            return
        if isinstance(rhs, TypeVar) and (declared := self.resolve_name(rhs)) is not rhs:
            return self.push(lhs, declared, parent)
        if isinstance(lhs, TypeVar) and (declared := self.resolve_name(lhs)) is not lhs:
            return self.push(declared, rhs, parent)

        match lhs, rhs:
            case _, Placeholder():
                self.assign(rhs, lhs)
            case Placeholder(), _:
                self.assign(lhs, rhs)
            case Arrow(), Arrow():
                self.push(lhs.ret, rhs.ret)
                self.push(lhs.arg, rhs.arg)
            case TypeAbs(), TypeAbs():
                shared = self.fresh(lhs.name)
                self.push(
                    substitute_type(lhs.name, shared, lhs.body),
                    substitute_type(rhs.name, shared, rhs.body),
                    parent,
                )
            case TypeAbs(), _:
                self.push(self.open(lhs), rhs, parent)
            case _, TypeAbs():
                self.push(lhs, self.open(rhs), parent)
            case TypeApp(), TypeApp():
                self.push(lhs.arg, rhs.arg)
                self.push(lhs.callee, rhs.callee)
            case TypeApp(), _:
                self.push(expand_application(lhs, self.ctx, self.loc), rhs, parent)
            case _, TypeApp():
                self.push(lhs, expand_application(rhs, self.ctx, self.loc), parent)
            case RecordType(), RecordType() if _compatible_names(lhs, rhs):
                self.push(lhs.row, rhs.row, (lhs, rhs))
            case RowExtend(), RowExtend():
                self.unify_rows(lhs, rhs, parent)
            case RowExtend(), EmptyRow():
                field = printer.print_type(self.resolve(lhs.field))[0]
                raise MissingFieldError(
                    f"Type {self.display(parent[1] if parent else rhs)} is missing field {lhs.key}: {field}",
                    self.loc,
                )
            case EmptyRow(), RowExtend():
                raise MissingFieldError(
                    f"Type {self.display(parent[0] if parent else lhs)} has unexpected fields "
                    f"{printer.print_row(self.resolve(RecordType(rhs)).row, hide_type_var=True)}",
                    self.loc,
                )
            case _:
                raise TypeMismatchError(
                    f"Type {self.display(lhs)} is not compatible with type {self.display(rhs)}",
                    self.loc,
                )

    def resolve_name(self, tv: TypeVar) -> Type:
        """The declared type behind a name; bound type parameters stay rigid."""
        match self.ctx.lookup(tv.name):
            case TypeBinding(type=declared):
                return declared
            case TypeVarMarker():
                return tv
        raise UndeclaredNameError(tv.name, self.loc, is_type=True)

    def assign(self, placeholder: Placeholder, ty: Type):
        if occurs(placeholder.id, ty):
            raise CircularTypeError(f"Circular constraints for {placeholder}", self.loc)

        def sub(t):
            return substitute_type(placeholder.id, ty, t)

        self.pending = [
            (sub(lhs), sub(rhs), parent and (sub(parent[0]), sub(parent[1])))
            for lhs, rhs, parent in self.pending
        ]
        self.solved.append((placeholder, ty))

    def open(self, abstraction: TypeAbs) -> Type:
        return substitute_type(abstraction.name, self.fresh(abstraction.name), abstraction.body)

    def unify_rows(self, lhs: RowExtend, rhs: RowExtend, parent: Optional[Constraint]):
        found: list[Constraint] = []
        rest = self.rewrite_row(rhs, lhs, _row_tail(lhs), found, parent)
        self.push(lhs.base, rest, parent)
        for pair in reversed(found):
            self.push(*pair, parent)

    def rewrite_row(
        self,
        row: Type,
        wanted: RowExtend,
        tail: Type,
        found: list[Constraint],
        parent: Optional[Constraint],
    ) -> Type:
        """Pull the field `wanted.key` to the front of `row` and return the
        remaining row."""
        match row:
            case RowExtend(key=key, field=field, base=base) if key == wanted.key:
                found.append((wanted.field, field))
                return base
            case RowExtend(base=base):
                return dataclasses.replace(row, base=self.rewrite_row(base, wanted, tail, found, parent))
            case Placeholder():
                if isinstance(tail, Placeholder) and tail.id == row.id:
                    raise CircularTypeError(f"Circular constraints for {row}", self.loc)
                rest = self.fresh()
                found.append((row, RowExtend(wanted.key, wanted.field, rest)))
                return rest
            case TypeVar():
                declared = self.resolve_name(row)
                if isinstance(declared, RecordType):
                    return self.rewrite_row(declared.row, wanted, tail, found, parent)
                raise MissingFieldError(
                    f"Type {self.display(parent[1] if parent else row)} does not contain field {wanted.key}",
                    self.loc,
                )
            case EmptyRow():
                raise MissingFieldError(
                    f"Type {self.display(parent[1] if parent else row)} does not contain field {wanted.key}",
                    self.loc,
                )
        raise TypeMismatchError(f"Expected a row type, got {self.display(row)}", self.loc)

    def resolve(self, ty: Type) -> Type:
        """`ty` under the solutions found so far, leftover placeholders named."""
        ty = generalize(self.solved, ty, Context.empty()).type
        while isinstance(ty, TypeAbs):
            ty = ty.body
        return ty

    def display(self, ty: Type) -> str:
        if isinstance(ty, (RowExtend, EmptyRow)):
            ty = RecordType(ty)
        return printer.show(generalize(self.solved, ty, Context.empty()).type)


def _compatible_names(lhs: RecordType, rhs: RecordType) -> bool:
    return lhs.name is None or rhs.name is None or lhs.name == rhs.name


def _row_tail(row: Type) -> Type:
    while isinstance(row, RowExtend):
        row = row.base
    return row
