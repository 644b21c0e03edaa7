"""Checking and normalizing types written in annotations and declarations."""

from __future__ import annotations

from typing import Optional

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
from duckscript.errors import StructuralError, TypeMismatchError, UndeclaredNameError
from duckscript.source import Loc
from duckscript.substitution import substitute_type

# may be referenced before their declaration has been processed
PREDEFINED = ("String", "Number", "Boolean", "Array")


def validate_type(ty: Type, ctx: Context, loc: Optional[Loc] = None):
    if isinstance(ty, TypeVar) and ty.name not in PREDEFINED and ctx.lookup(ty.name) is None:
        raise UndeclaredNameError(ty.name, _at(ty, loc), is_type=True)


def simplify_type(ty: Type, ctx: Context, loc: Optional[Loc] = None) -> Type:
    """Validate the names used in `ty`, inline spread records and reduce
    applications of generic aliases."""
    match ty:
        case TypeVar():
            validate_type(ty, ctx, loc)
            return ty
        case Placeholder() | EmptyRow():
            return ty
        case Arrow(arg=arg, ret=ret):
            return Arrow(simplify_type(arg, ctx, loc), simplify_type(ret, ctx, loc))
        case RecordType(row=row):
            return RecordType(simplify_type(row, ctx, loc), ty.name)
        case RowExtend(key=key, field=field, base=TypeVar() as spread):
            return RowExtend(key, simplify_type(field, ctx, loc), spread_row(spread, ctx, loc))
        case RowExtend(key=key, field=field, base=base):
            return RowExtend(key, simplify_type(field, ctx, loc), simplify_type(base, ctx, loc))
        case TypeAbs(name=name, body=body):
            inner = ctx.bind(name, TypeVarMarker(), loc)
            return TypeAbs(name, simplify_type(body, inner, loc))
        case TypeApp(callee=callee, arg=arg):
            return apply_type(ty, simplify_type(callee, ctx, loc), simplify_type(arg, ctx, loc), ctx, loc)
    raise NotImplementedError(ty)


def spread_row(spread: TypeVar, ctx: Context, loc: Optional[Loc] = None) -> Type:
    """The row a ``...Name`` spread stands for."""
    match ctx.lookup(spread.name):
        case None:
            raise UndeclaredNameError(spread.name, _at(spread, loc), is_type=True)
        case TypeVarMarker():
            return spread
        case TypeBinding(type=RecordType(name=None, row=row)):
            return row
        case TypeBinding(type=RecordType()):
            raise TypeMismatchError("Can't spread built-in type", _at(spread, loc))
    raise StructuralError(f"Only record types can be spread, not {spread.name}", _at(spread, loc))


def apply_type(app: TypeApp, callee: Type, arg: Type, ctx: Context, loc: Optional[Loc] = None) -> Type:
    at = _at(app, loc)
    match callee:
        case TypeAbs(name=name, body=body):
            return substitute_type(name, arg, body)
        case TypeApp():
            return TypeApp(callee, arg, app.loc)
        case TypeVar(name=name):
            binding = ctx.lookup(name)
            if binding is None and name == "Array":
                return TypeApp(callee, arg, app.loc)
            match binding:
                case TypeBinding(type=TypeAbs() as generic) if is_nominal(generic):
                    return TypeApp(callee, arg, app.loc)
                case TypeBinding(type=TypeAbs(name=param, body=body)):
                    return substitute_type(param, arg, body)
            raise TypeMismatchError("Can't pass type parameter into non-generic type", at)
    raise TypeMismatchError(
        f"Can only pass type parameters into a type variable, not {type(callee).__name__}", at
    )


def is_nominal(ty: Type) -> bool:
    """Generic declarations of named (built-in) records stay unreduced."""
    while isinstance(ty, TypeAbs):
        ty = ty.body
    return isinstance(ty, RecordType) and ty.name is not None


def expand_application(app: TypeApp, ctx: Context, loc: Optional[Loc] = None) -> Type:
    """Unfold an application into the type it stands for."""
    callee = app.callee
    if isinstance(callee, TypeApp):
        callee = expand_application(callee, ctx, loc)
    if isinstance(callee, TypeVar):
        match ctx.lookup(callee.name):
            case TypeBinding(type=declared):
                callee = declared
            case None:
                raise UndeclaredNameError(callee.name, _at(callee, loc), is_type=True)
    if isinstance(callee, TypeAbs):
        return substitute_type(callee.name, app.arg, callee.body)
    raise TypeMismatchError("Can't pass type parameter into non-generic type", _at(app, loc))


def _at(node, loc: Optional[Loc]) -> Optional[Loc]:
    own = getattr(node, "loc", None)
    if own is not None and own.start.line >= 0:
        return own
    return loc
