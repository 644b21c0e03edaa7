from __future__ import annotations

import dataclasses
from typing import Callable, Iterator, Mapping, Optional, Sequence, Union

from duckscript.abstract_syntax import (
    Application,
    ArrayLiteral,
    Arrow,
    Binding,
    BooleanLiteral,
    Conditional,
    EmptyRecord,
    EmptyRow,
    FieldAccess,
    Function,
    Let,
    NumberLiteral,
    Placeholder,
    RecordExtend,
    RecordRestrict,
    RecordType,
    Reference,
    RowExtend,
    StringLiteral,
    Term,
    TermBinding,
    Type,
    TypeAbs,
    TypeApp,
    TypeBinding,
    TypeVar,
    TypeVarMarker,
    UnitLiteral,
    VarBinding,
)
from duckscript.context import Context
from duckscript.source import Loc

Constraint = tuple[Type, Type]


class PlaceholderGen:
    """Hands out placeholders with increasing ids, one counter per checker run."""

    def __init__(self, start: int = 0):
        self.counter = start

    def __call__(self, original_name: Optional[str] = None) -> Placeholder:
        self.counter += 1
        return Placeholder(self.counter, original_name)


def map_children(ty: Type, fn: Callable[[Type], Type]) -> Type:
    """Apply `fn` to the direct children of `ty`; unchanged nodes are reused."""
    match ty:
        case TypeVar() | Placeholder() | EmptyRow():
            return ty
        case Arrow(arg=arg, ret=ret):
            new_arg, new_ret = fn(arg), fn(ret)
            if new_arg is arg and new_ret is ret:
                return ty
            return Arrow(new_arg, new_ret)
        case TypeAbs(body=body):
            new_body = fn(body)
            return ty if new_body is body else dataclasses.replace(ty, body=new_body)
        case TypeApp(callee=callee, arg=arg):
            new_callee, new_arg = fn(callee), fn(arg)
            if new_callee is callee and new_arg is arg:
                return ty
            return dataclasses.replace(ty, callee=new_callee, arg=new_arg)
        case RecordType(row=row):
            new_row = fn(row)
            return ty if new_row is row else dataclasses.replace(ty, row=new_row)
        case RowExtend(field=field, base=base):
            new_field, new_base = fn(field), fn(base)
            if new_field is field and new_base is base:
                return ty
            return dataclasses.replace(ty, field=new_field, base=new_base)
    raise NotImplementedError(ty)


def substitute_type(target: Union[str, int], replacement: Type, ty: Type) -> Type:
    """Replace the type variable named `target`, or the placeholder with id
    `target`, everywhere it occurs free in `ty`."""

    def visit(t):
        match t:
            case TypeVar(name=name) if name == target:
                return replacement
            case Placeholder(id=i) if i == target:
                return replacement
            case TypeAbs(name=name) if name == target:
                return t
        return map_children(t, visit)

    return visit(ty)


def placeholders(ty: Type) -> Iterator[Placeholder]:
    match ty:
        case Placeholder():
            yield ty
        case TypeVar() | EmptyRow():
            pass
        case Arrow(arg=a, ret=b) | TypeApp(callee=a, arg=b) | RowExtend(field=a, base=b):
            yield from placeholders(a)
            yield from placeholders(b)
        case TypeAbs(body=inner) | RecordType(row=inner):
            yield from placeholders(inner)
        case _:
            raise NotImplementedError(ty)


def type_names(ty: Type) -> set[str]:
    """Names of the type variables and parameters mentioned in `ty`."""
    match ty:
        case TypeVar(name=name):
            return {name}
        case TypeAbs(name=name, body=body):
            return {name} | type_names(body)
        case Placeholder() | EmptyRow():
            return set()
        case Arrow(arg=a, ret=b) | TypeApp(callee=a, arg=b) | RowExtend(field=a, base=b):
            return type_names(a) | type_names(b)
        case RecordType(row=row):
            return type_names(row)
    raise NotImplementedError(ty)


def occurs(placeholder_id: int, ty: Type) -> bool:
    return any(p.id == placeholder_id for p in placeholders(ty))


def principal_mapping(principal: Sequence[Constraint]) -> dict[int, Type]:
    """Read solved constraints as placeholder assignments.

    Stops at the first pair with no placeholder side.
    """
    mapping = {}
    for lhs, rhs in principal:
        if isinstance(lhs, Placeholder):
            mapping.setdefault(lhs.id, rhs)
        elif isinstance(rhs, Placeholder):
            mapping.setdefault(rhs.id, lhs)
        else:
            break
    return mapping


def resolve(ty: Type, mapping: Mapping[int, Type]) -> Type:
    """Replace assigned placeholders until only unassigned ones remain."""
    if not mapping:
        return ty
    active = set()

    def visit(t):
        if isinstance(t, Placeholder) and t.id in mapping and t.id not in active:
            active.add(t.id)
            try:
                return visit(mapping[t.id])
            finally:
                active.discard(t.id)
        return map_children(t, visit)

    return visit(ty)


def apply_principal_types(principal: Sequence[Constraint], ty: Type) -> Type:
    return resolve(ty, principal_mapping(principal))


def map_context_types(ctx: Context, fn: Callable[[Type], Type], memo=None) -> Context:
    memo = {} if memo is None else memo

    def on_binding(binding: Binding) -> Binding:
        if binding.is_global:
            return binding
        match binding:
            case VarBinding(type=ty) | TypeBinding(type=ty):
                new_ty = fn(ty)
                return binding if new_ty is ty else dataclasses.replace(binding, type=new_ty)
            case TermBinding(type=ty, nested=nested):
                new_ty = None if ty is None else fn(ty)
                new_nested = None if nested is None else map_context_types(nested, fn, memo)
                if new_ty is ty and new_nested is nested:
                    return binding
                return dataclasses.replace(binding, type=new_ty, nested=new_nested)
            case TypeVarMarker():
                return binding
        raise NotImplementedError(binding)

    return ctx.map_bindings(on_binding, memo)


def substitute_context(target: Union[str, int], replacement: Type, ctx: Context) -> Context:
    return map_context_types(ctx, lambda ty: substitute_type(target, replacement, ty))


def substitute_term(name: str, replacement: Term, term: Term) -> Term:
    """Replace free references to `name` in `term`."""

    def visit(t):
        match t:
            case Reference(name=n) if n == name:
                return replacement
            case (
                Reference()
                | BooleanLiteral()
                | NumberLiteral()
                | StringLiteral()
                | UnitLiteral()
                | EmptyRecord()
            ):
                return t
            case Function(param=param) if param is not None and param.name == name:
                return t
            case Function(body=body):
                return dataclasses.replace(t, body=visit(body))
            case Application(func=func, arg=arg):
                return dataclasses.replace(t, func=visit(func), arg=visit(arg))
            case Let(name=n, value=value, body=body):
                return dataclasses.replace(
                    t, value=visit(value), body=body if n == name else visit(body)
                )
            case Conditional(condition=c, consequence=a, alternative=b):
                return dataclasses.replace(t, condition=visit(c), consequence=visit(a), alternative=visit(b))
            case RecordExtend(value=value, record=record):
                return dataclasses.replace(t, value=visit(value), record=visit(record))
            case RecordRestrict(record=record) | FieldAccess(record=record):
                return dataclasses.replace(t, record=visit(record))
            case ArrayLiteral(elements=elements):
                return dataclasses.replace(t, elements=tuple(map(visit, elements)))
        raise NotImplementedError(t)

    return visit(term)


### Generalization


@dataclasses.dataclass
class Generalized:
    type: Type
    ctx: Context
    # placeholder id -> the type variable that replaced it
    names: dict[int, TypeVar]


class _Minter:
    """Replaces placeholders by fresh lowercase type variables."""

    def __init__(self, ctx: Context, loc: Optional[Loc], taken=()):
        self.ctx = ctx
        self.loc = loc
        self.taken = taken
        self.names: dict[int, TypeVar] = {}

    def __call__(self, ty: Type) -> Type:
        if isinstance(ty, Placeholder):
            if ty.id not in self.names:
                name = self.ctx.next_type_var(self.loc, self.taken)
                self.names[ty.id] = TypeVar(name)
                self.ctx = self.ctx.extend(name, TypeVarMarker())
            return self.names[ty.id]
        return map_children(ty, self)


def generalize(
    principal: Sequence[Constraint], ty: Type, ctx: Context, loc: Optional[Loc] = None
) -> Generalized:
    """Apply the solved constraints, then quantify over what is left unsolved.

    The first variable introduced ends up innermost. Placeholders left in the
    context share the same names but do not quantify the type.
    """
    mapping = principal_mapping(principal)
    ty = resolve(ty, mapping)
    minter = _Minter(ctx, loc, type_names(ty))
    ty = minter(ty)
    generics = list(minter.names.values())

    nested = map_context_types(minter.ctx, lambda t: minter(resolve(t, mapping)))
    for tv in list(minter.names.values())[len(generics):]:
        nested = nested.extend(tv.name, TypeVarMarker())

    for tv in generics:
        ty = TypeAbs(tv.name, ty)
    return Generalized(ty, nested, minter.names)
