from __future__ import annotations

import dataclasses
import logging
from typing import Iterable, Optional

from duckscript.abstract_syntax import (
    BOOLEAN,
    NUMBER,
    STRING,
    UNIT,
    Application,
    ArrayLiteral,
    Arrow,
    Bind,
    Binding,
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
    TypeBinding,
    TypeVar,
    TypeVarMarker,
    UnitLiteral,
    VarBinding,
    array_of,
)
from duckscript.context import Context
from duckscript.errors import TypeMismatchError
from duckscript.printer import show
from duckscript.simplify import simplify_type, validate_type
from duckscript.source import Loc
from duckscript.substitution import (
    Constraint,
    Generalized,
    PlaceholderGen,
    apply_principal_types,
    generalize,
    occurs,
    placeholders,
    principal_mapping,
    resolve,
    substitute_context,
    substitute_term,
    substitute_type,
    type_names,
)
from duckscript.unify import unify

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Inferred:
    """A type together with the constraints it is subject to."""

    type: Type
    constraints: list[Constraint]
    nested: Optional[Context] = None


@dataclasses.dataclass
class Solved:
    type: Type
    principal: list[Constraint]
    nested: Context


class TypeChecker:
    """Checks commands one after the other.

    A checker instance owns the placeholder counter, so independent runs never
    share state. It also remembers, per callee location, what the generic
    parameters of a called function were instantiated with, and the nested
    context of every checked expression statement.
    """

    def __init__(self):
        self.fresh = PlaceholderGen()
        self.instantiations: dict[Loc, dict[str, Type]] = {}
        self.evaluated: dict[Loc, Context] = {}
        self._instantiated: list[tuple[Loc, list[tuple[str, Placeholder]]]] = []

    def check_commands(self, ctx: Context, commands: Iterable[Command]) -> Context:
        for cmd in commands:
            ctx = self.process_command(ctx, cmd)
        return ctx

    def process_command(self, ctx: Context, cmd: Command) -> Context:
        self._instantiated = []
        match cmd:
            case Eval(term=term):
                logger.debug("checking expression at %s", cmd.loc)
                solved = self.solve(ctx, term)
                result = generalize(solved.principal, solved.type, solved.nested, term.loc)
                self._record_instantiations(solved.principal, result)
                self.evaluated[cmd.loc] = result.ctx
                return ctx
            case Bind(name=name, binding=binding):
                logger.debug("checking %s binding %s", type(binding).__name__, name)
                return ctx.bind(name, self.check_binding(ctx, binding, cmd.loc), cmd.loc)
        raise NotImplementedError(cmd)

    def check_binding(self, ctx: Context, binding: Binding, loc: Optional[Loc] = None) -> Binding:
        match binding:
            case TermBinding(term=term):
                solved = self.solve(ctx, term)
                result = generalize(solved.principal, solved.type, solved.nested, term.loc)
                self._record_instantiations(solved.principal, result)
                return dataclasses.replace(binding, type=result.type, nested=result.ctx)
            case VarBinding(type=ty) | TypeBinding(type=ty):
                return dataclasses.replace(binding, type=simplify_type(ty, ctx, loc))
            case TypeVarMarker():
                return binding
        raise NotImplementedError(binding)

    def solve(self, ctx: Context, term: Term) -> Solved:
        inferred = self.infer(ctx, term)
        principal = unify(inferred.constraints, ctx, term.loc, self.fresh)
        nested = ctx if inferred.nested is None else inferred.nested
        return Solved(inferred.type, principal, nested)

    def infer(self, ctx: Context, term: Term) -> Inferred:
        match term:
            case Reference(name=name):
                return Inferred(ctx.value_type(name, term.loc), [])
            case BooleanLiteral():
                return Inferred(BOOLEAN, [])
            case NumberLiteral():
                return Inferred(NUMBER, [])
            case StringLiteral():
                return Inferred(STRING, [])
            case UnitLiteral():
                return Inferred(UNIT, [])

            case Function(annotation=None):
                return self.infer_function(ctx, term)
            case Function():
                return self.infer_annotated_function(ctx, term)

            case Application(func=func, arg=arg):
                fn = self.solve(ctx, func)
                a = self.solve(ctx, arg)
                ret = self.fresh()
                fn_type = self.instantiate(fn.type, func.loc)
                return Inferred(
                    ret,
                    [(fn_type, Arrow(a.type, ret)), *fn.principal, *a.principal],
                    _merged(ctx, fn, a),
                )

            case Conditional(condition=c, consequence=then, alternative=otherwise):
                cond = self.solve(ctx, c)
                a = self.solve(ctx, then)
                b = self.solve(ctx, otherwise)
                return Inferred(
                    b.type,
                    [(cond.type, BOOLEAN), (a.type, b.type), *cond.principal, *a.principal, *b.principal],
                    _merged(ctx, cond, a, b),
                )

            case Let(name=name, value=value, body=body) if is_value(value):
                # let-polymorphism: every use of the name checks its own copy
                ctx.check_bindable(name, term.name_loc)
                inner = self.solve(ctx, substitute_term(name, value, body))
                bound = self.solve(ctx, value)
                binding = TermBinding(value, bound.type, term.name_loc, nested=bound.nested)
                return Inferred(
                    inner.type,
                    [*inner.principal, *bound.principal],
                    inner.nested.extend(name, binding),
                )
            case Let(name=name, value=value, body=body):
                bound = self.solve(ctx, value)
                mono = self.instantiate(apply_principal_types(bound.principal, bound.type))
                inner_ctx = ctx.bind(name, VarBinding(mono, term.name_loc), term.name_loc)
                inner = self.solve(inner_ctx, body)
                return Inferred(
                    inner.type,
                    [*bound.principal, *inner.principal],
                    inner.nested.merge(bound.nested),
                )

            case EmptyRecord():
                return Inferred(RecordType(EmptyRow()), [])
            case RecordExtend(key=key, value=value, record=record):
                rec = self.solve(ctx, record)
                if has_field(apply_principal_types(rec.principal, rec.type), key):
                    rec = self.solve(ctx, RecordRestrict(key, record, loc=term.loc))
                val = self.solve(ctx, value)
                a, r = self.fresh(), self.fresh()
                return Inferred(
                    RecordType(RowExtend(key, a, r)),
                    [(a, val.type), (RecordType(r), rec.type), *val.principal, *rec.principal],
                    _merged(ctx, rec, val),
                )
            case RecordRestrict(key=key, record=record):
                rec = self.solve(ctx, record)
                a, r = self.fresh(), self.fresh()
                return Inferred(
                    RecordType(r),
                    [(RecordType(RowExtend(key, a, r)), rec.type), *rec.principal],
                    rec.nested,
                )
            case FieldAccess(key=key, record=record):
                rec = self.solve(ctx, record)
                a, r = self.fresh(), self.fresh()
                return Inferred(
                    a,
                    [(RecordType(RowExtend(key, a, r)), rec.type), *rec.principal],
                    rec.nested,
                )

            case ArrayLiteral(elements=elements):
                element = self.fresh()
                solved = [self.solve(ctx, e) for e in elements]
                constraints = [(element, s.type) for s in solved]
                for s in solved:
                    constraints.extend(s.principal)
                return Inferred(array_of(element), constraints, _merged(ctx, *solved))

        raise NotImplementedError(term)

    def infer_function(self, ctx: Context, term: Function) -> Inferred:
        if term.param is None:
            body = self.solve(ctx, term.body)
            return Inferred(Arrow(UNIT, body.type), body.principal, body.nested)

        param = self.fresh()
        inner_ctx = ctx.bind(term.param.name, VarBinding(param, term.param.loc), term.param.loc)
        body = self.solve(inner_ctx, term.body)

        arg = solution_for(param, body.principal)
        if arg is not None:
            return Inferred(
                Arrow(arg, substitute_type(param.id, arg, body.type)),
                body.principal,
                substitute_context(param.id, arg, body.nested),
            )

        # nothing constrains the parameter: the function is generic in it
        name = body.nested.next_type_var(term.loc, type_names(body.type))
        var = TypeVar(name)
        ret = substitute_type(param.id, var, body.type)
        nested = substitute_context(param.id, var, body.nested).extend(name, TypeVarMarker())
        return Inferred(TypeAbs(name, bubble_up(ret, var)), body.principal, nested)

    def infer_annotated_function(self, ctx: Context, term: Function) -> Inferred:
        annotation = simplify_type(term.annotation, ctx, term.loc)
        match annotation:
            case Arrow(arg=arg, ret=ret):
                validate_type(arg, ctx, term.loc)
                validate_type(ret, ctx, term.loc)
                if term.param is None:
                    body = self.solve(ctx, term.body)
                    return Inferred(
                        annotation, [(body.type, ret), (arg, UNIT), *body.principal], body.nested
                    )
                if arg == UNIT:
                    raise TypeMismatchError("Function type has no parameters", term.param.loc)
                inner_ctx = ctx.bind(term.param.name, VarBinding(arg, term.param.loc), term.param.loc)
                body = self.solve(inner_ctx, term.body)
                return Inferred(annotation, [(body.type, ret), *body.principal], body.nested)
            case TypeAbs():
                inferred = self.solve(ctx, dataclasses.replace(term, annotation=None))
                return Inferred(
                    annotation, [(inferred.type, annotation), *inferred.principal], inferred.nested
                )
        raise TypeMismatchError(f"Expected a function type, got {show(annotation)}", term.loc)

    def instantiate(self, ty: Type, loc: Optional[Loc] = None) -> Type:
        """Strip the outer type abstractions, putting fresh placeholders in
        place of their parameters."""
        bound = []
        while isinstance(ty, TypeAbs):
            p = self.fresh(ty.name)
            bound.append((ty.name, p))
            ty = substitute_type(ty.name, p, ty.body)
        if bound and loc is not None:
            self._instantiated.append((loc, bound))
        return ty

    def _record_instantiations(self, principal: list[Constraint], result: Generalized):
        mapping = principal_mapping(principal)
        for loc, bound in self._instantiated:
            resolved = {}
            for name, p in bound:
                ty = resolve(resolve(p, mapping), result.names)
                if any(placeholders(ty)):
                    break
                resolved[name] = ty
            else:
                self.instantiations[loc] = resolved


def is_value(term: Term) -> bool:
    match term:
        case (
            BooleanLiteral()
            | NumberLiteral()
            | StringLiteral()
            | UnitLiteral()
            | Function()
            | EmptyRecord()
        ):
            return True
        case RecordExtend(value=value, record=record):
            return is_value(value) and is_value(record)
        case RecordRestrict(record=record) | FieldAccess(record=record):
            return is_value(record)
        case ArrayLiteral(elements=elements):
            return all(map(is_value, elements))
        case Reference() | Application() | Let() | Conditional():
            return False
    raise NotImplementedError(term)


def has_field(ty: Type, key: str) -> bool:
    if not isinstance(ty, RecordType):
        return False
    row = ty.row
    while isinstance(row, RowExtend):
        if row.key == key:
            return True
        row = row.base
    return False


def solution_for(param: Placeholder, principal: list[Constraint]) -> Optional[Type]:
    """What the solved constraints say about a parameter's placeholder.

    A placeholder that is only mentioned inside other solutions is returned
    as is: the parameter is not generic.
    """
    for lhs, rhs in principal:
        if lhs == param:
            return rhs
        if rhs == param:
            return lhs
    if any(occurs(param.id, lhs) or occurs(param.id, rhs) for lhs, rhs in principal):
        return param
    return None


def bubble_up(ret: Type, arg: Type) -> Type:
    """``arg -> <a> T`` becomes ``<a> arg -> T``."""
    if isinstance(ret, TypeAbs):
        return TypeAbs(ret.name, bubble_up(ret.body, arg))
    return Arrow(arg, ret)


def _merged(ctx: Context, *solved: Solved) -> Context:
    nested = ctx
    for s in solved:
        if s.nested is not ctx:
            nested = s.nested if nested is ctx else nested.merge(s.nested)
    return nested
