"""Build checker terms, types and commands out of the syntax tree.

Everything outside the supported subset is rejected here with a located
StructuralError.
"""

from __future__ import annotations

import functools
import math
from typing import Optional, Sequence

from duckscript import annotations, syntax
from duckscript import abstract_syntax as ast
from duckscript.errors import StructuralError
from duckscript.source import Loc, NO_LOC

BINARY_OPERATOR = "Number##binaryOp"
ARITHMETIC_OPERATORS = ("+", "-", "*", "/", "%")


def to_commands(
    nodes: Sequence[syntax.Node],
    src: str,
    comments: Sequence[syntax.Comment] = (),
    header: Optional[syntax.Comment] = None,
    is_global: bool = False,
) -> list[ast.Command]:
    commands = []
    previous_end = None
    for node in nodes:
        comment = _leading_comment(node, comments, header, previous_end)
        commands.append(translate_command(node, src, comment, is_global))
        previous_end = node.loc.end
    return commands


def _leading_comment(node, comments, header, previous_end) -> Optional[syntax.Comment]:
    if not isinstance(node, syntax.VariableDeclaration):
        return None
    found = None
    for c in comments:
        if c is header or _before(node.loc.start, c.loc.end):
            continue
        if previous_end is not None and _before(c.loc.start, previous_end):
            continue
        found = c
    return found


def _before(a, b) -> bool:
    return (a.line, a.column) < (b.line, b.column)


def translate_command(
    node: syntax.Node, src: str, comment: Optional[syntax.Comment] = None, is_global: bool = False
) -> ast.Command:
    match node:
        case syntax.VariableDeclaration():
            name, init = _single_declarator(node)
            annotation = _function_annotation(src, comment, name.name, init)
            binding = ast.TermBinding(
                translate_term(init, annotation), name_loc=name.loc, is_global=is_global
            )
            return ast.Bind(name.name, binding, loc=node.loc)
        case syntax.ExpressionStatement(expression=expr):
            return ast.Eval(translate_term(expr), loc=node.loc)
        case syntax.TypeDeclaration(id=name, init=init):
            ty = translate_type(init)
            if is_global:
                ty = _named_record(ty, name.name)
            return ast.Bind(
                name.name,
                ast.TypeBinding(ty, name_loc=name.loc, is_global=is_global),
                loc=node.loc,
            )
        case syntax.TypeGlobal(name=name, value=value):
            return ast.Bind(name, ast.VarBinding(translate_type(value), is_global=True), loc=NO_LOC)
        case _:
            raise StructuralError(f"Unsupported syntax {node.kind}", node.loc)


def _named_record(ty: ast.Type, name: str) -> ast.Type:
    match ty:
        case ast.RecordType():
            return ast.RecordType(ty.row, name)
        case ast.TypeAbs(param, ast.RecordType() as record):
            return ast.TypeAbs(param, ast.RecordType(record.row, name))
    return ty


def _single_declarator(node: syntax.VariableDeclaration) -> tuple[syntax.Identifier, syntax.Node]:
    if node.declaration_kind not in ("let", "const"):
        raise StructuralError(
            f"{node.declaration_kind} cannot be used to declare a variable. Use let or const.",
            node.loc,
        )
    if len(node.declarations) != 1:
        raise StructuralError("Only single declarations allowed.", node.declarations[1].loc)
    [declarator] = node.declarations
    if not isinstance(declarator.id, syntax.Identifier):
        raise StructuralError("Only simple variable assignments allowed", declarator.id.loc)
    if declarator.init is None:
        raise StructuralError("Variables must be initialized", declarator.loc)
    return declarator.id, declarator.init


def _function_annotation(
    src: str, comment: Optional[syntax.Comment], name: str, init: syntax.Node
) -> Optional[ast.Type]:
    if comment is None or not isinstance(init, syntax.ArrowFunctionExpression):
        return None
    if comment.loc.end.line != init.loc.start.line - 1:
        return None
    if comment.is_block:
        raise StructuralError("Function annotations must use //", comment.loc)
    ty = translate_type(annotations.parse_annotation(src, comment, name))
    if not isinstance(ty, (ast.Arrow, ast.TypeAbs)):
        raise StructuralError("Function annotation missing return type", comment.loc)
    return ty


def translate_term(node: syntax.Node, annotation: Optional[ast.Type] = None) -> ast.Term:
    match node:
        case syntax.ArrowFunctionExpression(params=params, body=body):
            if len(params) > 1:
                raise StructuralError("Functions can only have one argument", params[1].loc)
            param = ast.Param(params[0].name, loc=params[0].loc) if params else None
            if isinstance(body, syntax.BlockStatement):
                term = translate_block(body)
            else:
                term = translate_term(body)
            return ast.Function(param, term, annotation, loc=node.loc)
        case syntax.Identifier(name=name):
            return ast.Reference(name, loc=node.loc)
        case syntax.CallExpression(callee=callee, arguments=args):
            if len(args) > 1:
                raise StructuralError("Functions cannot have more than one argument", args[1].loc)
            arg = translate_term(args[0]) if args else ast.UnitLiteral(loc=node.loc)
            return ast.Application(translate_term(callee), arg, loc=node.loc)
        case syntax.ConditionalExpression(test=test, consequent=then, alternate=otherwise):
            return ast.Conditional(
                translate_term(test), translate_term(then), translate_term(otherwise), loc=node.loc
            )
        case syntax.BinaryExpression(operator=op, left=left, right=right):
            if op not in ARITHMETIC_OPERATORS:
                raise StructuralError(f"Unknown operator {op}", node.loc)
            partial = ast.Application(
                ast.Reference(BINARY_OPERATOR, loc=NO_LOC), translate_term(left), loc=left.loc
            )
            return ast.Application(partial, translate_term(right), loc=node.loc)
        case syntax.MemberExpression(object=obj, property=prop, computed=computed):
            if computed:
                raise StructuralError("Computed fields not supported", prop.loc)
            return ast.FieldAccess(prop.name, translate_term(obj), loc=node.loc)
        case syntax.ObjectExpression(properties=props):
            return translate_object(node.loc, props)
        case syntax.ArrayExpression(elements=elements):
            return ast.ArrayLiteral(tuple(map(translate_term, elements)), loc=node.loc)
        case syntax.Literal(value=value):
            return translate_literal(node)
        case _:
            raise StructuralError(f"Unsupported syntax {node.kind}", node.loc)


def translate_literal(node: syntax.Literal) -> ast.Term:
    match node.value:
        case bool():
            return ast.BooleanLiteral(loc=node.loc)
        case float() if math.isnan(node.value):
            raise StructuralError("NaN is not allowed", node.loc)
        case float():
            return ast.NumberLiteral(loc=node.loc)
        case str():
            return ast.StringLiteral(loc=node.loc)
    raise StructuralError(f"Unknown literal type {node.raw}", node.loc)


def translate_object(loc: Loc, props: Sequence[syntax.Node]) -> ast.Term:
    record: ast.Term = ast.EmptyRecord(loc=loc)
    for i, prop in enumerate(props):
        match prop:
            case syntax.SpreadElement(argument=arg):
                if i > 0:
                    raise StructuralError(
                        "Spread operator only allowed before declared fields", prop.loc
                    )
                record = translate_term(arg)
            case syntax.Property(computed=True):
                raise StructuralError("Computed fields not supported", prop.key.loc)
            case syntax.Property(key=key, value=value):
                record = ast.RecordExtend(_key_name(key), translate_term(value), record, loc=loc)
            case _:
                raise StructuralError(f"Unsupported syntax {prop.kind}", prop.loc)
    return record


def _key_name(key: syntax.Node) -> str:
    match key:
        case syntax.Identifier(name=name):
            return name
        case syntax.Literal(value=str() as value):
            return value
        case syntax.Literal(raw=raw):
            return raw
    raise StructuralError(f"Unsupported syntax {key.kind}", key.loc)


def translate_block(block: syntax.BlockStatement) -> ast.Term:
    """A block is a chain of declarations ending in a return statement."""
    if not block.body:
        raise StructuralError("Empty body not allowed.", block.loc)
    *declarations, last = block.body
    if not isinstance(last, syntax.ReturnStatement):
        raise StructuralError("Block must end with a return statement.", last.loc)
    if last.argument is None:
        raise StructuralError("Return statement must return a value", last.loc)
    term = translate_term(last.argument)
    for node in reversed(declarations):
        if not isinstance(node, syntax.VariableDeclaration):
            raise StructuralError(f"Unsupported syntax {node.kind}", node.loc)
        name, init = _single_declarator(node)
        term = ast.Let(name.name, translate_term(init), term, name_loc=name.loc, loc=node.loc)
    return term


def translate_type(node: syntax.Node) -> ast.Type:
    match node:
        case syntax.TypeIdentifier(name=name) | syntax.TypeParameter(name=name):
            return ast.TypeVar(name, loc=node.loc)
        case syntax.TypeArrow(argument=arg, body=body):
            return ast.Arrow(translate_type(arg), translate_type(body))
        case syntax.TypeAbstraction(params=params, body=body):
            return functools.reduce(
                lambda inner, p: ast.TypeAbs(p.name, inner), reversed(params), translate_type(body)
            )
        case syntax.TypeApplication(callee=callee, arguments=args):
            return functools.reduce(
                lambda fn, arg: ast.TypeApp(fn, translate_type(arg), loc=node.loc),
                args,
                translate_type(callee),
            )
        case syntax.TypeArray(element=element):
            return ast.TypeApp(ast.ARRAY, translate_type(element), loc=node.loc)
        case syntax.TypeRecord(properties=props):
            return ast.RecordType(translate_row(props))
    raise NotImplementedError(node)


def translate_row(props: Sequence[syntax.Node]) -> ast.Type:
    row: ast.Type = ast.EmptyRow()
    for i, prop in enumerate(props):
        match prop:
            case syntax.TypeSpread(argument=arg):
                if i > 0:
                    raise StructuralError(
                        "Spread operator only allowed before declared fields", prop.loc
                    )
                row = ast.TypeVar(arg.name, loc=arg.loc)
            case syntax.TypeProperty(key=key, value=value):
                row = ast.RowExtend(key.name, translate_type(value), row)
            case _:
                raise NotImplementedError(prop)
    return row
