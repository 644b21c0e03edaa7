"""Parsers for the type annotation language written inside comments.

A header block comment holds type declarations::

    type Num = Number;
    type Foo<x, y> = y -> x;

and line comments annotate functions::

    // getY<r, s> :: { ...r, y: s } -> s

Annotations are parsed against the whole source with everything outside the
comment blanked out, so the resulting nodes carry file positions.
"""

import functools
import re

import pyparsing as pp

from duckscript import syntax
from duckscript.errors import GrammarError
from duckscript.source import Loc

pp.ParserElement.enable_packrat()


def parse_declarations(src: str, comment: syntax.Comment) -> list[syntax.TypeDeclaration]:
    return list(_parse(declarations, src, comment))


def parse_annotation(src: str, comment: syntax.Comment, name: str) -> syntax.Node:
    result = _parse(annotation, src, comment)[0]
    if result.name != name:
        raise GrammarError([repr(name)], result.loc)
    return result.value


def parse_global_annotation(src: str, comment: syntax.Comment) -> syntax.TypeGlobal:
    return _parse(global_annotation, src, comment)[0]


def parse_type(src: str) -> syntax.Node:
    try:
        return type_expression.parse_string(src, parse_all=True)[0]
    except pp.ParseBaseException as e:
        raise _grammar_error(src, e) from e


def _parse(grammar: pp.ParserElement, src: str, comment: syntax.Comment) -> pp.ParseResults:
    start = comment.offset
    end = start + len(comment.value)
    masked = _blank(src[:start]) + src[start:end] + _blank(src[end:])
    try:
        return grammar.parse_string(masked, parse_all=True)
    except pp.ParseBaseException as e:
        raise _grammar_error(src, e) from e


def _blank(text: str) -> str:
    return re.sub(r"[^\n]", " ", text)


def _grammar_error(src: str, e: pp.ParseBaseException) -> GrammarError:
    expected = e.msg.removeprefix("Expected ").split(" or ")
    return GrammarError(expected, Loc.from_offsets(src, e.loc, e.loc + 1))


def located(expr: pp.ParserElement, build) -> pp.ParserElement:
    """Call ``build(loc, *tokens)`` with the source range matched by `expr`."""

    def action(s, l, t):
        start, tokens, end = t
        # Located reports the offset before leading whitespace is skipped
        while start < end and s[start].isspace():
            start += 1
        return build(Loc.from_offsets(s, start, end), *tokens)

    return pp.Located(expr).set_parse_action(action)


def with_params(loc, params, body):
    if not params:
        return body
    return syntax.TypeAbstraction(loc, list(params), body)


### Grammar

LPAR, RPAR, LT, GT, LBRACE, RBRACE, COLON = map(pp.Suppress, "()<>{}:")

ident = pp.Word(pp.alphanums + "_$")
unit = pp.Literal("()")
type_name = (pp.Regex(r"[A-Z]\w*") | unit).set_name("type name")
global_name = pp.Word(pp.alphanums + "_$#")

type_identifier = located(ident | unit, syntax.TypeIdentifier).set_name("type name")
type_parameter = located(ident, syntax.TypeParameter)

params = pp.Group(pp.Opt(LT + pp.DelimitedList(type_parameter) + GT))

arrow_value = pp.Forward().set_name("type")

type_application = located(
    type_identifier + LT + pp.Group(pp.DelimitedList(arrow_value)) + GT,
    lambda loc, callee, args: syntax.TypeApplication(loc, callee, list(args)),
)

type_spread = located(pp.Suppress("...") + type_identifier, syntax.TypeSpread)

type_property = located(
    located(ident, syntax.TypeIdentifier) + params + COLON + arrow_value,
    lambda loc, key, ps, value: syntax.TypeProperty(loc, key, with_params(loc, ps, value)),
)

record_field = (type_spread | type_property).set_name("record field")

type_record = located(
    LBRACE + pp.Group(pp.Opt(pp.DelimitedList(record_field))) + RBRACE,
    lambda loc, props: syntax.TypeRecord(loc, list(props)),
)

simple_value = (type_application | type_record | type_identifier).set_name("type")

parenthesized = LPAR + arrow_value + RPAR

array = located(
    (parenthesized | simple_value).set_name("type") + pp.OneOrMore(pp.Literal("[]")),
    lambda loc, element, *brackets: functools.reduce(
        lambda inner, _: syntax.TypeArray(loc, inner), brackets, element
    ),
)

operand = (array | parenthesized | simple_value).set_name("type")

arrow_value <<= located(
    operand + pp.Opt(pp.Suppress("->") + arrow_value),
    lambda loc, arg, ret=None: arg if ret is None else syntax.TypeArrow(loc, arg, ret),
)

declaration = located(
    pp.Keyword("type").suppress()
    - located(type_name, syntax.TypeIdentifier)
    + params
    + pp.Suppress("=")
    + arrow_value
    + pp.Opt(pp.Suppress(";")),
    lambda loc, name, ps, value: syntax.TypeDeclaration(loc, name, with_params(loc, ps, value)),
)


def _annotation(name: pp.ParserElement) -> pp.ParserElement:
    return located(
        located(name, syntax.TypeIdentifier) + params + pp.Suppress("::") - arrow_value,
        lambda loc, n, ps, value: syntax.TypeGlobal(loc, n.name, with_params(loc, ps, value)),
    )


declarations = pp.ZeroOrMore(declaration).parse_with_tabs()
annotation = _annotation(ident).parse_with_tabs()
global_annotation = _annotation(global_name).parse_with_tabs()
type_expression = (arrow_value + pp.StringEnd()).parse_with_tabs()
