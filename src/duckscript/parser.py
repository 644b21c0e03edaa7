import functools
import logging
import re

import pyparsing as pp

from duckscript import annotations, syntax, translate
from duckscript.abstract_syntax import Command
from duckscript.annotations import located
from duckscript.errors import StructuralError
from duckscript.source import Loc

logger = logging.getLogger(__name__)


def parse_script(src: str) -> list[Command]:
    """Parse a script into the commands the checker processes.

    The first block comment is the type header; its declarations are merged
    with the statements of the script by line.
    """
    program = parse_program(src)
    header = next((c for c in program.comments if c.is_block), None)
    nodes = []
    if header is not None:
        nodes.extend(annotations.parse_declarations(src, header))
    nodes.extend(program.body)
    nodes.sort(key=lambda n: n.loc.start.line)
    commands = translate.to_commands(nodes, src, program.comments, header)
    logger.debug("parsed %d commands", len(commands))
    return commands


def parse_declaration(src: str) -> list[Command]:
    """Parse a file of global declarations: type declarations in block
    comments and ``// name :: Type`` line comments."""
    nodes = []
    for comment in parse_program(src).comments:
        if comment.is_block:
            nodes.extend(annotations.parse_declarations(src, comment))
        else:
            nodes.append(annotations.parse_global_annotation(src, comment))
    return translate.to_commands(nodes, src, is_global=True)


def parse_program(src: str) -> syntax.Program:
    comments = list(scan_comments(src))
    code = src
    for c in reversed(comments):
        start, end = c.offset - 2, c.offset + len(c.value) + (2 if c.is_block else 0)
        code = code[:start] + re.sub(r"[^\n]", " ", code[start:end]) + code[end:]
    try:
        body = program.parse_string(code, parse_all=True)
    except pp.ParseBaseException as e:
        raise StructuralError(e.msg, Loc.from_offsets(src, e.loc, e.loc + 1)) from e
    return syntax.Program(Loc.from_offsets(src, 0, len(src)), list(body), comments)


def scan_comments(src: str):
    for tokens, start, end in comment_scanner.scan_string(src):
        text = tokens[0]
        if text.startswith("/*"):
            yield syntax.Comment(Loc.from_offsets(src, start, end), True, text[2:-2], start + 2)
        elif text.startswith("//"):
            yield syntax.Comment(Loc.from_offsets(src, start, end), False, text[2:], start + 2)


def _span(first: Loc, last: Loc) -> Loc:
    return Loc(first.start, last.end)


def _fold_binary(t):
    return functools.reduce(
        lambda left, op_right: syntax.BinaryExpression(
            _span(left.loc, op_right[1].loc), op_right[0], left, op_right[1]
        ),
        zip(t[1::2], t[2::2]),
        t[0],
    )


def _unescape(text: str) -> str:
    return re.sub(r"\\(.)", r"\1", text)


### Grammar

# strings come first so that comment markers inside them are skipped
comment_scanner = (pp.quoted_string | pp.c_style_comment | pp.dbl_slash_comment).parse_with_tabs()

LPAR, RPAR, LBRACE, RBRACE, LBRACK, RBRACK, COLON, SEMI = map(pp.Suppress, "(){}[]:;")

keyword = pp.MatchFirst(
    map(
        pp.Keyword,
        "const let var return true false null if else function new this typeof "
        "class for while do switch case break continue in of".split(),
    )
)
ident_name = pp.Regex(r"[A-Za-z_$][\w$]*")
identifier = located(~keyword + ident_name, syntax.Identifier)
property_name = located(ident_name, syntax.Identifier)

expression = pp.Forward().set_name("expression")
statement = pp.Forward().set_name("statement")

number = located(
    pp.Regex(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?"),
    lambda loc, raw: syntax.Literal(loc, float(raw), raw),
)
string = located(pp.quoted_string, lambda loc, raw: syntax.Literal(loc, _unescape(raw[1:-1]), raw))
boolean = located(
    pp.Keyword("true") | pp.Keyword("false"),
    lambda loc, raw: syntax.Literal(loc, raw == "true", raw),
)
null = located(pp.Keyword("null"), lambda loc, raw: syntax.Literal(loc, None, raw))

spread = located(pp.Suppress("...") + expression, syntax.SpreadElement)

computed_property = located(
    LBRACK + expression + RBRACK + COLON + expression,
    lambda loc, key, value: syntax.Property(loc, key, value, True),
)
keyed_property = located(
    (property_name | string | number) + COLON + expression,
    lambda loc, key, value: syntax.Property(loc, key, value, False),
)
shorthand_property = located(identifier, lambda loc, key: syntax.Property(loc, key, key, False))

object_literal = located(
    LBRACE
    + pp.Group(
        pp.Opt(
            pp.DelimitedList(
                spread | computed_property | keyed_property | shorthand_property,
                allow_trailing_delim=True,
            )
        )
    )
    + RBRACE,
    lambda loc, props: syntax.ObjectExpression(loc, list(props)),
)

array_literal = located(
    LBRACK + pp.Group(pp.Opt(pp.DelimitedList(spread | expression, allow_trailing_delim=True))) + RBRACK,
    lambda loc, elements: syntax.ArrayExpression(loc, list(elements)),
)

block = located(
    LBRACE + pp.Group(pp.ZeroOrMore(statement)) + RBRACE,
    lambda loc, body: syntax.BlockStatement(loc, list(body)),
)

arrow_params = pp.Group(identifier) | pp.Group(LPAR + pp.Opt(pp.DelimitedList(identifier)) + RPAR)

arrow_function = located(
    arrow_params + pp.Suppress("=>") - (block | expression),
    lambda loc, params, body: syntax.ArrowFunctionExpression(loc, list(params), body),
)

primary = (
    number
    | string
    | boolean
    | null
    | identifier
    | object_literal
    | array_literal
    | (LPAR + expression + RPAR)
)

# each suffix parses to a function that wraps the expression to its left
member_suffix = located(
    pp.Suppress(".") + property_name,
    lambda loc, prop: lambda obj: syntax.MemberExpression(_span(obj.loc, loc), obj, prop, False),
)
index_suffix = located(
    LBRACK + expression + RBRACK,
    lambda loc, prop: lambda obj: syntax.MemberExpression(_span(obj.loc, loc), obj, prop, True),
)
call_suffix = located(
    LPAR + pp.Group(pp.Opt(pp.DelimitedList(spread | expression))) + RPAR,
    lambda loc, args: lambda obj: syntax.CallExpression(_span(obj.loc, loc), obj, list(args)),
)

postfix = (primary + pp.ZeroOrMore(member_suffix | index_suffix | call_suffix)).set_parse_action(
    lambda t: functools.reduce(lambda obj, suffix: suffix(obj), t[1:], t[0])
)

unary = pp.Forward()
unary <<= (
    located(pp.one_of("! - + typeof") + unary, syntax.UnaryExpression) | postfix
)


def binary_level(operand: pp.ParserElement, operators: str) -> pp.ParserElement:
    return (operand + pp.ZeroOrMore(pp.one_of(operators) + operand)).set_parse_action(_fold_binary)


multiplicative = binary_level(unary, "* / %")
additive = binary_level(multiplicative, "+ -")
relational = binary_level(additive, "<= >= < >")
equality = binary_level(relational, "=== !== == !=")
logical_and = binary_level(equality, "&&")
logical_or = binary_level(logical_and, "|| ??")

conditional = located(
    logical_or + pp.Opt(pp.Suppress("?") - expression + COLON + expression),
    lambda loc, test, consequent=None, alternate=None: (
        test
        if consequent is None
        else syntax.ConditionalExpression(loc, test, consequent, alternate)
    ),
)

expression <<= arrow_function | conditional

object_pattern = located(pp.nested_expr("{", "}"), lambda loc, *_: syntax.ObjectPattern(loc))
array_pattern = located(pp.nested_expr("[", "]"), lambda loc, *_: syntax.ArrayPattern(loc))

declarator = located(
    (identifier | object_pattern | array_pattern) + pp.Opt(pp.Suppress("=") + expression),
    lambda loc, target, init=None: syntax.VariableDeclarator(loc, target, init),
)

declaration = located(
    pp.one_of("const let var", as_keyword=True)
    - pp.Group(pp.DelimitedList(declarator))
    + pp.Opt(SEMI),
    lambda loc, kind, decls: syntax.VariableDeclaration(loc, kind, list(decls)),
)

return_statement = located(
    pp.Keyword("return").suppress() + pp.Opt(expression) + pp.Opt(SEMI),
    lambda loc, argument=None: syntax.ReturnStatement(loc, argument),
)

expression_statement = located(expression + pp.Opt(SEMI), syntax.ExpressionStatement)

statement <<= declaration | return_statement | block | expression_statement | SEMI

program = pp.ZeroOrMore(statement).parse_with_tabs()
