import pytest

from duckscript import parser, syntax
from duckscript.abstract_syntax import Bind, Eval, TermBinding, TypeBinding
from duckscript.errors import StructuralError
from duckscript.source import Loc, Position


def test_parse_declaration_statement():
    [decl] = parser.parse_program("const x = 1;").body
    assert isinstance(decl, syntax.VariableDeclaration)
    assert decl.declaration_kind == "const"
    [declarator] = decl.declarations
    assert declarator.id.name == "x"
    assert declarator.init.value == 1.0


def test_parse_binding_power():
    expr = parse_expr("1 + 2 * 3")
    assert expr.operator == "+"
    assert expr.right.operator == "*"
    assert expr.right.left.raw == "2"


def test_parse_left_associative():
    expr = parse_expr("1 - 2 - 3")
    assert expr.operator == "-"
    assert expr.left.operator == "-"
    assert expr.right.raw == "3"


def test_parse_arrow_functions():
    fn = parse_expr("x => y => x")
    assert [p.name for p in fn.params] == ["x"]
    assert isinstance(fn.body, syntax.ArrowFunctionExpression)
    assert parse_expr("() => 1").params == []
    block = parse_expr("(a) => { const b = a; return b; }")
    assert isinstance(block.body, syntax.BlockStatement)
    assert [s.kind for s in block.body.body] == ["VariableDeclaration", "ReturnStatement"]


def test_parse_member_and_calls():
    expr = parse_expr("a.b(c)(d)")
    assert isinstance(expr, syntax.CallExpression)
    assert expr.arguments[0].name == "d"
    inner = expr.callee
    assert isinstance(inner.callee, syntax.MemberExpression)
    assert inner.callee.property.name == "b"


def test_parse_conditional():
    expr = parse_expr("a ? 1 : b ? 2 : 3")
    assert isinstance(expr, syntax.ConditionalExpression)
    assert isinstance(expr.alternate, syntax.ConditionalExpression)


def test_parse_object_and_array_literals():
    obj = parse_expr("({ ...r, x: 1, 'y': 2, z })")
    assert [p.kind for p in obj.properties] == ["SpreadElement", "Property", "Property", "Property"]
    assert obj.properties[2].key.value == "y"
    arr = parse_expr("[1, 'a', x]")
    assert len(arr.elements) == 3


def test_node_locations():
    expr = parse_expr("foo(bar)")
    assert expr.loc == Loc(Position(1, 0), Position(1, 8))
    assert expr.arguments[0].loc == Loc(Position(1, 4), Position(1, 7))


def test_comments_are_skipped():
    program = parser.parse_program('const s = "a // b"; // note\n/* block */ s;')
    assert [c.value for c in program.comments] == [" note", " block "]
    assert [c.is_block for c in program.comments] == [False, True]
    assert program.body[0].declarations[0].init.value == "a // b"
    assert program.body[1].loc.start == Position(2, 12)


def test_syntax_errors():
    with pytest.raises(StructuralError):
        parser.parse_program("const = ;")
    with pytest.raises(StructuralError):
        parser.parse_program("x => ")


def test_expression_after_header_follows_it():
    src = "const a = 1;\n/*\ntype N = { x: Number };\n*/\n(n => n.x)({ x: 1 });"
    commands = parser.parse_script(src)
    assert [type(c) for c in commands] == [Bind, Bind, Eval]
    assert commands[1].name == "N"
    assert commands[2].loc.start == Position(5, 0)


def test_parse_script_merges_header_by_line():
    commands = parser.parse_script("const a = 1;\n/*\ntype N = Number;\n*/\na;")
    assert [type(c) for c in commands] == [Bind, Bind, Eval]
    assert isinstance(commands[0].binding, TermBinding)
    assert isinstance(commands[1].binding, TypeBinding)
    assert commands[1].name == "N"


def test_parse_declaration_marks_globals():
    commands = parser.parse_declaration("/*\ntype T = {}\n*/\n// t :: T\n")
    assert [c.name for c in commands] == ["T", "t"]
    assert all(c.binding.is_global for c in commands)


def parse_expr(src):
    [statement] = parser.parse_program(src).body
    return statement.expression
