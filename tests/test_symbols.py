from duckscript import api, symbols
from duckscript.abstract_syntax import NUMBER


def test_declaration_symbol():
    symbol = symbol_at("const id = x => x;", 1, 6)
    assert symbol.kind == symbols.VARIABLE_DECLARATION
    assert symbol.name == "id"
    assert symbol.generics == ["a"]
    assert str(symbol) == "id<a> :: a -> a"


def test_function_argument_and_usage():
    src = "const id = x => x;"
    argument = symbol_at(src, 1, 11)
    assert argument.kind == symbols.FUNCTION_ARGUMENT
    assert str(argument) == "x :: a"
    usage = symbol_at(src, 1, 16)
    assert usage.kind == symbols.VARIABLE_USAGE
    assert str(usage) == "x :: a"


def test_generic_callee_shows_instantiation():
    symbol = symbol_at("const id = x => x;\nid(5);", 2, 0)
    assert symbol.kind == symbols.VARIABLE_USAGE
    assert str(symbol) == "id :: Number -> Number"


def test_literal():
    symbol = symbol_at("const n = 5;", 1, 10)
    assert symbol.kind == symbols.BUILTIN
    assert symbol.type == NUMBER


def test_type_declaration():
    symbol = symbol_at("/*\ntype Num = Number;\n*/", 2, 5)
    assert symbol.kind == symbols.TYPE_DECLARATION
    assert str(symbol) == "Num :: Number"


def test_block_declarations():
    src = "const g = () => {\n  const y = 1;\n  return y;\n};"
    declared = symbol_at(src, 2, 8)
    assert declared.kind == symbols.VARIABLE_DECLARATION
    assert str(declared) == "y :: Number"
    assert str(symbol_at(src, 3, 9)) == "y :: Number"


def test_lambda_argument_inside_call():
    src = "const apply = f => f(1);\napply(v => v + 1);"
    assert str(symbol_at(src, 2, 6)) == "v :: Number"


def test_nothing_at_position():
    assert symbol_at("const n = 5;\n\n", 2, 0) is None
    assert symbol_at("const n = 5;", 7, 3) is None


def test_global_usage():
    symbol = symbol_at("parseInt;", 1, 0)
    assert symbol.kind == symbols.VARIABLE_USAGE
    assert str(symbol) == "parseInt :: String -> Number"


def symbol_at(src, line, column):
    return api.analyze(src).symbol_at(line, column)
