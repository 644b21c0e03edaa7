from duckscript import printer
from duckscript.abstract_syntax import (
    NUMBER,
    STRING,
    UNIT,
    Arrow,
    EmptyRow,
    Placeholder,
    RecordType,
    RowExtend,
    TypeAbs,
    TypeApp,
    TypeVar,
    array_of,
)

a, b = TypeVar("a"), TypeVar("b")


def test_print_arrows():
    assert text(Arrow(a, Arrow(b, a))) == "a -> b -> a"
    assert text(Arrow(Arrow(a, b), a)) == "(a -> b) -> a"
    assert text(Arrow(UNIT, STRING)) == "() -> String"


def test_print_applications():
    assert text(array_of(NUMBER)) == "Number[]"
    assert text(array_of(Arrow(a, b))) == "(a -> b)[]"
    assert text(TypeApp(TypeVar("Pair"), NUMBER)) == "Pair<Number>"


def test_print_records():
    assert text(RecordType(EmptyRow())) == "{}"
    assert text(RecordType(RowExtend("y", NUMBER, RowExtend("x", STRING, EmptyRow())))) == (
        "{ x: String, y: Number }"
    )
    assert text(RecordType(RowExtend("y", NUMBER, TypeVar("r")))) == "{ ...r, y: Number }"
    assert text(RecordType(RowExtend("x", NUMBER, EmptyRow()), "Point")) == "Point"


def test_print_generic_field():
    field = TypeAbs("b", Arrow(a, b))
    assert text(RecordType(RowExtend("map", field, EmptyRow()))) == "{ map<b>: a -> b }"


def test_print_placeholder():
    assert text(Arrow(Placeholder(3), NUMBER)) == "?X3 -> Number"


def test_generics_are_collected():
    ty = TypeAbs("a", TypeAbs("b", Arrow(a, b)))
    assert printer.print_type(ty) == ("a -> b", ["a", "b"])
    assert printer.show(ty) == "<a, b> a -> b"
    assert printer.signature("f", ty) == "f<a, b> :: a -> b"
    assert printer.signature("n", NUMBER) == "n :: Number"


def test_hidden_row_variable():
    row = RowExtend("x", NUMBER, TypeVar("r"))
    assert printer.print_row(row) == "...r, x: Number"
    assert printer.print_row(row, hide_type_var=True) == "x: Number"


def text(ty):
    return printer.print_type(ty)[0]
