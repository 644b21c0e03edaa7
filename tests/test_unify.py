import re

import pytest

from duckscript.abstract_syntax import (
    ARRAY,
    Arrow,
    EmptyRow,
    RecordType,
    RowExtend,
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
from duckscript.substitution import PlaceholderGen, principal_mapping
from duckscript.unify import unify

a, b = TypeVar("a"), TypeVar("b")


def test_unify_placeholder():
    fresh = PlaceholderGen()
    p = fresh()
    assert solve([(p, a)], fresh) == [(p, a)]


def test_unify_arrows():
    fresh = PlaceholderGen()
    p1, p2 = fresh(), fresh()
    principal = solve([(Arrow(p1, p2), Arrow(a, Arrow(a, b)))], fresh)
    assert principal_mapping(principal) == {p1.id: a, p2.id: Arrow(a, b)}


def test_solutions_flow_into_later_constraints():
    fresh = PlaceholderGen()
    p1, p2 = fresh(), fresh()
    principal = solve([(p1, Arrow(a, a)), (p1, Arrow(p2, a))], fresh)
    assert principal_mapping(principal) == {p1.id: Arrow(a, a), p2.id: a}


def test_occurs_check():
    fresh = PlaceholderGen()
    p = fresh()
    with pytest.raises(CircularTypeError, match="Circular constraints"):
        solve([(p, Arrow(p, a))], fresh)


def test_mismatch():
    with pytest.raises(TypeMismatchError, match="Type a -> a is not compatible with type a"):
        solve([(Arrow(a, a), a)], PlaceholderGen())


def test_rigid_type_parameters():
    with pytest.raises(TypeMismatchError):
        solve([(a, b)], PlaceholderGen())


def test_undeclared_type_name():
    fresh = PlaceholderGen()
    with pytest.raises(UndeclaredNameError):
        solve([(TypeVar("Foo"), fresh())], fresh)


def test_declared_names_are_expanded():
    fresh = PlaceholderGen()
    p = fresh()
    point = RecordType(RowExtend("x", a, EmptyRow()))
    ctx = CTX.bind("Point", TypeBinding(point))
    principal = unify([(RecordType(RowExtend("x", p, fresh())), TypeVar("Point"))], ctx, None, fresh)
    assert principal_mapping(principal)[p.id] == a


def test_rows_unify_regardless_of_field_order():
    fresh = PlaceholderGen()
    rest = fresh()
    principal = solve(
        [
            (
                RecordType(RowExtend("y", b, rest)),
                RecordType(RowExtend("y", b, RowExtend("x", a, EmptyRow()))),
            ),
            (
                RecordType(RowExtend("x", a, RowExtend("y", b, EmptyRow()))),
                RecordType(RowExtend("y", b, RowExtend("x", a, EmptyRow()))),
            ),
        ],
        fresh,
    )
    assert principal_mapping(principal) == {rest.id: RowExtend("x", a, EmptyRow())}


def test_open_row_grows():
    fresh = PlaceholderGen()
    own, rest = fresh(), fresh()
    principal = solve([(RecordType(RowExtend("x", a, own)), RecordType(RowExtend("y", b, rest)))], fresh)
    [(placeholder, row)] = [pair for pair in principal if pair[0] == rest]
    assert isinstance(row, RowExtend) and row.key == "x" and row.field == a


def test_missing_field():
    fresh = PlaceholderGen()
    with pytest.raises(MissingFieldError, match=re.escape("Type {} is missing field y: a")):
        solve([(RecordType(RowExtend("y", a, fresh())), RecordType(EmptyRow()))], fresh)


def test_unexpected_fields():
    with pytest.raises(MissingFieldError, match=re.escape("Type {} has unexpected fields x: a")):
        solve([(RecordType(EmptyRow()), RecordType(RowExtend("x", a, EmptyRow())))], PlaceholderGen())


def test_recursive_row_is_circular():
    fresh = PlaceholderGen()
    rest = fresh()
    with pytest.raises(CircularTypeError):
        solve([(RecordType(RowExtend("x", a, rest)), RecordType(RowExtend("y", a, rest)))], fresh)


def test_abstractions_unify_up_to_renaming():
    assert solve([(TypeAbs("a", Arrow(a, a)), TypeAbs("b", Arrow(b, b)))], PlaceholderGen()) == []


def test_abstraction_is_opened_against_concrete_type():
    fresh = PlaceholderGen()
    p = fresh()
    principal = solve([(TypeAbs("c", Arrow(TypeVar("c"), TypeVar("c"))), Arrow(a, p))], fresh)
    assert principal_mapping(principal)[p.id] == a


def test_applications_unify_pointwise():
    fresh = PlaceholderGen()
    p = fresh()
    assert solve([(TypeApp(ARRAY, p), TypeApp(ARRAY, a))], fresh) == [(p, a)]


CTX = Context.empty().bind("a", TypeVarMarker()).bind("b", TypeVarMarker())


def solve(constraints, fresh):
    return unify(constraints, CTX, None, fresh)
