import pytest

from duckscript.abstract_syntax import NUMBER, STRING, TypeBinding, TypeVarMarker, VarBinding
from duckscript.context import TYPE_VARIABLE_NAMES, Context
from duckscript.errors import (
    OutOfTypeVariablesError,
    RedefinitionError,
    ReservedWordError,
    UndeclaredNameError,
)


def test_lookup():
    ctx = Context.empty().bind("x", VarBinding(NUMBER)).bind("y", VarBinding(STRING))
    assert ctx.lookup("x") == VarBinding(NUMBER)
    assert ctx.lookup("y") == VarBinding(STRING)
    assert ctx.lookup("z") is None
    assert "x" in ctx
    assert "z" not in ctx


def test_iteration_is_most_recent_first():
    ctx = Context.empty().bind("x", VarBinding(NUMBER)).bind("y", VarBinding(STRING))
    assert [name for name, _ in ctx] == ["y", "x"]


def test_binding_is_persistent():
    base = Context.empty().bind("x", VarBinding(NUMBER))
    base.bind("y", VarBinding(STRING))
    assert "y" not in base


def test_redefinition():
    ctx = Context.empty().bind("x", VarBinding(NUMBER))
    with pytest.raises(RedefinitionError):
        ctx.bind("x", VarBinding(STRING))
    assert ctx.extend("x", VarBinding(STRING)).lookup("x") == VarBinding(STRING)


def test_reserved_words():
    with pytest.raises(ReservedWordError):
        Context.empty().bind("string", VarBinding(NUMBER))


def test_value_type():
    ctx = Context.empty().bind("x", VarBinding(NUMBER)).bind("T", TypeBinding(NUMBER))
    assert ctx.value_type("x") == NUMBER
    with pytest.raises(UndeclaredNameError):
        ctx.value_type("T")
    with pytest.raises(UndeclaredNameError):
        ctx.value_type("nope")


def test_next_type_var_skips_type_variables_and_taken_names():
    ctx = Context.empty().bind("a", TypeVarMarker()).bind("b", VarBinding(NUMBER))
    assert ctx.next_type_var() == "b"
    assert ctx.next_type_var(taken={"b", "c"}) == "d"


def test_out_of_type_variables():
    ctx = Context.empty()
    for name in TYPE_VARIABLE_NAMES:
        ctx = ctx.bind(name, TypeVarMarker())
    with pytest.raises(OutOfTypeVariablesError):
        ctx.next_type_var()


def test_merge_adds_what_the_other_chain_has_on_top():
    base = Context.empty().bind("x", VarBinding(NUMBER))
    left = base.bind("a", VarBinding(NUMBER))
    right = base.bind("b", VarBinding(STRING)).bind("a", VarBinding(STRING))
    merged = left.merge(right)
    assert [name for name, _ in merged] == ["b", "a", "x"]
    assert merged.lookup("a") == VarBinding(NUMBER)
    assert base.merge(base) is base
