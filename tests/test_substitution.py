from duckscript.abstract_syntax import (
    NUMBER,
    STRING,
    Application,
    Arrow,
    Function,
    Let,
    NumberLiteral,
    Param,
    Placeholder,
    RecordType,
    Reference,
    RowExtend,
    TermBinding,
    TypeAbs,
    TypeVar,
    TypeVarMarker,
    VarBinding,
)
from duckscript.context import Context
from duckscript.substitution import (
    PlaceholderGen,
    apply_principal_types,
    generalize,
    map_context_types,
    occurs,
    principal_mapping,
    substitute_term,
    substitute_type,
)

a, b = TypeVar("a"), TypeVar("b")


def test_placeholder_generators_are_independent():
    first, second = PlaceholderGen(), PlaceholderGen()
    assert first() == Placeholder(1)
    assert first() == Placeholder(2)
    assert second() == Placeholder(1)


def test_substitute_named_type_variable():
    assert substitute_type("a", NUMBER, Arrow(a, RecordType(RowExtend("x", a, b)))) == Arrow(
        NUMBER, RecordType(RowExtend("x", NUMBER, b))
    )


def test_substitute_stops_at_rebinding_abstraction():
    ty = Arrow(a, TypeAbs("a", a))
    assert substitute_type("a", NUMBER, ty) == Arrow(NUMBER, TypeAbs("a", a))


def test_substitute_placeholder():
    p = Placeholder(7)
    assert substitute_type(7, STRING, Arrow(p, Placeholder(8))) == Arrow(STRING, Placeholder(8))


def test_occurs():
    p = Placeholder(1)
    assert occurs(1, Arrow(NUMBER, RecordType(RowExtend("x", p, Placeholder(2)))))
    assert not occurs(3, Arrow(p, p))


def test_principal_types_are_applied_transitively():
    p1, p2, p3 = Placeholder(1), Placeholder(2), Placeholder(3)
    principal = [(p1, Arrow(p2, p3)), (p2, NUMBER), (p3, p2)]
    assert principal_mapping(principal) == {1: Arrow(p2, p3), 2: NUMBER, 3: p2}
    assert apply_principal_types(principal, p1) == Arrow(NUMBER, NUMBER)


def test_substitute_term_respects_shadowing():
    replacement = NumberLiteral()
    term = Application(Reference("x"), Function(Param("x"), Reference("x")))
    assert substitute_term("x", replacement, term) == Application(
        replacement, Function(Param("x"), Reference("x"))
    )
    let = Let("y", Reference("x"), Let("x", NumberLiteral(), Reference("x")))
    assert substitute_term("x", Reference("z"), let) == Let(
        "y", Reference("z"), Let("x", NumberLiteral(), Reference("x"))
    )


def test_generalize_names_leftover_placeholders():
    p1, p2 = Placeholder(1), Placeholder(2)
    result = generalize([], Arrow(p1, p2), Context.empty())
    assert result.type == TypeAbs("b", TypeAbs("a", Arrow(a, b)))
    assert result.names == {1: a, 2: b}


def test_generalize_avoids_names_in_scope():
    ctx = Context.empty().bind("a", VarBinding(NUMBER))
    p = Placeholder(1)
    result = generalize([(Placeholder(2), p)], Arrow(Placeholder(2), a), ctx)
    assert result.type == TypeAbs("b", Arrow(b, a))


def test_generalize_names_placeholders_in_context():
    p1, p2 = Placeholder(1), Placeholder(2)
    ctx = Context.empty().bind("x", VarBinding(p2))
    result = generalize([], Arrow(p1, p1), ctx)
    assert result.type == TypeAbs("a", Arrow(a, a))
    assert result.ctx.lookup("x") == VarBinding(b)
    assert isinstance(result.ctx.lookup("b"), TypeVarMarker)


def test_map_context_types_skips_globals():
    p = Placeholder(1)
    ctx = (
        Context.empty()
        .bind("g", VarBinding(p, is_global=True))
        .bind("t", TermBinding(Reference("g"), p))
    )
    mapped = map_context_types(ctx, lambda t: substitute_type(1, NUMBER, t))
    assert mapped.lookup("g").type == p
    assert mapped.lookup("t").type == NUMBER
