from __future__ import annotations

from duckscript.abstract_syntax import (
    Arrow,
    EmptyRow,
    Placeholder,
    RecordType,
    RowExtend,
    Type,
    TypeAbs,
    TypeApp,
    TypeVar,
)


def show(ty: Type) -> str:
    """Generic parameters first, then the type: ``<a> a -> a``."""
    text, generics = print_type(ty)
    if generics:
        return f"<{', '.join(generics)}> {text}"
    return text


def signature(name: str, ty: Type) -> str:
    text, generics = print_type(ty)
    if generics:
        return f"{name}<{', '.join(generics)}> :: {text}"
    return f"{name} :: {text}"


def print_type(ty: Type, first_field: bool = False, hide_type_var: bool = False) -> tuple[str, list[str]]:
    """Render `ty` and collect the names of its leading generic parameters."""
    match ty:
        case TypeAbs(name=name, body=body):
            text, generics = print_type(body, first_field, hide_type_var)
            return text, [name, *generics]
        case TypeApp(callee=callee, arg=arg):
            callee_text = print_type(callee)[0]
            arg_text = _operand(arg)
            if callee_text == "Array":
                return f"{arg_text}[]", []
            return f"{callee_text}<{print_type(arg)[0]}>", []
        case Arrow(arg=arg, ret=ret):
            return f"{_operand(arg)} -> {print_type(ret)[0]}", []
        case TypeVar() | Placeholder() if first_field:
            return ("" if hide_type_var else f"...{_name(ty)}"), []
        case TypeVar(name=name):
            return name, []
        case Placeholder():
            return str(ty), []
        case RecordType(name=str() as name):
            return name, []
        case RecordType(row=EmptyRow()):
            return "{}", []
        case RecordType(row=row):
            return f"{{ {print_type(row, True, hide_type_var)[0]} }}", []
        case RowExtend(key=key, field=field, base=base):
            field_text, generics = print_type(field)
            params = f"<{', '.join(generics)}>" if generics else ""
            base_text = print_type(base, first_field, hide_type_var)[0]
            entry = f"{key}{params}: {field_text}"
            return (f"{base_text}, {entry}" if base_text else entry), []
        case EmptyRow():
            return "", []
    raise NotImplementedError(ty)


def print_row(row: Type, hide_type_var: bool = False) -> str:
    return print_type(row, True, hide_type_var)[0]


def _name(ty: Type) -> str:
    return ty.name if isinstance(ty, TypeVar) else str(ty)


def _operand(ty: Type) -> str:
    """Arrows in argument position need parentheses."""
    inner = ty
    while isinstance(inner, TypeAbs):
        inner = inner.body
    text = print_type(ty)[0]
    return f"({text})" if isinstance(inner, Arrow) else text
