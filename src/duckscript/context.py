"""Typing contexts: persistent chains of name bindings.

Values, type declarations and type-variable markers share one namespace, and a
name may only be bound once along a chain.
"""

from __future__ import annotations

import abc
from typing import Callable, Collection, Iterator, Optional

from duckscript.abstract_syntax import (
    Binding,
    TermBinding,
    Type,
    TypeBinding,
    TypeVarMarker,
    VarBinding,
)
from duckscript.errors import (
    OutOfTypeVariablesError,
    RedefinitionError,
    ReservedWordError,
    UndeclaredNameError,
)
from duckscript.source import Loc

RESERVED_WORDS = ("string", "boolean", "number")
TYPE_VARIABLE_NAMES = "abcdefghijklmnopqrstuvwxyz"


class Context(abc.ABC):
    @staticmethod
    def empty() -> Context:
        return EmptyContext()

    def bind(self, name: str, binding: Binding, loc: Optional[Loc] = None) -> Context:
        self.check_bindable(name, loc)
        return Entry(name, binding, self)

    def extend(self, name: str, binding: Binding) -> Context:
        """Bind without the redefinition check."""
        return Entry(name, binding, self)

    def check_bindable(self, name: str, loc: Optional[Loc] = None):
        if name in RESERVED_WORDS:
            raise ReservedWordError(name, loc)
        if name in self:
            raise RedefinitionError(name, loc)

    @abc.abstractmethod
    def lookup(self, name: str) -> Optional[Binding]:
        pass

    @abc.abstractmethod
    def __iter__(self) -> Iterator[tuple[str, Binding]]:
        """Bindings, most recent first."""

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None

    def value_type(self, name: str, loc: Optional[Loc] = None) -> Type:
        match self.lookup(name):
            case VarBinding(type=ty) | TermBinding(type=ty) if ty is not None:
                return ty
            case None | TypeBinding() | TypeVarMarker():
                raise UndeclaredNameError(name, loc)
        raise NotImplementedError(name)

    def next_type_var(self, loc: Optional[Loc] = None, taken: Collection[str] = ()) -> str:
        for name in TYPE_VARIABLE_NAMES:
            if name not in taken and not isinstance(self.lookup(name), TypeVarMarker):
                return name
        raise OutOfTypeVariablesError(loc)

    def merge(self, other: Context) -> Context:
        """Add the bindings `other` has on top of the tail both share."""
        if other is self:
            return self
        shared = {id(node) for node in self.nodes()}
        added = []
        for node in other.nodes():
            if id(node) in shared:
                break
            added.append(node)
        ctx = self
        for entry in reversed(added):
            if entry.name not in ctx:
                ctx = ctx.extend(entry.name, entry.binding)
        return ctx

    def nodes(self) -> Iterator[Entry]:
        node = self
        while isinstance(node, Entry):
            yield node
            node = node.next

    def map_bindings(self, fn: Callable[[Binding], Binding], memo=None) -> Context:
        """Rebuild the chain with `fn` applied to every binding.

        Unchanged entries are shared; `memo` maps already visited entries so
        chains with a common tail are only rebuilt once.
        """
        memo = {} if memo is None else memo
        pending = []
        node = self
        while isinstance(node, Entry) and id(node) not in memo:
            pending.append(node)
            node = node.next
        base = memo.get(id(node), node)
        for entry in reversed(pending):
            binding = fn(entry.binding)
            if binding is entry.binding and base is entry.next:
                new = entry
            else:
                new = Entry(entry.name, binding, base)
            memo[id(entry)] = new
            base = new
        return base


class EmptyContext(Context):
    def lookup(self, name: str) -> Optional[Binding]:
        return None

    def __iter__(self):
        return iter(())

    def __repr__(self):
        return "()"


class Entry(Context):
    def __init__(self, name: str, binding: Binding, nxt: Context):
        self.name = name
        self.binding = binding
        self.next = nxt

    def lookup(self, name: str) -> Optional[Binding]:
        node = self
        while isinstance(node, Entry):
            if node.name == name:
                return node.binding
            node = node.next
        return None

    def __iter__(self):
        node = self
        while isinstance(node, Entry):
            yield node.name, node.binding
            node = node.next

    def __repr__(self):
        return f"{self.name}: {self.binding!r}, {self.next!r}"
