"""Data types for forms produced by the reader."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Symbol:
    """A possibly namespace-qualified symbol, e.g. ``cljs.core/map``."""

    name: str
    ns: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> Symbol:
        # "/" on its own is the division symbol
        if "/" in text and text != "/":
            ns, _, name = text.partition("/")
            return cls(name, ns)
        return cls(text)

    def __str__(self) -> str:
        return f"{self.ns}/{self.name}" if self.ns else self.name


@dataclass(frozen=True)
class Keyword:
    name: str
    ns: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> Keyword:
        sym = Symbol.parse(text)
        return cls(sym.name, sym.ns)

    def __str__(self) -> str:
        return f":{self.ns}/{self.name}" if self.ns else f":{self.name}"


class SList(tuple):
    """A list form. Unlike vectors, lists may carry reader metadata."""

    def __new__(cls, items: Any = (), meta: Optional[dict[Any, Any]] = None) -> SList:
        obj = super().__new__(cls, items)
        obj.meta = dict(meta) if meta else {}
        return obj

    def __repr__(self) -> str:
        return f"SList({tuple(self)!r})"


class Vector(tuple):
    """A vector form."""

    def __repr__(self) -> str:
        return f"Vector({tuple(self)!r})"


@dataclass(frozen=True)
class Regex:
    """A ``#"..."`` literal; ``pattern`` is the source text between the quotes."""

    pattern: str


@dataclass(frozen=True)
class Tagged:
    """A tagged literal such as ``#inst "2020-01-01"``, kept as data."""

    tag: Symbol
    form: Any


def sym(text: str) -> Symbol:
    return Symbol.parse(text)


def kw(text: str) -> Keyword:
    return Keyword.parse(text)


QUOTE = Symbol("quote")
NS = Symbol("ns")


def with_meta(form: SList, meta: dict[Any, Any]) -> SList:
    """Return a copy of ``form`` whose metadata is merged with ``meta``."""
    merged = dict(form.meta)
    merged.update(meta)
    return SList(form, meta=merged)


def is_seq(form: Any) -> bool:
    return isinstance(form, SList)


def head(form: Any) -> Any:
    """First element of a list form, or None."""
    if is_seq(form) and len(form) > 0:
        return form[0]
    return None


def is_ns_form(form: Any) -> bool:
    return head(form) == NS


def is_quoted(form: Any) -> bool:
    return head(form) == QUOTE and len(form) == 2


def quote(form: Any) -> SList:
    return SList((QUOTE, form))
