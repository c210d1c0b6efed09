"""Read one form from a string.

A compact reader for the subset of the ClojureScript syntax a REPL line
needs. Reader conditionals are resolved for the ``:cljs`` platform.
"""

from __future__ import annotations

import re
from typing import Any

from ..protocol.errors import ReaderError
from .types import Keyword, Regex, SList, Symbol, Tagged, Vector, quote, with_meta

_WHITESPACE = " \t\r\n,"
_TERMINATORS = set(_WHITESPACE) | set('()[]{}";')
_INT_RE = re.compile(r"^[+-]?\d+$")
_FLOAT_RE = re.compile(r"^[+-]?(\d+\.\d*([eE][+-]?\d+)?|\d+[eE][+-]?\d+)$")
_STRING_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\", "b": "\b", "f": "\f"}
_CHAR_NAMES = {"newline": "\n", "space": " ", "tab": "\t", "return": "\r", "backspace": "\b", "formfeed": "\f"}
_CLOSERS = {"(": ")", "[": "]", "{": "}"}
_FEATURES = (Keyword("cljs"), Keyword("default"))
_SYMBOLIC_VALUES = {"Inf": float("inf"), "-Inf": float("-inf"), "NaN": float("nan")}
_FN = Symbol("fn*")
_VAR = Symbol("var")

# Marker for forms that read as nothing (#_ and unmatched reader conditionals)
_NOTHING = object()


class _Reader:
    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.in_fn_literal = False

    def error(self, message: str) -> ReaderError:
        line = self.text.count("\n", 0, self.pos) + 1
        column = self.pos - (self.text.rfind("\n", 0, self.pos) + 1) + 1
        return ReaderError(message, data={"tag": "replcore/reader-error", "line": line, "column": column})

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def next_char(self) -> str:
        ch = self.peek()
        if not ch:
            raise self.error("Unexpected EOF while reading")
        self.pos += 1
        return ch

    def skip_whitespace(self) -> None:
        while self.pos < len(self.text):
            ch = self.text[self.pos]
            if ch in _WHITESPACE:
                self.pos += 1
            elif ch == ";":
                end = self.text.find("\n", self.pos)
                self.pos = len(self.text) if end == -1 else end + 1
            else:
                break

    def read(self) -> Any:
        """Read the next form, skipping forms that read as nothing."""
        while True:
            form = self.read_one()
            if form is not _NOTHING:
                return form

    def read_one(self) -> Any:
        self.skip_whitespace()
        ch = self.next_char()

        if ch in _CLOSERS:
            items = self.read_delimited(_CLOSERS[ch])
            if ch == "(":
                return SList(items)
            if ch == "[":
                return Vector(items)
            return self.make_map(items)
        if ch in ")]}":
            raise self.error(f"Unmatched delimiter: {ch}")
        if ch == '"':
            return self.read_string()
        if ch == "\\":
            return self.read_char()
        if ch == "'" or ch == "`":
            return quote(self.read())
        if ch == "~":
            if self.peek() == "@":
                self.pos += 1
                return SList((Symbol("unquote-splicing", "clojure.core"), self.read()))
            return SList((Symbol("unquote", "clojure.core"), self.read()))
        if ch == "@":
            return SList((Symbol("deref", "clojure.core"), self.read()))
        if ch == "^":
            return self.read_meta()
        if ch == "#":
            return self.read_dispatch()

        self.pos -= 1
        return self.read_atom(self.read_token())

    def read_delimited(self, closer: str) -> list[Any]:
        items: list[Any] = []
        while True:
            self.skip_whitespace()
            ch = self.peek()
            if not ch:
                raise self.error(f"Unexpected EOF while reading, expected {closer}")
            if ch == closer:
                self.pos += 1
                return items
            form = self.read_one()
            if form is not _NOTHING:
                items.append(form)

    def make_map(self, items: list[Any]) -> dict[Any, Any]:
        if len(items) % 2:
            raise self.error("Map literal must contain an even number of forms")
        try:
            return dict(zip(items[::2], items[1::2]))
        except TypeError as e:
            raise self.error(f"Invalid map key: {e}") from e

    def read_string(self) -> str:
        chars: list[str] = []
        while True:
            ch = self.next_char()
            if ch == '"':
                return "".join(chars)
            if ch == "\\":
                esc = self.next_char()
                if esc == "u":
                    chars.append(self.read_unicode_escape())
                    continue
                if esc not in _STRING_ESCAPES:
                    raise self.error(f"Unsupported escape character: \\{esc}")
                chars.append(_STRING_ESCAPES[esc])
            else:
                chars.append(ch)

    def read_unicode_escape(self) -> str:
        digits = self.text[self.pos:self.pos + 4]
        if len(digits) != 4 or any(d not in "0123456789abcdefABCDEF" for d in digits):
            raise self.error(f"Invalid unicode escape: \\u{digits}")
        self.pos += 4
        return chr(int(digits, 16))

    def read_regex(self) -> Regex:
        # Escapes are kept verbatim; only \" does not end the pattern
        start = self.pos
        while True:
            ch = self.next_char()
            if ch == "\\":
                self.next_char()
            elif ch == '"':
                return Regex(self.text[start:self.pos - 1])

    def read_fn_literal(self) -> SList:
        if self.in_fn_literal:
            raise self.error("Nested #()s are not allowed")
        self.in_fn_literal = True
        try:
            body = SList(self.read_delimited(")"))
        finally:
            self.in_fn_literal = False

        params: dict[int, Symbol] = {}
        rest: list[Symbol] = []

        def arg(sym: Symbol) -> Any:
            suffix = sym.name[1:]
            if suffix == "&":
                if not rest:
                    rest.append(Symbol("rest__#"))
                return rest[0]
            if suffix == "" or suffix.isdigit():
                n = int(suffix or "1")
                return params.setdefault(n, Symbol(f"p{n}__#"))
            return sym

        def walk(form: Any) -> Any:
            if isinstance(form, Symbol) and form.ns is None and form.name.startswith("%"):
                return arg(form)
            if isinstance(form, SList):
                return SList([walk(f) for f in form], meta=form.meta)
            if isinstance(form, Vector):
                return Vector(walk(f) for f in form)
            if isinstance(form, dict):
                return {walk(k): walk(v) for k, v in form.items()}
            if isinstance(form, frozenset):
                return frozenset(walk(f) for f in form)
            return form

        body = walk(body)
        arity = max(params, default=0)
        args: list[Any] = [params.get(n) or Symbol(f"p{n}__#") for n in range(1, arity + 1)]
        if rest:
            args += [Symbol("&"), rest[0]]
        return SList((_FN, Vector(args), body))

    def read_char(self) -> str:
        token = self.next_char() + self.read_token()
        if len(token) == 1:
            return token
        if token in _CHAR_NAMES:
            return _CHAR_NAMES[token]
        if token.startswith("u") and len(token) == 5:
            try:
                return chr(int(token[1:], 16))
            except ValueError:
                pass
        raise self.error(f"Unsupported character: \\{token}")

    def read_meta(self) -> Any:
        meta = self.read()
        if isinstance(meta, Keyword):
            meta = {meta: True}
        elif isinstance(meta, (Symbol, str)):
            meta = {Keyword("tag"): meta}
        elif not isinstance(meta, dict):
            raise self.error("Metadata must be Symbol, Keyword, String or Map")
        form = self.read()
        if isinstance(form, SList):
            return with_meta(form, meta)
        return form

    def read_dispatch(self) -> Any:
        ch = self.next_char()
        if ch == "{":
            items = self.read_delimited("}")
            try:
                return frozenset(items)
            except TypeError as e:
                raise self.error(f"Invalid set element: {e}") from e
        if ch == "_":
            self.read()
            return _NOTHING
        if ch == "?":
            if self.peek() == "@":
                raise self.error("Splicing reader conditionals are not supported")
            if self.next_char() != "(":
                raise self.error("Reader conditional body must be a list")
            return self.read_conditional(self.read_delimited(")"))
        if ch == "(":
            return self.read_fn_literal()
        if ch == '"':
            return self.read_regex()
        if ch == "'":
            return SList((_VAR, self.read()))
        if ch == "#":
            token = self.read_token()
            if token not in _SYMBOLIC_VALUES:
                raise self.error(f"Invalid symbolic value: ##{token}")
            return _SYMBOLIC_VALUES[token]
        if ch.isalpha():
            self.pos -= 1
            tag = self.read_token()
            if tag.endswith("/"):
                raise self.error(f"Invalid tag: #{tag}")
            return Tagged(Symbol.parse(tag), self.read())
        raise self.error(f"Unsupported dispatch character: #{ch}")

    def read_conditional(self, items: list[Any]) -> Any:
        if len(items) % 2:
            raise self.error("Reader conditional requires an even number of forms")
        for feature, form in zip(items[::2], items[1::2]):
            if not isinstance(feature, Keyword):
                raise self.error("Feature should be a keyword")
            if feature in _FEATURES:
                return form
        return _NOTHING

    def read_token(self) -> str:
        start = self.pos
        while self.pos < len(self.text) and self.text[self.pos] not in _TERMINATORS:
            self.pos += 1
        return self.text[start:self.pos]

    def read_atom(self, token: str) -> Any:
        if not token:
            raise self.error("Invalid token")
        if token == "nil":
            return None
        if token == "true":
            return True
        if token == "false":
            return False
        if _INT_RE.match(token):
            return int(token)
        if _FLOAT_RE.match(token):
            return float(token)
        if token.startswith(":"):
            name = token.lstrip(":")
            if not name or token.startswith(":::") or name.endswith("/"):
                raise self.error(f"Invalid token: {token}")
            return Keyword.parse(name)
        if token[0].isdigit():
            raise self.error(f"Invalid number: {token}")
        if token.endswith("/") and token != "/":
            raise self.error(f"Invalid token: {token}")
        return Symbol.parse(token)


def read_string(text: str) -> Any:
    """Read the first form in ``text``; anything after it is ignored.

    Raises:
        ReaderError: If ``text`` holds no form or a malformed one.
    """
    return _Reader(text).read()


def read_with_source(text: str) -> tuple[Any, str]:
    """Read the first form and return it together with its exact source text."""
    reader = _Reader(text)
    while True:
        reader.skip_whitespace()
        start = reader.pos
        form = reader.read_one()
        if form is not _NOTHING:
            return form, text[start:reader.pos]
