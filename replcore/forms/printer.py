"""Render values as readable display strings."""

from __future__ import annotations

from typing import Any

from .types import Keyword, Regex, SList, Symbol, Tagged, Vector

_STRING_ESCAPES = {'"': '\\"', "\\": "\\\\", "\n": "\\n", "\t": "\\t", "\r": "\\r"}


def _pr_string(value: str) -> str:
    return '"' + "".join(_STRING_ESCAPES.get(ch, ch) for ch in value) + '"'


def _pr_float(value: float) -> str:
    if value != value:
        return "##NaN"
    if value in (float("inf"), float("-inf")):
        return "##Inf" if value > 0 else "##-Inf"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def pr_str(value: Any) -> str:
    """Return the readable representation of ``value``.

    Strings are quoted, ``None`` prints as ``nil`` and collections print
    with their literal delimiters, so the output can be read back.
    """
    if value is None:
        return "nil"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, str):
        return _pr_string(value)
    if isinstance(value, (Symbol, Keyword)):
        return str(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _pr_float(value)
    if isinstance(value, Regex):
        return f'#"{value.pattern}"'
    if isinstance(value, Tagged):
        return f"#{value.tag} {pr_str(value.form)}"
    if isinstance(value, SList):
        return "(" + " ".join(pr_str(v) for v in value) + ")"
    if isinstance(value, (Vector, list, tuple)):
        return "[" + " ".join(pr_str(v) for v in value) + "]"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{pr_str(k)} {pr_str(v)}" for k, v in value.items()) + "}"
    if isinstance(value, (set, frozenset)):
        return "#{" + " ".join(sorted(pr_str(v) for v in value)) + "}"
    if isinstance(value, BaseException):
        message = getattr(value, "message", None) or str(value)
        return f"#error {{:message {_pr_string(message)}}}"
    return f"#object[{type(value).__name__} {_pr_string(str(value))}]"
