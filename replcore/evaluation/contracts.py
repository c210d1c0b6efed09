"""Boundary types for the external evaluator and module loader."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Literal, Mapping, Optional, Protocol

from ..forms.types import Symbol

# (warning_type, env, extra) -> None, called synchronously during evaluation
WarningHandler = Callable[[str, Mapping[str, Any], Mapping[str, Any]], None]


@dataclass(frozen=True)
class LoadRequest:
    """What the evaluator asks the loader for when a namespace is required."""

    name: Symbol
    path: str  # without extension, e.g. "foo/bar_baz"
    macros: bool = False


@dataclass(frozen=True)
class LoadResult:
    lang: Literal["clj", "js"]
    source: str
    file: Optional[str] = None


LoadFn = Callable[[LoadRequest], Awaitable[Optional[LoadResult]]]
ReadFileFn = Callable[[str], Awaitable[Optional[str]]]


@dataclass
class EvalResult:
    """Outcome reported by the evaluator: a value or an error, never both."""

    value: Any = None
    error: Optional[BaseException] = None
    ns: Optional[Symbol] = None


@dataclass
class CompileOptions:
    """Option bundle handed to the evaluator for every evaluation."""

    ns: Symbol
    context: str = "expr"
    source_map: bool = False
    def_emits_var: bool = True
    load: Optional[LoadFn] = None
    verbose: bool = False
    static_fns: bool = False
    warning_handler: Optional[WarningHandler] = None
    # Values of *1, *2, *3 and *e, keyed by symbol name
    history: dict[str, Any] = field(default_factory=dict)


class Evaluator(Protocol):
    """The compiler/analyzer the REPL core drives.

    Namespace and var metadata are plain mappings. A namespace mapping has
    ``name``, ``doc``, ``defs`` and ``macros`` (the last two map names to var
    mappings). A var mapping may carry ``name``, ``ns``, ``doc``,
    ``arglists``, ``macro``, ``private``, ``file``, ``line`` and ``meta``.
    """

    async def eval_form(self, form: Any, options: CompileOptions) -> EvalResult: ...

    async def eval_source(self, source: str, name: str, options: CompileOptions) -> EvalResult: ...

    def known_namespaces(self) -> Iterable[Symbol]: ...

    def get_namespace(self, ns: Symbol) -> Optional[Mapping[str, Any]]: ...

    def resolve_var(self, ns: Symbol, sym: Symbol) -> Optional[Mapping[str, Any]]: ...

    def resolve_macro_var(self, ns: Symbol, sym: Symbol) -> Optional[Mapping[str, Any]]: ...

    def warning_message(
        self, warning_type: str, env: Mapping[str, Any], extra: Mapping[str, Any]
    ) -> Optional[str]:
        """Format a warning, or return None when its kind is disabled."""
        ...

    def loaded_namespaces(self) -> frozenset[Symbol]: ...

    def purge_analysis(self, ns: Symbol) -> None: ...

    def discard_loaded(self, ns: Symbol) -> None: ...
