"""REPL special forms: directives handled by the REPL instead of the evaluator."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional

import structlog

from ..forms.printer import pr_str
from ..forms.reader import read_with_source
from ..forms.types import NS, Keyword, SList, Symbol, Vector, head, is_quoted
from ..protocol.errors import (
    ReaderError,
    argument_must_be_symbol,
    format_error,
    keyword_not_supported,
)
from .contracts import EvalResult
from .docs import render_doc, repl_special_doc, special_doc
from .loader import file_paths_to_try_from_ns, normalize_path, read_files

if TYPE_CHECKING:
    from ..session.config import ReplOptions
    from ..session.repl import Repl
    from ..session.request import Call

logger = structlog.get_logger()

RELOAD = Keyword("reload")
RELOAD_ALL = Keyword("reload-all")
STAR_E = Symbol("*e")
CORE_MACROS_NS = "cljs.core$macros"
NS_FORM_META = {Keyword("merge"): True, Keyword("line"): 1, Keyword("column"): 1}

_MISSING = object()


class SpecialForm(str, Enum):
    IN_NS = "in-ns"
    REQUIRE = "require"
    REQUIRE_MACROS = "require-macros"
    IMPORT = "import"
    DOC = "doc"
    SOURCE = "source"
    PST = "pst"
    DIR = "dir"
    LOAD_FILE = "load-file"

    @classmethod
    def of(cls, form: Any) -> Optional[SpecialForm]:
        """The special form a list form invokes, or None for anything else."""
        sym = head(form)
        if not isinstance(sym, Symbol) or sym.ns is not None:
            return None
        try:
            return cls(sym.name)
        except ValueError:
            return None


def _argument(form: SList) -> Any:
    return form[1] if len(form) > 1 else _MISSING


def _unquote(spec: Any) -> Any:
    return spec[1] if is_quoted(spec) else spec


def canonicalize_specs(specs: list[Any]) -> list[Any]:
    """Unquote specs and turn bare symbols into single-element vectors."""
    canonical: list[Any] = []
    for spec in specs:
        if isinstance(spec, Keyword):
            canonical.append(spec)
        else:
            spec = _unquote(spec)
            canonical.append(spec if isinstance(spec, Vector) else Vector((spec,)))
    return canonical


def is_self_require(specs: list[Any], current_ns: Symbol) -> bool:
    for spec in specs:
        if isinstance(spec, Keyword):
            continue
        spec = _unquote(spec)
        ns = spec[0] if isinstance(spec, (Vector, SList)) and spec else spec
        if ns == current_ns:
            return True
    return False


def ns_publics(ns_info: Optional[Mapping[str, Any]]) -> dict[Any, Mapping[str, Any]]:
    """Public var mappings (macros and defs) of a namespace."""
    if not ns_info:
        return {}
    merged = {**(ns_info.get("macros") or {}), **(ns_info.get("defs") or {})}
    return {k: v for k, v in merged.items() if not (v or {}).get("private")}


class SpecialFormDispatcher:
    """Runs the handler of each special form against the owning ``Repl``.

    Every handler ends by delivering exactly one result through the REPL.
    """

    def __init__(self, repl: Repl) -> None:
        self._repl = repl
        self._handlers: dict[SpecialForm, Callable[[Call, SList], Awaitable[None]]] = {
            SpecialForm.IN_NS: self._in_ns,
            SpecialForm.REQUIRE: self._require,
            SpecialForm.REQUIRE_MACROS: self._require,
            SpecialForm.IMPORT: self._require,
            SpecialForm.DOC: self._doc,
            SpecialForm.SOURCE: self._source,
            SpecialForm.PST: self._pst,
            SpecialForm.DIR: self._dir,
            SpecialForm.LOAD_FILE: self._load_file,
        }
        missing = set(SpecialForm) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for special forms: {sorted(m.value for m in missing)}")

    async def dispatch(self, call: Call, kind: SpecialForm, form: SList) -> None:
        if call.opts.verbose:
            logger.debug("Processing special form", kind=kind.value, form=pr_str(form))
        await self._handlers[kind](call, form)

    # --- namespaces ---------------------------------------------------------

    async def _in_ns(self, call: Call, form: SList) -> None:
        repl = self._repl
        argument = _argument(form)
        res = await repl.eval_form(call, None if argument is _MISSING else argument)
        if res.error is not None:
            repl.deliver(call, res)
            return

        ns_sym = res.value
        if call.opts.verbose:
            logger.debug("in-ns argument evaluated", is_symbol=isinstance(ns_sym, Symbol))
        if not isinstance(ns_sym, Symbol):
            repl.deliver(call, EvalResult(error=argument_must_be_symbol("in-ns")))
            return

        def switch() -> None:
            repl.state.current_ns = ns_sym

        if ns_sym in set(repl.evaluator.known_namespaces()):
            repl.deliver(call, EvalResult(value=None), side_effect=switch)
            return

        res = await repl.eval_form(call, SList((NS, ns_sym)))
        outcome = EvalResult(error=res.error) if res.error is not None else EvalResult(value=None)
        repl.deliver(call, outcome, on_success=switch)

    async def _require(self, call: Call, form: SList) -> None:
        repl = self._repl
        kind = SpecialForm.of(form)
        specs = list(form[1:])
        # Only quoted specs are handled: (require foo.bar) cannot be told apart
        # from a require of whatever foo.bar evaluates to.
        if not specs or not is_quoted(specs[0]):
            repl.deliver(call, EvalResult(error=argument_must_be_symbol(kind.value)))
            return

        current_ns = repl.state.current_ns
        self_require = kind is SpecialForm.REQUIRE and is_self_require(specs, current_ns)
        target_ns = repl.scratch_ns if self_require else current_ns
        ns_form = self.make_ns_form(call.opts, kind, specs, target_ns)
        if call.opts.verbose:
            logger.debug("Processing require", kind=kind.value, ns_form=pr_str(ns_form))

        res = await repl.eval_form(call, ns_form)

        def restore() -> None:
            if self_require:
                repl.state.current_ns = current_ns

        outcome = EvalResult(error=res.error) if res.error is not None else EvalResult(value=None)
        repl.deliver(call, outcome, side_effect=restore)

    def make_ns_form(self, opts: ReplOptions, kind: SpecialForm, specs: list[Any], target_ns: Symbol) -> SList:
        """Synthesize ``(ns target (:kind specs...))`` merging into ``target``."""
        if kind is SpecialForm.IMPORT:
            body = [spec if isinstance(spec, Keyword) else _unquote(spec) for spec in specs]
        else:
            body = self.process_reloads(opts, canonicalize_specs(specs))
        clause = SList((Keyword(kind.value), *body))
        return SList((NS, target_ns, clause), meta=NS_FORM_META)

    def process_reloads(self, opts: ReplOptions, specs: list[Any]) -> list[Any]:
        """Purge what a ``:reload``/``:reload-all`` flag asks for and drop the flag."""
        flag = next((s for s in specs if s == RELOAD or s == RELOAD_ALL), None)
        if flag is None:
            return specs

        specs = [s for s in specs if s != flag]
        if flag == RELOAD_ALL:
            targets = list(self._repl.evaluator.loaded_namespaces())
        else:
            targets = [s[0] for s in specs if isinstance(s, Vector) and s]
        if opts.verbose:
            logger.debug("Purging namespaces", flag=str(flag), namespaces=[str(t) for t in targets])
        for ns in targets:
            self._repl.purge_ns(ns)
        return specs

    # --- introspection ------------------------------------------------------

    def resolve(self, opts: ReplOptions, ns: Symbol, sym: Symbol) -> Optional[Mapping[str, Any]]:
        """Resolve ``sym`` as a var, falling back to a macro var."""
        evaluator = self._repl.evaluator
        try:
            var = evaluator.resolve_var(ns, sym)
            if var is not None:
                return var
        except Exception as e:
            if opts.verbose:
                logger.debug("Exception caught in resolve_var", sym=str(sym), error=str(e))
        try:
            return evaluator.resolve_macro_var(ns, sym)
        except Exception as e:
            if opts.verbose:
                logger.debug("Exception caught in resolve_macro_var", sym=str(sym), error=str(e))
        return None

    def get_var(self, opts: ReplOptions, sym: Symbol) -> Optional[dict[str, Any]]:
        ns = self._repl.state.current_ns
        found = self.resolve(opts, ns, sym)
        var = dict(found) if found else None
        if var is None:
            macro_var = self.resolve(opts, ns, Symbol(sym.name, CORE_MACROS_NS))
            if macro_var:
                var = dict(macro_var)
                name = var.get("name")
                var["ns"] = Symbol("cljs.core")
                var["name"] = Symbol(name.name if isinstance(name, Symbol) else sym.name, "cljs.core")
        if var is not None:
            name = var.get("name")
            if isinstance(name, Symbol) and name.ns is not None and name.ns == str(var.get("ns")):
                var["name"] = Symbol(name.name)
        return var

    async def _doc(self, call: Call, form: SList) -> None:
        repl = self._repl
        sym = _argument(form)
        if not isinstance(sym, Symbol):
            repl.deliver(call, EvalResult(error=argument_must_be_symbol("doc")))
            return

        doc = special_doc(sym) or repl_special_doc(sym)
        if doc is None:
            ns_info = repl.evaluator.get_namespace(sym)
            if ns_info is not None:
                doc = {"name": ns_info.get("name", sym), "doc": ns_info.get("doc")}
            else:
                doc = self.get_var(call.opts, sym)
        repl.deliver(call, EvalResult(value=render_doc(doc)), opts=call.opts.raw())

    async def _source(self, call: Call, form: SList) -> None:
        repl = self._repl
        opts = call.opts.raw()
        sym = _argument(form)
        var = self.get_var(call.opts, sym) if isinstance(sym, Symbol) else None
        file_path = None
        if var is not None:
            file_path = var.get("file") or (var.get("meta") or {}).get("file")

        if not file_path or opts.read_file_fn is None:
            repl.deliver(call, EvalResult(value="nil"), opts=opts)
            return

        src_paths = opts.src_paths or []
        if isinstance(file_path, Symbol):
            # The var only knows its owning namespace
            paths = file_paths_to_try_from_ns(src_paths, file_path)
        else:
            paths = [file_path] + [normalize_path(src) + file_path for src in src_paths]

        found = await read_files(opts.verbose, paths, opts.read_file_fn)
        if found is None:
            repl.deliver(call, EvalResult(value="nil"), opts=opts)
            return

        line = max(var.get("line") or 1, 1)
        lines = found.source.splitlines(keepends=True)
        try:
            _, text = read_with_source("".join(lines[line - 1:]))
        except ReaderError as e:
            repl.deliver(call, EvalResult(error=e), opts=opts)
            return
        repl.deliver(call, EvalResult(value=text), opts=opts)

    async def _pst(self, call: Call, form: SList) -> None:
        repl = self._repl
        expr = _argument(form)
        if expr is _MISSING:
            expr = STAR_E
        if expr is None or expr is False:
            repl.deliver(call, EvalResult(value=None))
            return

        res = await repl.eval_form(call, expr)
        target = res.error if res.error is not None else res.value
        if isinstance(target, BaseException):
            text = format_error(target, include_cause=True, include_trace=True)
        else:
            text = pr_str(target)
        repl.deliver(call, EvalResult(value=text), opts=call.opts.raw())

    async def _dir(self, call: Call, form: SList) -> None:
        repl = self._repl
        sym = _argument(form)
        if not isinstance(sym, Symbol):
            repl.deliver(call, EvalResult(error=argument_must_be_symbol("dir")))
            return

        names = sorted(str(name) for name in ns_publics(repl.evaluator.get_namespace(sym)))
        text = "\n".join(names) if names else "nil"
        repl.deliver(call, EvalResult(value=text), opts=call.opts.raw())

    async def _load_file(self, call: Call, form: SList) -> None:
        self._repl.deliver(call, EvalResult(error=keyword_not_supported("load-file")))
