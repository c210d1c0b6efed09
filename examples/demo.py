#!/usr/bin/env python3
"""replcore - read-eval-call over a toy arithmetic evaluator."""

from __future__ import annotations

import asyncio
import operator
from functools import reduce
from typing import Any, Mapping, Optional

import structlog

from replcore.evaluation.contracts import CompileOptions, EvalResult, LoadRequest
from replcore.forms.reader import read_string
from replcore.forms.types import NS, SList, Symbol, is_quoted
from replcore.protocol.result import Result
from replcore.session.repl import Repl

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer(),
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

SOURCES = {
    "src/calc/consts.cljs": "(ns calc.consts)\n(def tau 6.283185)\n",
}

OPS = {"+": operator.add, "-": operator.sub, "*": operator.mul, "/": operator.truediv}


class CalcEvaluator:
    """Numbers, the four operators, ``def`` and ``ns`` with ``:require``."""

    def __init__(self) -> None:
        self.namespaces: dict[Symbol, dict[str, Any]] = {Symbol("cljs.user"): {}}
        self.loaded: set[Symbol] = set()

    async def eval_form(self, form: Any, options: CompileOptions) -> EvalResult:
        try:
            value, ns = await self._eval(form, options)
        except Exception as e:
            return EvalResult(error=e)
        return EvalResult(value=value, ns=ns)

    async def eval_source(self, source: str, name: str, options: CompileOptions) -> EvalResult:
        return await self.eval_form(read_string(source), options)

    def known_namespaces(self) -> list[Symbol]:
        return list(self.namespaces)

    def get_namespace(self, ns: Symbol) -> Optional[Mapping[str, Any]]:
        if ns not in self.namespaces:
            return None
        defs = {Symbol(name): {"name": Symbol(name, str(ns))} for name in self.namespaces[ns]}
        return {"name": ns, "doc": None, "defs": defs, "macros": {}}

    def resolve_var(self, ns: Symbol, sym: Symbol) -> Optional[Mapping[str, Any]]:
        owner = Symbol(sym.ns) if sym.ns else ns
        if sym.name in self.namespaces.get(owner, {}):
            return {"name": Symbol(sym.name, str(owner)), "ns": owner}
        return None

    def resolve_macro_var(self, ns: Symbol, sym: Symbol) -> Optional[Mapping[str, Any]]:
        return None

    def warning_message(self, warning_type: str, env: Mapping[str, Any], extra: Mapping[str, Any]) -> Optional[str]:
        return f"WARNING: {warning_type} {extra.get('suffix', '')}".rstrip()

    def loaded_namespaces(self) -> frozenset[Symbol]:
        return frozenset(self.loaded)

    def purge_analysis(self, ns: Symbol) -> None:
        self.namespaces.pop(ns, None)

    def discard_loaded(self, ns: Symbol) -> None:
        self.loaded.discard(ns)

    async def _eval(self, form: Any, options: CompileOptions) -> tuple[Any, Symbol]:
        ns = options.ns
        if isinstance(form, Symbol):
            if str(form) in options.history:
                return options.history[str(form)], ns
            owner = Symbol(form.ns) if form.ns else ns
            values = self.namespaces.get(owner, {})
            if form.name not in values and options.warning_handler is not None:
                options.warning_handler("undeclared-var", {}, {"suffix": str(form)})
            return values.get(form.name), ns
        if not isinstance(form, SList) or not form:
            return form, ns
        if is_quoted(form):
            return form[1], ns

        op, args = form[0], form[1:]
        if op == NS:
            self.namespaces.setdefault(args[0], {})
            for clause in args[1:]:
                for spec in clause[1:]:
                    await self._require(spec[0], options)
            return None, args[0]
        if op == Symbol("def"):
            value = (await self._eval(args[1], options))[0]
            self.namespaces.setdefault(ns, {})[args[0].name] = value
            return Symbol(args[0].name, str(ns)), ns
        if op == Symbol("set!"):
            return None, ns
        values = [(await self._eval(arg, options))[0] for arg in args]
        return reduce(OPS[op.name], values), ns

    async def _require(self, name: Symbol, options: CompileOptions) -> None:
        if name in self.loaded:
            return
        found = await options.load(LoadRequest(name=name, path=str(name).replace(".", "/")))
        if found is None:
            raise LookupError(f"No such namespace: {name}")
        file_ns = options.ns
        for line in found.source.splitlines():
            if line.strip():
                file_ns = (await self._eval(read_string(line), CompileOptions(ns=file_ns, load=options.load)))[1]
        self.loaded.add(name)


async def read_file(path: str) -> Optional[str]:
    await asyncio.sleep(0)
    return SOURCES.get(path)


def show(result: Result) -> None:
    if result.success:
        suffix = f"   ; {result.warning}" if result.warning else ""
        print(f"=> {result.value}{suffix}")
    else:
        print(f"!! {type(result.error).__name__}: {result.error}")


async def demo_session() -> None:
    """Evaluate a few lines, special forms included."""
    print("=== Session Demo ===\n")

    repl = Repl(CalcEvaluator())
    options = {"read_file_fn": read_file, "src_paths": ["src"]}

    lines = [
        "(+ 1 2 3)",
        "(* *1 2)",
        "(def r 2)",
        "(require 'calc.consts)",
        "(* calc.consts/tau r)",
        "undefined",
        "(/ 1 0)",
        "(pst)",
        "(in-ns 'calc.consts)",
        "(dir calc.consts)",
        "(doc if)",
    ]
    for line in lines:
        print(f"{repl.current_ns}=> {line}")
        await repl.read_eval_call(options, show, line)

    await repl.reset_env(["calc.consts"])
    print(f"\nAfter reset: {repl.current_ns}")


async def main() -> None:
    """Main entry point."""
    print("replcore - ClojureScript-style read-eval-call engine")
    print("=" * 40)

    try:
        await demo_session()
    except KeyboardInterrupt:
        print("\nInterrupted by user")
    except Exception as e:
        logger.error("Demo error", error=str(e), exc_info=True)


if __name__ == "__main__":
    asyncio.run(main())
