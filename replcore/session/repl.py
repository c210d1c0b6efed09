from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Union

import structlog

from ..evaluation.contracts import CompileOptions, EvalResult, Evaluator
from ..evaluation.specials import SpecialForm, SpecialFormDispatcher
from ..evaluation.warnings import WarningCollector, resolve_warning
from ..forms.reader import read_string
from ..forms.types import Symbol, is_ns_form
from ..protocol.errors import LoadedNamespacesError
from ..protocol.result import Result, build_error, build_success
from .config import ReplConfig, ReplOptions, normalize_options
from .lifecycle import InitData, InitLifecycle
from .request import Call, EvaluationRequest, Hooks, ResultCallback, SideEffect
from .state import HISTORY_SYMBOLS, SessionState

logger = structlog.get_logger()


class Repl:
    """Read-eval-call front end of one REPL session.

    Reads a line, makes sure the session is initialized, routes special forms
    to the dispatcher and everything else to the evaluator, and delivers
    exactly one ``Result`` per line.
    """

    def __init__(
        self,
        evaluator: Evaluator,
        config: Optional[ReplConfig] = None,
        state: Optional[SessionState] = None,
    ) -> None:
        self._evaluator = evaluator
        self._config = config or ReplConfig()
        self._state = state or SessionState(current_ns=Symbol.parse(self._config.default_ns))
        self._lifecycle = InitLifecycle(self._state)
        self._specials = SpecialFormDispatcher(self)

    @property
    def evaluator(self) -> Evaluator:
        return self._evaluator

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_ns(self) -> Symbol:
        return self._state.current_ns

    @property
    def scratch_ns(self) -> Symbol:
        return Symbol.parse(self._config.scratch_ns)

    async def read_eval_call(
        self,
        options: Optional[Mapping[str, Any]],
        callback: Optional[ResultCallback],
        source: str,
    ) -> Result:
        """Read ``source``, evaluate it and call back with the result.

        Args:
            options: Raw options; unrecognized keys are dropped
            callback: Called exactly once with the ``Result`` (may be None)
            source: One line of source text

        Returns:
            The same ``Result`` handed to ``callback``
        """
        opts = ReplOptions()
        form: Any = None
        call: Optional[Call] = None
        try:
            form = read_string(source)
            opts = normalize_options(options, self._state.goog_path)
            request = EvaluationRequest(
                form=form,
                source_text=source,
                namespace=self._state.current_ns,
                target=opts.target,
            )
            call = Call(request, opts, callback, WarningCollector(self._evaluator, self._state, opts.verbose))

            await self._lifecycle.ensure_init(opts, InitData(form, request.namespace, request.target))

            kind = SpecialForm.of(form)
            if kind is not None:
                await self._specials.dispatch(call, kind, form)
            else:
                if opts.verbose:
                    logger.debug("Calling eval_source", source=source, ns=str(self._state.current_ns))
                res = await self._evaluator.eval_source(source, source, self.compile_options(call))
                if opts.verbose:
                    logger.debug("Evaluation returned", value=res.value, error=res.error)
                self.deliver(call, res, on_success=self._record_evaluation(form, res))

        except Exception as e:
            if call is not None and call.delivered:
                # Raised by the caller's own callback
                raise
            if opts.verbose:
                logger.debug("Exception caught in read_eval_call", error=str(e), exc_info=True)
            if call is None:
                request = EvaluationRequest(form, source, self._state.current_ns, opts.target)
                call = Call(request, opts, callback, WarningCollector(self._evaluator, self._state))
            self.deliver(call, EvalResult(error=e))

        if call.result is None:
            raise RuntimeError(f"Request finished without delivering a result: {source!r}")
        return call.result

    async def evaluate(self, source: str, options: Optional[Mapping[str, Any]] = None) -> Result:
        """Evaluate one line and return its result, without a callback."""
        return await self.read_eval_call(options, None, source)

    def _record_evaluation(self, form: Any, res: EvalResult) -> SideEffect:
        def on_success() -> None:
            history_read = isinstance(form, Symbol) and form in HISTORY_SYMBOLS
            if not (history_read or is_ns_form(form)):
                self._state.history.rotate(res.value)
            if res.ns is not None:
                self._state.current_ns = res.ns

        return on_success

    def compile_options(self, call: Call) -> CompileOptions:
        return CompileOptions(
            ns=self._state.current_ns,
            load=call.opts.load_fn,
            verbose=call.opts.verbose,
            warning_handler=call.collector,
            history=self._state.history.bindings(),
        )

    async def eval_form(self, call: Call, form: Any) -> EvalResult:
        """Evaluate a form on behalf of a special form.

        An evaluator that raises instead of reporting is turned into an error
        outcome, so that the special form still runs its delivery hooks.
        """
        try:
            return await self._evaluator.eval_form(form, self.compile_options(call))
        except Exception as e:
            logger.warning("Evaluator raised", error=str(e), ns=str(self._state.current_ns))
            return EvalResult(error=e)

    def deliver(
        self,
        call: Call,
        res: EvalResult,
        *,
        opts: Optional[ReplOptions] = None,
        side_effect: Optional[SideEffect] = None,
        on_success: Optional[SideEffect] = None,
        on_error: Optional[SideEffect] = None,
    ) -> Result:
        """Single point of exit of every request.

        Resolves the pending warning, runs the delivery hooks, clears the
        warning, sets or clears ``*e`` and finally calls back. The hooks run
        *before* the callback.

        Raises:
            RuntimeError: If a result was already delivered for ``call``
        """
        if call.delivered:
            raise RuntimeError("A result was already delivered for this request")

        opts = opts or call.opts
        res, warning = resolve_warning(opts, call.collector.message, res)
        if opts.verbose:
            logger.debug(
                "Calling back",
                form=call.request.form,
                success=res.error is None,
                warning=warning,
            )

        Hooks(side_effect, on_success, on_error).run(res)
        call.collector.clear()

        if res.error is None:
            self._state.history.star_e = None
            result = build_success(opts, call.request.form, warning, res.value)
        else:
            self._state.history.star_e = res.error
            result = build_error(opts, call.request.form, warning, res.error)

        call.result = result
        if call.callback is not None:
            call.callback(result)
        return result

    def force_init(self) -> None:
        """Run the init actions again on the next request."""
        self._lifecycle.force_init()

    def purge_ns(self, ns: Symbol) -> None:
        """Forget a namespace: its analysis and its loaded marker."""
        self._evaluator.purge_analysis(ns)
        self._evaluator.discard_loaded(ns)

    async def reset_env(self, namespaces: Optional[Iterable[Union[Symbol, str]]] = None) -> None:
        """Purge ``namespaces`` and bring the session back to its default state.

        Raises:
            LoadedNamespacesError: If namespaces are still marked as loaded
                after the purge; dependents must be purged too.
        """
        for ns in namespaces or ():
            self.purge_ns(ns if isinstance(ns, Symbol) else Symbol.parse(str(ns)))

        loaded = self._evaluator.loaded_namespaces()
        if loaded:
            raise LoadedNamespacesError(
                f"The loaded namespaces still contain {sorted(str(ns) for ns in loaded)}"
                " - make sure you purge dependent namespaces."
            )

        self._state.last_eval_warning = None
        await self.read_eval_call({}, None, "(set! *e nil)")
        await self.read_eval_call({}, None, f"(in-ns '{self._config.default_ns})")
