"""Capture compiler warnings raised while a single request is evaluated."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional

import structlog

from ..protocol.errors import ERROR_DATA, WarningAsError
from .contracts import EvalResult

if TYPE_CHECKING:
    from ..session.config import ReplOptions
    from ..session.state import SessionState
    from .contracts import Evaluator

logger = structlog.get_logger()


class WarningCollector:
    """Per-request warning slot, installed as the evaluator's warning handler.

    The most recent warning wins. It is mirrored into the session state so
    the last warning stays observable until the request is delivered.
    """

    def __init__(self, evaluator: Evaluator, state: SessionState, verbose: bool = False) -> None:
        self._evaluator = evaluator
        self._state = state
        self._verbose = verbose
        self.message: Optional[str] = None

    def __call__(self, warning_type: str, env: Mapping[str, Any], extra: Mapping[str, Any]) -> None:
        if self._verbose:
            logger.debug("Handling warning", warning_type=warning_type, extra=dict(extra))
        message = self._evaluator.warning_message(warning_type, env, extra)
        if message:
            self.message = message
            self._state.last_eval_warning = message

    def clear(self) -> None:
        self.message = None
        self._state.last_eval_warning = None


def resolve_warning(opts: ReplOptions, warning: Optional[str], orig: EvalResult) -> tuple[EvalResult, Optional[str]]:
    """Fold a pending warning into an evaluation outcome.

    Returns the (possibly replaced) outcome and the advisory warning to attach
    to it, if any. Errors always win over warnings; with ``warning_as_error``
    a successful outcome is replaced by an error carrying the warning text.
    """
    if not warning or orig.error is not None:
        return orig, None

    if not opts.warning_as_error:
        return orig, warning

    if opts.verbose:
        logger.debug("Erroring on last warning", warning=warning)
    return EvalResult(error=WarningAsError(warning, data=ERROR_DATA), ns=orig.ns), None
