from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from ..evaluation.contracts import EvalResult
from ..evaluation.warnings import WarningCollector
from ..forms.types import Symbol
from ..protocol.result import Result
from .config import ReplOptions, Target

ResultCallback = Callable[[Result], Any]
SideEffect = Callable[[], None]


@dataclass(frozen=True)
class EvaluationRequest:
    """One line handed to read-eval-call, after reading."""

    form: Any
    source_text: str
    namespace: Symbol
    target: Target


@dataclass(frozen=True)
class Hooks:
    """Side effects run at delivery, before the callback.

    ``side_effect`` runs whatever the outcome and disables the other two.
    """

    side_effect: Optional[SideEffect] = None
    on_success: Optional[SideEffect] = None
    on_error: Optional[SideEffect] = None

    def run(self, res: EvalResult) -> None:
        if self.side_effect is not None:
            self.side_effect()
        elif res.error is None:
            if self.on_success is not None:
                self.on_success()
        elif self.on_error is not None:
            self.on_error()


class Call:
    """Book-keeping of a single read-eval-call until its result is delivered."""

    def __init__(
        self,
        request: EvaluationRequest,
        opts: ReplOptions,
        callback: Optional[ResultCallback],
        collector: WarningCollector,
    ) -> None:
        self.request = request
        self.opts = opts
        self.callback = callback
        self.collector = collector
        self.result: Optional[Result] = None

    @property
    def delivered(self) -> bool:
        return self.result is not None
