from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional

from ..forms.types import Symbol

DEFAULT_NS = Symbol("cljs.user")

# Forms that read a history variable never rotate history themselves
HISTORY_SYMBOLS = frozenset({Symbol("*1"), Symbol("*2"), Symbol("*3"), Symbol("*e")})


class InitPhase(str, Enum):
    """Initialization lifecycle phases, derived from the two state flags."""

    NEEDS_INIT = "needs_init"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"


@dataclass
class History:
    """The ``*1 *2 *3`` value slots and the ``*e`` error slot."""

    star1: Any = None
    star2: Any = None
    star3: Any = None
    star_e: Optional[BaseException] = None

    def rotate(self, value: Any) -> None:
        self.star3 = self.star2
        self.star2 = self.star1
        self.star1 = value

    def bindings(self) -> dict[str, Any]:
        return {"*1": self.star1, "*2": self.star2, "*3": self.star3, "*e": self.star_e}


@dataclass
class SessionState:
    """Mutable state of one REPL session.

    Only the transitions below change the init flags, so that
    ``initializing`` implies ``needs_init`` at all times.
    """

    current_ns: Symbol = DEFAULT_NS
    last_eval_warning: Optional[str] = None
    initializing: bool = False
    needs_init: bool = True
    # Bumped by every reset, so a claimant can tell its init cycle was superseded
    init_generation: int = 0
    goog_provide_to_path: dict[Symbol, str] = field(default_factory=dict)
    history: History = field(default_factory=History)

    @property
    def init_phase(self) -> InitPhase:
        if self.initializing:
            return InitPhase.INITIALIZING
        if self.needs_init:
            return InitPhase.NEEDS_INIT
        return InitPhase.INITIALIZED

    def claim_init(self) -> bool:
        """Test-and-set the right to initialize.

        Returns True for the one caller that must run initialization. Any
        other caller gets False and the state is left consistent: a session
        already initializing stays so, any other one is marked initialized.
        """
        if self.needs_init and not self.initializing:
            self.initializing = True
            return True
        if not self.initializing:
            self.needs_init = False
        return False

    def mark_initialized(self) -> None:
        if not (self.needs_init and self.initializing):
            raise RuntimeError(f"Cannot complete initialization in phase {self.init_phase.value}")
        self.initializing = False
        self.needs_init = False

    def reset_init(self) -> None:
        self.initializing = False
        self.needs_init = True
        self.init_generation += 1

    def merge_module_index(self, index: Mapping[Symbol, str]) -> None:
        self.goog_provide_to_path.update(index)

    def goog_path(self, provide: Symbol) -> Optional[str]:
        """Path (without extension) of a Closure provide, if indexed."""
        return self.goog_provide_to_path.get(provide)
