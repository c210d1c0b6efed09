"""Run-once initialization of a REPL session."""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any

import structlog

from ..evaluation.loader import goog_deps_map, normalize_path
from ..forms.types import Symbol
from .config import ReplOptions, Target
from .state import SessionState

logger = structlog.get_logger()

GOOG_DEPS_FILE = "goog/deps.js"


@dataclass(frozen=True)
class InitData:
    """What every init action receives."""

    form: Any
    ns: Symbol
    target: Target


class InitLifecycle:
    """Guards the init actions so they run once per needs-init cycle.

    There is no lock: the claim is a synchronous test-and-set on the session
    state, so a concurrent or repeated caller returns immediately without
    running anything and without waiting for the claimant.
    """

    def __init__(self, state: SessionState) -> None:
        self._state = state

    async def ensure_init(self, opts: ReplOptions, data: InitData) -> bool:
        """Initialize the session if it needs it.

        Returns:
            True if this call performed the initialization
        """
        if not self._state.claim_init():
            return False
        generation = self._state.init_generation

        try:
            await self._init_repl(opts, data)
        except Exception as e:
            logger.warning("Initialization failed", error=str(e), ns=str(data.ns))
            if self._state.init_generation == generation:
                self._state.reset_init()
            raise

        if self._state.init_generation == generation:
            self._state.mark_initialized()
        else:
            # force_init() was called while the init actions were running;
            # a later claimant owns the current cycle
            logger.debug("Initialization was reset while in flight")
        return True

    def force_init(self) -> None:
        """Initialize again on the next request, e.g. after src_paths changed."""
        self._state.reset_init()

    async def _init_repl(self, opts: ReplOptions, data: InitData) -> None:
        if opts.verbose:
            logger.debug(
                "Initializing REPL environment",
                form=data.form,
                ns=str(data.ns),
                target=data.target.value,
            )

        if not opts.init_fns:
            raise RuntimeError("At least one init action is required")
        for init_fn in opts.init_fns:
            outcome = init_fn(data)
            if inspect.isawaitable(outcome):
                await outcome

        await self.init_module_index(opts)

    async def init_module_index(self, opts: ReplOptions) -> None:
        """Merge the provides of every ``goog/deps.js`` found on the source paths.

        Later source paths take precedence over earlier ones.
        """
        read_file = opts.read_file_fn
        if read_file is None or not opts.src_paths:
            return

        if opts.verbose:
            logger.debug("Discovering goog/deps.js", src_paths=opts.src_paths)

        for path in opts.src_paths:
            deps_path = normalize_path(path) + GOOG_DEPS_FILE
            content = await read_file(deps_path)
            if content:
                if opts.verbose:
                    logger.debug("Found valid deps file", path=deps_path)
                self._state.merge_module_index(goog_deps_map(content))
