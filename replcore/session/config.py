"""Configuration for the REPL engine and per-request evaluation options."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..evaluation.loader import make_load_fn
from ..forms.types import Symbol

logger = structlog.get_logger()


@dataclass
class ReplConfig:
    """Configuration for engine behavior.

    Namespaces are given as strings and turned into symbols by the engine.
    """

    # Namespace a fresh or reset session starts in
    default_ns: str = "cljs.user"
    # Namespace a self-require is evaluated against
    scratch_ns: str = "cljs.user"


class Target(str, Enum):
    BROWSER = "browser"
    NODEJS = "nodejs"


# Keys callers may pass; anything else is dropped before validation
RECOGNIZED_OPTIONS = frozenset(
    {"verbose", "warning_as_error", "target", "init_fns", "load_fn", "read_file_fn", "src_paths"}
)


class ReplOptions(BaseModel):
    """Validated options of a single read-eval-call."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    verbose: bool = Field(default=False, description="Log the evaluation trail")
    warning_as_error: bool = Field(default=False, description="Escalate compiler warnings")
    target: Target = Field(default=Target.BROWSER, description="Evaluation target")
    init_fns: list[Callable[..., Any]] = Field(
        default_factory=list, description="Init actions, run in order once per init cycle"
    )
    load_fn: Optional[Callable[..., Any]] = Field(
        default=None, description="Async loader; overrides read_file_fn/src_paths"
    )
    read_file_fn: Optional[Callable[..., Any]] = Field(
        default=None, description="Async (path) -> source or None"
    )
    src_paths: Optional[list[str]] = Field(default=None, description="Source directories")
    # Internal: pass the success value through without pr_str
    no_pr_str_on_value: bool = False

    @field_validator("target", mode="before")
    @classmethod
    def _coerce_target(cls, value: Any) -> Any:
        # Accept keyword-style names and the "default" alias for the browser
        if value is None:
            return Target.BROWSER
        if isinstance(value, str):
            value = value.lstrip(":")
            if value == "default":
                return Target.BROWSER
        return value

    def raw(self) -> ReplOptions:
        """Copy whose success value is not wrapped in a display string."""
        return self.model_copy(update={"no_pr_str_on_value": True})


def _default_init(target: Target) -> Callable[..., None]:
    def init(data: Any) -> None:
        if data.ns is None:
            raise ValueError("Init data must carry the current namespace")

    init.__name__ = f"init_{target.value}"
    return init


# Defaults merged over the caller's options for each target
TARGET_DEFAULTS: dict[Target, dict[str, Any]] = {
    Target.BROWSER: {"init_fns": [_default_init(Target.BROWSER)]},
    Target.NODEJS: {"init_fns": [_default_init(Target.NODEJS)]},
}


def valid_options(user_opts: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    """Drop every key outside ``RECOGNIZED_OPTIONS``."""
    return {k: v for k, v in (user_opts or {}).items() if k in RECOGNIZED_OPTIONS}


def normalize_options(
    user_opts: Optional[Mapping[str, Any]],
    goog_path: Callable[[Symbol], Optional[str]],
) -> ReplOptions:
    """Process caller options into the record a read-eval-call runs with.

    Target defaults come first and the caller's init actions are appended to
    them. A loader is built from ``read_file_fn`` and ``src_paths`` unless
    ``load_fn`` is given.

    Raises:
        pydantic.ValidationError: If a recognized option has an invalid value
    """
    opts = ReplOptions(**valid_options(user_opts))

    defaults = TARGET_DEFAULTS[opts.target]
    init_fns = list(defaults["init_fns"]) + list(opts.init_fns)

    load_fn = opts.load_fn
    if load_fn is None:
        if opts.read_file_fn is not None and opts.src_paths is not None:
            load_fn = make_load_fn(opts.verbose, opts.src_paths, opts.read_file_fn, goog_path)
        elif opts.verbose:
            logger.debug("Missing read_file_fn or src_paths, cannot create a load function")

    return opts.model_copy(update={"init_fns": init_fns, "load_fn": load_fn})
