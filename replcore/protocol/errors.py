"""Error taxonomy for the REPL core.

Recoverable failures are delivered to callers inside a ``Result``; only
``LoadedNamespacesError`` is raised directly, because it signals a broken
caller-side precondition.
"""

from __future__ import annotations

import traceback
from typing import Any, Optional

ERROR_DATA = {"tag": "replcore/error"}


class ReplError(Exception):
    """Base class for errors originated by the REPL core itself."""

    def __init__(
        self,
        message: str,
        data: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.data = dict(ERROR_DATA if data is None else data)
        if cause is not None:
            self.__cause__ = cause


class ReaderError(ReplError):
    """The input text does not contain a valid form."""


class ArgumentError(ReplError):
    """A special form received an argument of the wrong shape."""


class UnsupportedKeywordError(ReplError):
    """A recognized special form that is deliberately not supported."""


class WarningAsError(ReplError):
    """A compiler warning escalated to an error by ``warning_as_error``."""


class LoadedNamespacesError(ReplError):
    """Namespaces are still marked as loaded after a purge."""


def argument_must_be_symbol(fn_name: str) -> ArgumentError:
    return ArgumentError(f"Argument to {fn_name} must be a symbol.")


def keyword_not_supported(keyword: str) -> UnsupportedKeywordError:
    return UnsupportedKeywordError(f"The {keyword} keyword is not supported at the moment")


def error_message(error: BaseException) -> str:
    return getattr(error, "message", None) or str(error) or type(error).__name__


def format_error(error: BaseException, include_cause: bool = True, include_trace: bool = True) -> str:
    """Render an error with its data, cause chain and traceback.

    Used by ``pst``; the output is plain text meant for humans.
    """
    lines = [f"{type(error).__name__}: {error_message(error)}"]
    data = getattr(error, "data", None)
    if data:
        lines.append(f"  data: {data!r}")

    if include_trace and error.__traceback__ is not None:
        frames = traceback.format_tb(error.__traceback__)
        lines.extend(frame.rstrip("\n") for frame in frames)

    if include_cause:
        seen = {id(error)}
        cause = error.__cause__ or error.__context__
        while cause is not None and id(cause) not in seen:
            seen.add(id(cause))
            lines.append(f"Caused by: {type(cause).__name__}: {error_message(cause)}")
            if include_trace and cause.__traceback__ is not None:
                lines.extend(f.rstrip("\n") for f in traceback.format_tb(cause.__traceback__))
            cause = cause.__cause__ or cause.__context__

    return "\n".join(lines)
