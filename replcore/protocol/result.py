from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..forms.printer import pr_str

if TYPE_CHECKING:
    from ..session.config import ReplOptions


class Result(BaseModel):
    """The only shape ever handed to a read-eval-call callback."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    success: bool = Field(description="Whether the evaluation succeeded")
    form: Any = Field(default=None, description="The form that was read, as data")
    warning: Optional[str] = Field(
        default=None, description="Compiler warning, advisory on success only"
    )
    value: Any = Field(default=None, description="Display string (or raw text) on success")
    error: Optional[BaseException] = Field(default=None, description="Error on failure")

    @model_validator(mode="after")
    def _check_shape(self) -> Result:
        if self.success:
            if self.error is not None:
                raise ValueError("A successful result cannot carry an error")
            if not isinstance(self.value, str):
                raise ValueError("A successful result must carry a string value")
        else:
            if self.error is None:
                raise ValueError("A failed result must carry an error")
            if self.value is not None:
                raise ValueError("A failed result cannot carry a value")
            if self.warning is not None:
                raise ValueError("Warnings are only advisory on success")
        return self


def build_success(opts: ReplOptions, form: Any, warning: Optional[str], value: Any) -> Result:
    """Build a success result, wrapping ``value`` in a display string.

    With ``no_pr_str_on_value`` the value is passed through as-is; it is then
    expected to be text already (doc, source, dir and pst output).
    """
    if not opts.no_pr_str_on_value:
        value = pr_str(value)
    return Result(success=True, form=form, warning=warning, value=value)


def build_error(opts: ReplOptions, form: Any, warning: Optional[str], error: BaseException) -> Result:
    # Errors take precedence over warnings, which are dropped here
    return Result(success=False, form=form, error=error)
