"""
Status Result Schema.

Every response carries a StatusResult describing the outcome. Failures
include the exception type, message and stack trace so the orchestrator
can log them; they are never retried by the worker.
"""

from __future__ import annotations

import traceback
from enum import Enum

from pydantic import BaseModel, ConfigDict


class Status(str, Enum):
    """Outcome of a load or invocation."""

    SUCCESS = "success"
    FAILURE = "failure"
    CANCELLED = "cancelled"


class ErrorDetails(BaseModel):
    """Exception details reported to the orchestrator."""

    exception_type: str
    message: str
    stack_trace: str | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> ErrorDetails:
        return cls(
            exception_type=type(exc).__name__,
            message=str(exc),
            stack_trace="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        )


class StatusResult(BaseModel):
    """Outcome of an operation."""

    model_config = ConfigDict(use_enum_values=True)

    status: Status = Status.SUCCESS
    error: ErrorDetails | None = None

    @classmethod
    def success(cls) -> StatusResult:
        return cls(status=Status.SUCCESS)

    @classmethod
    def failure(cls, exc: BaseException) -> StatusResult:
        return cls(status=Status.FAILURE, error=ErrorDetails.from_exception(exc))

    @classmethod
    def cancelled(cls, exc: BaseException | None = None) -> StatusResult:
        return cls(
            status=Status.CANCELLED,
            error=ErrorDetails.from_exception(exc) if exc is not None else None,
        )

    @property
    def is_success(self) -> bool:
        return self.status == Status.SUCCESS
