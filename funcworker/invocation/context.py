"""
Function Context.

Invocation-scoped state passed to model binding and the dispatch table.
Created by the worker for each invocation and discarded afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from .cancellation import CancellationToken

if TYPE_CHECKING:
    from funcworker.definition.models import FunctionDefinition

    from .services import ServiceProvider


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _Unset:
    def __repr__(self) -> str:
        return "<unset>"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass
class InvocationResult:
    """Slot for the callable's return value. Stays UNSET for void callables."""

    value: Any = UNSET

    @property
    def is_set(self) -> bool:
        return self.value is not UNSET


@dataclass
class FunctionContext:
    """
    Request-scoped context for one invocation.

    Provides:
    - The function definition being invoked
    - Raw binding payloads and trigger metadata
    - The cancellation token
    - The service scope used to build function owners
    - The result slot and, once bound, the arguments

    Parameters typed FunctionContext receive this object directly.
    """

    invocation_id: str
    definition: FunctionDefinition
    binding_data: dict[str, Any] = field(default_factory=dict)
    trigger_metadata: dict[str, Any] = field(default_factory=dict)
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    services: ServiceProvider | None = None
    started_at: datetime = field(default_factory=_utc_now)

    invocation_result: InvocationResult = field(default_factory=InvocationResult)
    bound_arguments: tuple[Any, ...] | None = None

    @property
    def function_name(self) -> str:
        return self.definition.name

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since the invocation started."""
        delta = datetime.now(timezone.utc) - self.started_at
        return delta.total_seconds() * 1000
