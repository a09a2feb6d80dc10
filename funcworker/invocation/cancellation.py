"""
Cancellation Token.

One token per invocation. Every suspension point of an invocation
(conversions, the user callable) runs through token.run(), so cancelling
the token stops the invocation at its next await.

Usage:
    token = CancellationToken()
    token.cancel_after(30)

    value = await token.run(converter.convert(context))
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from funcworker.errors import InvocationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """
    Cooperative cancellation signal backed by an asyncio.Event.

    Example:
        token = CancellationToken()
        task = asyncio.create_task(token.run(slow_operation()))
        token.cancel()
        await task  # raises InvocationCancelledError
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None
        self._timer: asyncio.TimerHandle | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "Invocation cancelled") -> None:
        """Signal cancellation. Idempotent; the first reason is kept."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        self.dispose()
        logger.debug(f"[cancellation] Token cancelled: {reason}")

    def cancel_after(self, seconds: float) -> None:
        """Schedule cancellation after a delay on the running loop."""
        self.dispose()
        self._timer = asyncio.get_running_loop().call_later(
            seconds, self.cancel, f"Invocation exceeded its {seconds}s deadline"
        )

    def dispose(self) -> None:
        """Drop a pending cancel_after() timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            InvocationCancelledError: If the token has been cancelled
        """
        if self._event.is_set():
            raise InvocationCancelledError(self._reason or "Invocation cancelled")

    async def wait(self) -> None:
        """Wait until the token is cancelled."""
        await self._event.wait()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """
        Await awaitable unless the token fires first.

        Whichever finishes second is cancelled.

        Raises:
            InvocationCancelledError: If the token fires before completion
        """
        if self._event.is_set():
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            self.raise_if_cancelled()

        work: asyncio.Future[Any] = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()

        if work.done():
            return work.result()

        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.debug(f"[cancellation] Cancelled work raised while stopping: {e!r}")
        raise InvocationCancelledError(self._reason or "Invocation cancelled")

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.is_cancelled})"
