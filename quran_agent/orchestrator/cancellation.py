"""Cooperative cancellation for agent runs."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, TypeVar

from quran_agent.errors import RunCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """
    Shared flag between a run and whoever may abandon it (e.g. a
    disconnected HTTP client).

    ``guard`` races an awaitable against the token: if the token fires
    first the awaitable is cancelled and ``RunCancelled`` is raised.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelled(self.reason or "cancelled")

    async def wait(self) -> None:
        await self._event.wait()

    async def guard(self, aw: Awaitable[T]) -> T:
        self.raise_if_cancelled()
        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            waiter.cancel()

        if task in done:
            return task.result()

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.debug("Cancelled operation finished with %r", exc)
        raise RunCancelled(self.reason or "cancelled")
