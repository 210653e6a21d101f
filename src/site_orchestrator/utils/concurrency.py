"""Fan-out helpers for running one hook across many plugins inside a phase."""

from __future__ import annotations

import asyncio
import inspect
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Sequence

T = TypeVar("T")


class BoundedSemaphore:
    """``asyncio.Semaphore`` that also reports how many permits were ever held at once."""

    def __init__(self, limit: int) -> None:
        if limit <= 0:
            raise ValueError("limit must be > 0")
        self.limit = limit
        self.in_use = 0
        self.peak = 0
        self._permits = asyncio.Semaphore(limit)

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[None]:
        async with self._permits:
            self.in_use += 1
            self.peak = max(self.peak, self.in_use)
            try:
                yield
            finally:
                self.in_use -= 1


@dataclass(frozen=True, slots=True)
class Settled(Generic[T]):
    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def gather_settled(
    awaitables: Sequence[Awaitable[T]], *, max_concurrency: int
) -> list[Settled[T]]:
    """Await everything, at most ``max_concurrency`` at a time.

    Results come back in input order. One failure never cancels the others;
    cancelling the caller still cancels all of them.
    """

    semaphore = BoundedSemaphore(max_concurrency)

    async def settle(awaitable: Awaitable[T]) -> Settled[T]:
        async with semaphore.permit():
            try:
                return Settled(value=await awaitable)
            except Exception as exc:
                return Settled(error=exc)

    return list(await asyncio.gather(*map(settle, awaitables)))


async def run_with_timeout(awaitable: Awaitable[T], timeout_seconds: float) -> T:
    """Await ``awaitable``, cancelling it and raising ``TimeoutError`` after the deadline."""

    if timeout_seconds <= 0:
        if inspect.iscoroutine(awaitable):
            # Never scheduled; close it so it is not reported as never awaited.
            awaitable.close()
        raise ValueError("timeout_seconds must be > 0")
    try:
        async with asyncio.timeout(timeout_seconds):
            return await awaitable
    except TimeoutError:
        raise TimeoutError(f"timed out after {timeout_seconds} seconds") from None


__all__ = [
    "BoundedSemaphore",
    "Settled",
    "gather_settled",
    "run_with_timeout",
]
