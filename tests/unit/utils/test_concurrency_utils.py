"""Regression tests for hook fan-out concurrency helpers."""

from __future__ import annotations

import asyncio
import gc
import sys
import warnings
from collections.abc import Iterator
from contextlib import contextmanager

import pytest

from site_orchestrator.utils.concurrency import (
    BoundedSemaphore,
    gather_settled,
    run_with_timeout,
)


@contextmanager
def _capture_unraisable() -> Iterator[list[object]]:
    captured: list[object] = []
    original = sys.unraisablehook
    sys.unraisablehook = captured.append
    try:
        yield captured
    finally:
        sys.unraisablehook = original


async def _slow(value: int = 1, delay: float = 0.01) -> int:
    await asyncio.sleep(delay)
    return value


async def _fail(message: str) -> int:
    await asyncio.sleep(0)
    raise RuntimeError(message)


async def test_gather_settled_keeps_input_order_and_isolates_failures() -> None:
    settled = await gather_settled(
        [_slow(1, 0.03), _fail("boom"), _slow(3, 0.0)], max_concurrency=3
    )

    assert [item.ok for item in settled] == [True, False, True]
    assert settled[0].value == 1
    assert settled[2].value == 3
    assert str(settled[1].error) == "boom"


async def test_gather_settled_with_nothing_to_do() -> None:
    assert await gather_settled([], max_concurrency=1) == []


async def test_bounded_semaphore_tracks_peak_usage() -> None:
    semaphore = BoundedSemaphore(2)

    async def hold() -> None:
        async with semaphore.permit():
            await asyncio.sleep(0.01)

    await asyncio.gather(*(hold() for _ in range(5)))

    assert semaphore.peak == 2
    assert semaphore.in_use == 0


def test_bounded_semaphore_rejects_non_positive_limit() -> None:
    with pytest.raises(ValueError):
        BoundedSemaphore(0)


async def test_run_with_timeout_returns_value_in_time() -> None:
    assert await run_with_timeout(_slow(7), 1.0) == 7


async def test_run_with_timeout_timeout_path_does_not_leak_coroutine() -> None:
    with _capture_unraisable() as leaked, warnings.catch_warnings():
        warnings.simplefilter("error", RuntimeWarning)
        with pytest.raises(TimeoutError, match="timed out after"):
            await run_with_timeout(_slow(delay=0.05), 0.001)
        gc.collect()

    assert leaked == []


async def test_run_with_timeout_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError):
        await run_with_timeout(_slow(), 0)


async def test_rejected_timeout_closes_the_unscheduled_coroutine() -> None:
    with _capture_unraisable() as leaked, warnings.catch_warnings():
        warnings.simplefilter("error", RuntimeWarning)
        with pytest.raises(ValueError):
            await run_with_timeout(_slow(), -1)
        gc.collect()

    assert leaked == []
