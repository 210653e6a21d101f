"""
site-orchestrator — unit tests for the hook runner

Purpose
- Validate fan-out of one extension point across plugins.

What this test file should cover
- Non-implementers are skipped; zero implementers is a successful no-op.
- One failing participant never hides the others' results.
- Timeouts, bounded concurrency and result ordering.
"""

from __future__ import annotations

import asyncio

import pytest

from site_orchestrator.domain.errors import HookExecutionError
from site_orchestrator.domain.models import PluginDescriptor
from site_orchestrator.plugins.runner import HookContext, HookRunner, LoadedPlugin


def _plugin(name: str, handlers: dict[str, object], *, options: dict | None = None) -> LoadedPlugin:
    descriptor = PluginDescriptor(
        name=name,
        version="1.0.0",
        resolved_path=f"/plugins/{name}",
        options=options or {},
        declared_hooks=tuple(handlers),
    )
    return LoadedPlugin(descriptor=descriptor, handlers=handlers)  # type: ignore[arg-type]


async def test_zero_implementers_is_empty_success() -> None:
    runner = HookRunner([_plugin("quiet", {})])

    invocation = await runner.invoke("source_nodes", phase="source-nodes")

    assert invocation.ok
    assert invocation.participants == ()
    assert invocation.values == ()


async def test_only_implementers_are_called_in_registration_order() -> None:
    async def slow(ctx: HookContext) -> str:
        await asyncio.sleep(0.02)
        return ctx.plugin.name

    runner = HookRunner(
        [
            _plugin("first", {"create_pages": slow}),
            _plugin("skipped", {"source_nodes": lambda ctx: "nope"}),
            _plugin("second", {"create_pages": lambda ctx: ctx.plugin.name}),
        ]
    )

    invocation = await runner.invoke("create_pages", phase="create-pages")

    assert invocation.participants == ("first", "second")
    assert invocation.values == ("first", "second")


async def test_failure_is_isolated_from_siblings() -> None:
    def boom(ctx: HookContext) -> None:
        raise RuntimeError("kaboom")

    runner = HookRunner(
        [
            _plugin("bad", {"source_nodes": boom}),
            _plugin("good", {"source_nodes": lambda ctx: 42}),
        ]
    )

    invocation = await runner.invoke("source_nodes")

    assert not invocation.ok
    assert invocation.values == (42,)
    failure = invocation.failures[0]
    assert isinstance(failure, HookExecutionError)
    assert failure.plugin == "bad"
    assert failure.hook == "source_nodes"
    assert isinstance(failure.__cause__, RuntimeError)
    assert "kaboom" in str(failure)


async def test_timeout_becomes_hook_failure() -> None:
    async def hang(ctx: HookContext) -> None:
        await asyncio.sleep(5)

    runner = HookRunner(
        [_plugin("slow", {"source_nodes": hang}), _plugin("fast", {"source_nodes": lambda ctx: 1})],
        timeout_seconds=0.05,
    )

    invocation = await runner.invoke("source_nodes")

    assert invocation.values == (1,)
    assert isinstance(invocation.failures[0].cause, TimeoutError)


async def test_concurrency_is_bounded() -> None:
    running = 0
    peak = 0

    async def track(ctx: HookContext) -> None:
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1

    runner = HookRunner(
        [_plugin(f"p{index}", {"source_nodes": track}) for index in range(6)],
        max_concurrency=2,
    )

    invocation = await runner.invoke("source_nodes")

    assert invocation.ok
    assert peak == 2


async def test_exclude_skips_named_plugin() -> None:
    runner = HookRunner(
        [
            _plugin("creator", {"on_create_page": lambda ctx: "creator"}),
            _plugin("other", {"on_create_page": lambda ctx: "other"}),
        ]
    )

    invocation = await runner.invoke("on_create_page", exclude="creator")

    assert invocation.values == ("other",)


async def test_context_carries_options_args_and_bound_actions() -> None:
    captured: list[HookContext] = []
    runner = HookRunner(
        [_plugin("p", {"create_pages": captured.append}, options={"limit": 3})]
    )

    await runner.invoke(
        "create_pages",
        phase="create-pages",
        args={"traceId": "initial"},
        bind_actions=lambda descriptor: f"actions-for-{descriptor.name}",
    )

    ctx = captured[0]
    assert ctx.options["limit"] == 3
    assert ctx.args["traceId"] == "initial"
    assert ctx.actions == "actions-for-p"
    assert ctx.phase == "create-pages"


def test_duplicate_registration_is_rejected() -> None:
    runner = HookRunner([_plugin("p", {})])

    with pytest.raises(ValueError, match="already registered"):
        runner.register(_plugin("p", {}))


def test_declared_hook_without_handler_is_not_an_implementer() -> None:
    descriptor = PluginDescriptor(
        name="p", version="1", resolved_path="/p", declared_hooks=("source_nodes",)
    )
    runner = HookRunner([LoadedPlugin(descriptor=descriptor)])

    assert runner.implementers("source_nodes") == ()
