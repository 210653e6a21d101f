"""
site-orchestrator — plugin hook runner

Purpose
- Invoke one named extension point across every plugin that implements it.

What should be included in this file
- ``LoadedPlugin``: descriptor plus its hook handler table.
- ``HookContext`` passed to each handler.
- ``HookRunner.invoke`` with bounded fan-out, optional per-hook timeout and
  per-participant failure collection.

Functional requirements
- Plugins that do not declare a hook are skipped silently; zero implementers is not an error.
- One participant failing never cancels or blocks the others.
- Results are returned in plugin registration order.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import structlog

from site_orchestrator.domain.errors import HookExecutionError
from site_orchestrator.domain.models import PageDefinition, PluginDescriptor
from site_orchestrator.utils.concurrency import gather_settled, run_with_timeout

logger = structlog.get_logger(__name__)


class PagesView:
    """Read-only window onto the page registry handed to hooks."""

    def __init__(self, source: Any) -> None:
        self._source = source

    def get(self, path: str) -> PageDefinition | None:
        return self._source.get(path)

    def values(self) -> tuple[PageDefinition, ...]:
        return self._source.values()

    def __len__(self) -> int:
        return len(self._source)

    def __contains__(self, path: object) -> bool:
        return path in self._source


@dataclass(frozen=True, slots=True)
class HookContext:
    """Everything a hook handler receives."""

    hook: str
    phase: str
    plugin: PluginDescriptor
    actions: Any = None
    pages: PagesView | None = None
    args: Mapping[str, Any] = field(default_factory=dict)

    @property
    def options(self) -> Mapping[str, Any]:
        return self.plugin.options


Handler = Callable[[HookContext], Any]
ActionBinder = Callable[[PluginDescriptor], Any]


@dataclass(frozen=True, slots=True)
class LoadedPlugin:
    descriptor: PluginDescriptor
    handlers: Mapping[str, Handler] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.descriptor.name

    def implements(self, hook: str) -> bool:
        return self.descriptor.declares(hook) and callable(self.handlers.get(hook))


@dataclass(frozen=True, slots=True)
class HookResult:
    plugin: str
    value: Any


@dataclass(frozen=True, slots=True)
class HookInvocation:
    """Settled outcome of one ``invoke`` call."""

    hook: str
    participants: tuple[str, ...] = ()
    results: tuple[HookResult, ...] = ()
    failures: tuple[HookExecutionError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def values(self) -> tuple[Any, ...]:
        return tuple(result.value for result in self.results)


class HookRunner:
    """Registry of loaded plugins keyed by hook name."""

    def __init__(
        self,
        plugins: Sequence[LoadedPlugin] = (),
        *,
        max_concurrency: int = 8,
        timeout_seconds: float = 0.0,
        pages: PagesView | None = None,
    ) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")
        if timeout_seconds < 0:
            raise ValueError("timeout_seconds must be >= 0")
        self._plugins: list[LoadedPlugin] = []
        self.max_concurrency = max_concurrency
        self.timeout_seconds = timeout_seconds
        self.pages = pages
        for plugin in plugins:
            self.register(plugin)

    @property
    def plugins(self) -> tuple[LoadedPlugin, ...]:
        return tuple(self._plugins)

    def register(self, plugin: LoadedPlugin) -> None:
        if any(existing.name == plugin.name for existing in self._plugins):
            raise ValueError(f"plugin {plugin.name!r} is already registered")
        self._plugins.append(plugin)

    def implementers(self, hook: str) -> tuple[LoadedPlugin, ...]:
        return tuple(plugin for plugin in self._plugins if plugin.implements(hook))

    async def invoke(
        self,
        hook: str,
        *,
        phase: str = "",
        args: Mapping[str, Any] | None = None,
        bind_actions: ActionBinder | None = None,
        exclude: str | None = None,
    ) -> HookInvocation:
        """Run ``hook`` on every implementer and wait for all of them to settle.

        ``exclude`` names a plugin to skip, e.g. the creator of a page for
        ``on_create_page``.
        """

        participants = tuple(
            plugin for plugin in self.implementers(hook) if plugin.name != exclude
        )
        if not participants:
            return HookInvocation(hook=hook)

        frozen_args = MappingProxyType(dict(args or {}))
        calls = [
            self._call(
                plugin,
                HookContext(
                    hook=hook,
                    phase=phase,
                    plugin=plugin.descriptor,
                    actions=bind_actions(plugin.descriptor) if bind_actions else None,
                    pages=self.pages,
                    args=frozen_args,
                ),
            )
            for plugin in participants
        ]
        settled = await gather_settled(calls, max_concurrency=self.max_concurrency)

        results: list[HookResult] = []
        failures: list[HookExecutionError] = []
        for plugin, outcome in zip(participants, settled, strict=True):
            if outcome.ok:
                results.append(HookResult(plugin=plugin.name, value=outcome.value))
                continue
            assert outcome.error is not None
            failure = HookExecutionError(hook, plugin.name, outcome.error)
            failure.__cause__ = outcome.error
            logger.warning(
                "plugin_hook_failed",
                hook=hook,
                phase=phase,
                plugin=plugin.descriptor.identity,
                error=str(failure),
            )
            failures.append(failure)

        return HookInvocation(
            hook=hook,
            participants=tuple(plugin.name for plugin in participants),
            results=tuple(results),
            failures=tuple(failures),
        )

    async def _call(self, plugin: LoadedPlugin, context: HookContext) -> Any:
        if self.timeout_seconds > 0:
            return await run_with_timeout(
                _invoke_handler(plugin.handlers[context.hook], context), self.timeout_seconds
            )
        return await _invoke_handler(plugin.handlers[context.hook], context)


async def _invoke_handler(handler: Handler, context: HookContext) -> Any:
    result = handler(context)
    if inspect.isawaitable(result):
        result = await result
    return result


__all__ = [
    "ActionBinder",
    "Handler",
    "HookContext",
    "HookInvocation",
    "HookResult",
    "HookRunner",
    "LoadedPlugin",
    "PagesView",
]
