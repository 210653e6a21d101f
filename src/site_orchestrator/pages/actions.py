"""Bound plugin actions and the fixed-point drain loop for cascading phases."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import structlog

from site_orchestrator.domain.errors import CascadeLimitError, HookExecutionError
from site_orchestrator.domain.models import PageDefinition, PluginDescriptor, Redirect
from site_orchestrator.pages.registry import PageRegistry, normalize_page_path
from site_orchestrator.plugins.hooks import ON_CREATE_PAGE

if TYPE_CHECKING:
    from site_orchestrator.plugins.runner import HookRunner

logger = structlog.get_logger(__name__)


class ActionKind(StrEnum):
    CREATE_PAGE = "create_page"
    DELETE_PAGE = "delete_page"
    CREATE_REDIRECT = "create_redirect"


@dataclass(frozen=True, slots=True)
class Action:
    kind: ActionKind
    plugin: str
    page: PageDefinition | None = None
    path: str | None = None
    redirect: Redirect | None = None


@dataclass(frozen=True, slots=True)
class CascadeReport:
    passes: int
    actions: int
    failures: tuple[HookExecutionError, ...] = ()


class BoundActions:
    """Actions handed to one plugin's hooks; every call records the plugin as owner."""

    def __init__(self, queue: ActionQueue, plugin: PluginDescriptor) -> None:
        self._queue = queue
        self._plugin = plugin

    def create_page(self, page: Mapping[str, Any]) -> PageDefinition:
        return self._queue.create_page(page, plugin=self._plugin.name)

    def delete_page(self, page: Mapping[str, Any] | str) -> None:
        path = page if isinstance(page, str) else str(page.get("path") or "")
        self._queue.delete_page(path, plugin=self._plugin.name)

    def create_redirect(
        self,
        from_path: str,
        to_path: str,
        *,
        is_permanent: bool = False,
        redirect_in_browser: bool = False,
    ) -> Redirect:
        return self._queue.create_redirect(
            from_path,
            to_path,
            plugin=self._plugin.name,
            is_permanent=is_permanent,
            redirect_in_browser=redirect_in_browser,
        )


class ActionQueue:
    """Applies plugin actions to the registry and queues them for follow-up dispatch.

    Mutations are visible in the registry as soon as the action call returns.
    The queued record is what ``drain`` uses to dispatch ``on_create_page`` to
    the other plugins; those handlers may enqueue further actions.
    """

    def __init__(self, registry: PageRegistry) -> None:
        self.registry = registry
        self._pending: deque[Action] = deque()
        self._redirects: list[Redirect] = []
        self._lock = threading.RLock()

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def redirects(self) -> tuple[Redirect, ...]:
        with self._lock:
            return tuple(self._redirects)

    def bind(self, plugin: PluginDescriptor) -> BoundActions:
        return BoundActions(self, plugin)

    def create_page(self, page_input: Mapping[str, Any], *, plugin: str) -> PageDefinition:
        page = self.registry.create_or_update_page(page_input, plugin)
        self._push(Action(kind=ActionKind.CREATE_PAGE, plugin=plugin, page=page, path=page.path))
        return page

    def delete_page(self, path: str, *, plugin: str) -> None:
        if not path:
            return
        normalized = normalize_page_path(path)
        self.registry.delete_page(normalized)
        self._push(Action(kind=ActionKind.DELETE_PAGE, plugin=plugin, path=normalized))

    def create_redirect(
        self,
        from_path: str,
        to_path: str,
        *,
        plugin: str,
        is_permanent: bool = False,
        redirect_in_browser: bool = False,
    ) -> Redirect:
        if not from_path or not to_path:
            raise ValueError("a redirect needs both from_path and to_path")
        redirect = Redirect(
            from_path=from_path,
            to_path=to_path,
            is_permanent=is_permanent,
            redirect_in_browser=redirect_in_browser,
            owner=plugin,
        )
        with self._lock:
            self._redirects.append(redirect)
        self._push(Action(kind=ActionKind.CREATE_REDIRECT, plugin=plugin, redirect=redirect))
        return redirect

    def take_all(self) -> tuple[Action, ...]:
        with self._lock:
            batch = tuple(self._pending)
            self._pending.clear()
        return batch

    def reset(self) -> None:
        with self._lock:
            self._pending.clear()
            self._redirects.clear()

    async def drain(
        self,
        runner: HookRunner,
        *,
        phase: str,
        max_passes: int,
    ) -> CascadeReport:
        """Dispatch follow-up hooks until a pass queues no new actions.

        Raises ``CascadeLimitError`` when actions are still queued after
        ``max_passes`` passes.
        """

        passes = 0
        processed = 0
        failures: list[HookExecutionError] = []
        while self.pending:
            if passes >= max_passes:
                raise CascadeLimitError(phase, passes, self.pending)
            batch = self.take_all()
            passes += 1
            processed += len(batch)
            for action in batch:
                if action.kind is not ActionKind.CREATE_PAGE or action.page is None:
                    continue
                # Skip pages deleted again within the same pass.
                if self.registry.get(action.page.path) != action.page:
                    continue
                invocation = await runner.invoke(
                    ON_CREATE_PAGE,
                    phase=phase,
                    args={"page": action.page},
                    bind_actions=self.bind,
                    exclude=action.plugin,
                )
                failures.extend(invocation.failures)
            logger.debug(
                "cascade_pass_completed",
                phase=phase,
                cascade_pass=passes,
                actions=len(batch),
                queued=self.pending,
            )
        return CascadeReport(passes=passes, actions=processed, failures=tuple(failures))

    def _push(self, action: Action) -> None:
        with self._lock:
            self._pending.append(action)


__all__ = [
    "Action",
    "ActionKind",
    "ActionQueue",
    "BoundActions",
    "CascadeReport",
]
