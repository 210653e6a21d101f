"""
site-orchestrator — bootstrap orchestrator

Purpose
- Run the fixed bootstrap phase sequence once per build and hand a ``BuildResult``
  to later stages.

What should be included in this file
- ``BuildOrchestrator.run``: config load, plugin load, cache reconciliation,
  hook phases, generated files, final build-state persistence.
- One trace span per phase under a ``bootstrap`` root span.
- Lifecycle events on the event bus.

Functional requirements
- Phases run strictly one after another in ``PHASES`` order.
- Fatal errors, and any failure of a required phase's own work, abort the run
  with ``BuildFailedError``; hook failures and optional-phase failures are
  recorded and the run continues.
- Every hook phase waits for the action queue to settle before completing.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

import structlog
from opentelemetry.trace import Tracer

from site_orchestrator.bootstrap import phases as names
from site_orchestrator.bootstrap import writers
from site_orchestrator.bootstrap.collaborators import Collaborators, StageContext, run_stage
from site_orchestrator.bootstrap.phases import PHASES
from site_orchestrator.cache import (
    BuildState,
    BuildStateStore,
    CacheFingerprint,
    compute_fingerprint,
    initialize_cache,
)
from site_orchestrator.config import load_config
from site_orchestrator.constants import DEFAULT_RESOLVABLE_EXTENSIONS
from site_orchestrator.domain import ids
from site_orchestrator.domain.errors import (
    BuildFailedError,
    CacheMaintenanceError,
    FileIOError,
    HookExecutionError,
    is_fatal,
)
from site_orchestrator.domain.events import EventType
from site_orchestrator.domain.models import (
    BuildPhase,
    BuildResult,
    PhaseOutcome,
    PhaseStatus,
    PluginDescriptor,
)
from site_orchestrator.observability.events import EventBus
from site_orchestrator.observability.logging import correlation_scope
from site_orchestrator.observability.tracing import ROOT_SPAN_NAME, get_tracer, traced_span
from site_orchestrator.pages import ActionQueue, PageRegistry
from site_orchestrator.plugins.runner import HookInvocation, HookRunner, PagesView

logger = structlog.get_logger(__name__)

PhaseBody = Callable[[BuildPhase], Awaitable[tuple[str, ...]]]


class BuildOrchestrator:
    """Sequences one bootstrap run for a site directory."""

    def __init__(
        self,
        site_directory: str | Path,
        *,
        config_path: str | Path | None = None,
        overrides: Mapping[str, object] | None = None,
        environ: Mapping[str, str] | None = None,
        collaborators: Collaborators | None = None,
        event_bus: EventBus | None = None,
        tracer: Tracer | None = None,
        registry: PageRegistry | None = None,
        run_id: str | None = None,
    ) -> None:
        self.site_directory = Path(site_directory).expanduser().resolve()
        self.config_path = config_path
        self.overrides = dict(overrides or {})
        self.environ = environ
        self.collaborators = collaborators or Collaborators()
        self.event_bus = event_bus or EventBus()
        self.tracer = tracer or get_tracer()
        self.registry = registry if registry is not None else PageRegistry()
        self.actions = ActionQueue(self.registry)
        self.run_id = run_id or ids.generate_run_id()

        self.config: dict[str, Any] = {}
        self.descriptors: tuple[PluginDescriptor, ...] = ()
        self.runner = HookRunner(pages=PagesView(self.registry))
        self.fingerprint: CacheFingerprint | None = None
        self.cache_wiped = False
        self.extensions: tuple[str, ...] = DEFAULT_RESOLVABLE_EXTENSIONS
        self.outcomes: list[PhaseOutcome] = []
        self.hook_failures: list[str] = []

        self._bodies: dict[str, PhaseBody] = {
            names.OPEN_CONFIG: self._open_config,
            names.LOAD_PLUGINS: self._load_plugins,
            names.DELETE_STALE_ARTIFACTS: self._delete_stale_artifacts,
            names.INITIALIZE_CACHE: self._initialize_cache,
            names.COPY_RUNTIME_FILES: self._copy_runtime_files,
            names.BUILD_SCHEMA: self._stage_body("build_schema"),
            names.RESOLVE_EXTENSIONS: self._resolve_extensions,
            names.REBUILD_SCHEMA: self._stage_body("rebuild_schema"),
            names.EXTRACT_QUERIES: self._stage_body("extract_queries"),
            names.WRITE_REQUIRES: self._write_requires,
            names.WRITE_REDIRECTS: self._write_redirects,
        }

    @property
    def cache_dir(self) -> Path:
        return Path(self.config["paths"]["cache_dir"])

    @property
    def public_dir(self) -> Path:
        return Path(self.config["paths"]["public_dir"])

    async def run(self) -> BuildResult:
        """Execute every phase in order and return the result handle.

        Raises ``BuildFailedError`` naming the phase when the run aborts.
        """

        with correlation_scope(run_id=self.run_id):
            logger.info("bootstrap_started", site_directory=str(self.site_directory))
            await self._emit(EventType.RUN_STARTED, {"site_directory": str(self.site_directory)})
            try:
                with traced_span(
                    self.tracer, ROOT_SPAN_NAME, {"site.directory": str(self.site_directory)}
                ):
                    for phase in PHASES:
                        await self._execute(phase)
                    self._persist_build_state()
            except BuildFailedError as exc:
                logger.error("bootstrap_failed", phase=exc.phase, error=str(exc.cause))
                await self._emit(
                    EventType.RUN_FAILED, {"phase": exc.phase, "error": str(exc.cause)}
                )
                raise

            result = self._result()
            logger.info(
                "bootstrap_finished",
                pages=len(result.pages),
                hook_failures=len(result.hook_failures),
                cache_wiped=result.cache_wiped,
            )
            await self._emit(
                EventType.RUN_FINISHED,
                {"pages": len(result.pages), "hook_failures": len(result.hook_failures)},
            )
            return result

    async def _execute(self, phase: BuildPhase) -> None:
        if not self._should_run(phase):
            logger.info("bootstrap_phase_skipped", phase=phase.name)
            self.outcomes.append(PhaseOutcome(phase.name, PhaseStatus.SKIPPED, 0.0))
            return

        body = self._bodies.get(phase.name, self._hook_phase)
        started = time.perf_counter()
        await self._emit(EventType.PHASE_STARTED, {"phase": phase.name})
        attributes = {
            "phase.extension_point": phase.extension_point or "",
            "phase.cascading": phase.cascading,
        }
        with correlation_scope(phase=phase.name):
            try:
                with traced_span(self.tracer, phase.name, attributes):
                    failures = await self._run_body(phase, body)
            except BuildFailedError as exc:
                duration = time.perf_counter() - started
                self.outcomes.append(
                    PhaseOutcome(phase.name, PhaseStatus.FAILED, duration, (str(exc.cause),))
                )
                await self._emit(
                    EventType.PHASE_FAILED, {"phase": phase.name, "error": str(exc.cause)}
                )
                raise

            duration = time.perf_counter() - started
            status = PhaseStatus.DEGRADED if failures else PhaseStatus.COMPLETED
            self.outcomes.append(PhaseOutcome(phase.name, status, duration, failures))
            logger.info(
                "bootstrap_phase_completed",
                phase=phase.name,
                status=status.value,
                duration_seconds=round(duration, 6),
                failures=len(failures),
            )
            await self._emit(
                EventType.PHASE_COMPLETED,
                {"phase": phase.name, "status": status.value, "duration_seconds": duration},
            )

    async def _run_body(self, phase: BuildPhase, body: PhaseBody) -> tuple[str, ...]:
        try:
            return await body(phase)
        except Exception as exc:
            if phase.optional and not is_fatal(exc):
                logger.warning("bootstrap_phase_degraded", phase=phase.name, error=str(exc))
                return (str(exc),)
            raise BuildFailedError(phase.name, exc) from exc

    def _should_run(self, phase: BuildPhase) -> bool:
        if phase.name != names.DELETE_STALE_ARTIFACTS:
            return True
        build = self.config.get("build", {})
        return bool(build.get("production")) and not build.get("page_build_on_data_changes")

    async def _open_config(self, phase: BuildPhase) -> tuple[str, ...]:
        self.config = load_config(
            self.site_directory,
            config_path=self.config_path,
            overrides=self.overrides,
            environ=self.environ,
        )
        return ()

    async def _load_plugins(self, phase: BuildPhase) -> tuple[str, ...]:
        descriptors = self.collaborators.resolve_descriptors(
            self.config.get("plugins", []), site_directory=self.site_directory
        )
        self.descriptors = tuple(descriptors)
        loaded = self.collaborators.load_plugins(self.descriptors)
        build = self.config["build"]
        self.runner = HookRunner(
            loaded,
            max_concurrency=int(build["max_concurrency"]),
            timeout_seconds=float(build["hook_timeout_seconds"]),
            pages=PagesView(self.registry),
        )
        identities = sorted({descriptor.identity for descriptor in self.descriptors})
        logger.info("plugins_loaded", count=len(identities), plugins=identities)
        return ()

    async def _delete_stale_artifacts(self, phase: BuildPhase) -> tuple[str, ...]:
        deleted = writers.delete_stale_artifacts(self.public_dir)
        logger.info("stale_artifacts_deleted", count=len(deleted))
        return ()

    async def _initialize_cache(self, phase: BuildPhase) -> tuple[str, ...]:
        build = self.config["build"]
        self.fingerprint = compute_fingerprint(
            self.descriptors,
            self.config["cache"]["watched_files"],
            page_build_on_data_changes=bool(build["page_build_on_data_changes"]),
            base_dir=self.site_directory,
        )
        outcome = initialize_cache(
            cache_dir=self.cache_dir,
            public_dir=self.public_dir,
            site_root=self.site_directory,
            fingerprint=self.fingerprint,
            reset_listeners=(self.registry.clear, self.actions.reset),
            run_id=self.run_id,
        )
        self.cache_wiped = outcome.decision.wipe
        if outcome.decision.wipe:
            await self._emit(
                EventType.CACHE_INVALIDATED,
                {"previous": outcome.decision.previous, "current": outcome.decision.current},
            )
        elif outcome.previous_state is not None:
            # Pages are rebuilt by plugins every run; the snapshot is informational only.
            logger.info(
                "previous_build_found",
                previous_run_id=outcome.previous_state.run_id,
                previous_pages=len(outcome.previous_state.pages),
            )
        return tuple(str(error) for error in outcome.errors)

    async def _copy_runtime_files(self, phase: BuildPhase) -> tuple[str, ...]:
        runtime_dir = self.config["paths"].get("runtime_dir") or None
        writers.copy_runtime_files(self.cache_dir, runtime_dir)
        writers.write_browser_manifest(self.descriptors, self.cache_dir)
        writers.write_ssr_runner(self.descriptors, self.cache_dir)
        return ()

    async def _resolve_extensions(self, phase: BuildPhase) -> tuple[str, ...]:
        invocation = await self._invoke(phase)
        self.extensions = _dedupe(
            [*DEFAULT_RESOLVABLE_EXTENSIONS, *_flatten(invocation.values)]
        )
        return await self._record_failures(phase, invocation.failures)

    async def _hook_phase(self, phase: BuildPhase) -> tuple[str, ...]:
        if phase.extension_point is None:
            return ()
        invocation = await self._invoke(phase)
        return await self._record_failures(phase, invocation.failures)

    async def _invoke(self, phase: BuildPhase) -> HookInvocation:
        assert phase.extension_point is not None
        invocation = await self.runner.invoke(
            phase.extension_point,
            phase=phase.name,
            bind_actions=self.actions.bind,
        )
        report = await self.actions.drain(
            self.runner,
            phase=phase.name,
            max_passes=int(self.config["build"]["max_cascade_passes"]),
        )
        if phase.cascading:
            logger.info(
                "cascade_settled",
                phase=phase.name,
                passes=report.passes,
                actions=report.actions,
                pages=self.registry.size(),
            )
        return HookInvocation(
            hook=invocation.hook,
            participants=invocation.participants,
            results=invocation.results,
            failures=invocation.failures + report.failures,
        )

    def _stage_body(self, attribute: str) -> PhaseBody:
        async def body(phase: BuildPhase) -> tuple[str, ...]:
            stage = getattr(self.collaborators, attribute)
            await run_stage(stage, self._stage_context())
            return ()

        return body

    async def _write_requires(self, phase: BuildPhase) -> tuple[str, ...]:
        writers.write_requires(self.registry.values(), self.cache_dir)
        return ()

    async def _write_redirects(self, phase: BuildPhase) -> tuple[str, ...]:
        try:
            writers.write_redirects(self.actions.redirects, self.cache_dir)
        except FileIOError as exc:
            logger.warning("redirects_not_written", error=str(exc))
            return (str(exc),)
        return ()

    def _stage_context(self) -> StageContext:
        return StageContext(
            site_directory=self.site_directory,
            config=self.config,
            plugins=self.descriptors,
            pages=PagesView(self.registry),
        )

    async def _record_failures(
        self, phase: BuildPhase, failures: Iterable[HookExecutionError]
    ) -> tuple[str, ...]:
        messages: list[str] = []
        for failure in failures:
            messages.append(str(failure))
            await self._emit(
                EventType.HOOK_FAILED,
                {
                    "phase": phase.name,
                    "hook": failure.hook,
                    "plugin": failure.plugin,
                    "error": str(failure.cause),
                },
            )
        self.hook_failures.extend(messages)
        return tuple(messages)

    def _persist_build_state(self) -> None:
        if self.fingerprint is None:
            return
        state = BuildState(
            fingerprint=self.fingerprint.digest,
            completed=True,
            pages=self.registry.snapshot(),
            run_id=self.run_id,
        )
        try:
            BuildStateStore(self.cache_dir).save(state)
        except CacheMaintenanceError as exc:
            logger.warning("build_state_not_persisted", error=str(exc))

    def _result(self) -> BuildResult:
        return BuildResult(
            run_id=self.run_id,
            site_directory=str(self.site_directory),
            pages=self.registry.snapshot(),
            extensions=self.extensions,
            fingerprint=self.fingerprint.digest if self.fingerprint else "",
            cache_wiped=self.cache_wiped,
            phases=tuple(self.outcomes),
            hook_failures=tuple(self.hook_failures),
        )

    async def _emit(self, event_type: EventType, payload: Mapping[str, object]) -> None:
        await self.event_bus.emit_async(event_type, payload, correlation_id=self.run_id)


def _flatten(values: Iterable[object]) -> list[str]:
    flattened: list[str] = []
    for value in values:
        if value is None:
            continue
        if isinstance(value, str):
            flattened.append(value)
        elif isinstance(value, Iterable):
            flattened.extend(str(item) for item in value)
        else:
            flattened.append(str(value))
    return flattened


def _dedupe(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


__all__ = ["BuildOrchestrator"]
