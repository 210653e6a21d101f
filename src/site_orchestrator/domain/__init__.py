"""
site-orchestrator — domain layer

Purpose
- Domain types shared across the orchestrator: plugins, phases, pages, events, errors.

Functional requirements
- Domain objects are immutable where they cross phase boundaries.

Non-functional requirements
- Domain layer is free of IO side effects.
"""

from site_orchestrator.domain.errors import (
    BuildFailedError,
    CacheMaintenanceError,
    CascadeLimitError,
    ConfigurationError,
    ConfigurationIssue,
    FileIOError,
    HookExecutionError,
    PageValidationCode,
    PageValidationError,
    SiteOrchestratorError,
    is_fatal,
)
from site_orchestrator.domain.events import BuildEvent, EventType
from site_orchestrator.domain.models import (
    BuildPhase,
    BuildResult,
    PageDefinition,
    PhaseOutcome,
    PhaseStatus,
    PluginDescriptor,
    Redirect,
)

__all__ = [
    "BuildEvent",
    "BuildFailedError",
    "BuildPhase",
    "BuildResult",
    "CacheMaintenanceError",
    "CascadeLimitError",
    "ConfigurationError",
    "ConfigurationIssue",
    "EventType",
    "FileIOError",
    "HookExecutionError",
    "PageDefinition",
    "PageValidationCode",
    "PageValidationError",
    "PhaseOutcome",
    "PhaseStatus",
    "PluginDescriptor",
    "Redirect",
    "SiteOrchestratorError",
    "is_fatal",
]
