"""Error taxonomy for build orchestration.

Fatal errors (``ConfigurationError``, ``FileIOError``, ``CascadeLimitError``)
bubble to the run root and stop the build. Everything else is caught at the
phase boundary, logged with phase and plugin identity, and recorded on the
build result.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum


class SiteOrchestratorError(Exception):
    """Base class for all orchestrator errors."""

    fatal: bool = False


@dataclass(frozen=True, slots=True)
class ConfigurationIssue:
    """Single structured configuration failure."""

    path: str
    message: str


class ConfigurationError(SiteOrchestratorError, ValueError):
    """Raised for malformed or disallowed site configuration."""

    fatal = True

    def __init__(self, issues: Sequence[ConfigurationIssue] | str) -> None:
        if isinstance(issues, str):
            issues = (ConfigurationIssue(path="<root>", message=issues),)
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown configuration failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid site config:\n{rendered}")


class PageValidationCode(StrEnum):
    """Reasons a page definition is rejected."""

    MISSING_PATH = "MissingPath"
    MISSING_COMPONENT = "MissingComponent"
    COMPONENT_NOT_ABSOLUTE = "ComponentNotAbsolute"
    RESERVED_CONTEXT_KEY = "ReservedContextKey"
    INVALID_CONTEXT = "InvalidContext"


class PageValidationError(SiteOrchestratorError, ValueError):
    """Raised when a page create request violates the page contract."""

    def __init__(self, code: PageValidationCode, message: str, *, plugin: str | None = None) -> None:
        self.code = code
        self.plugin = plugin
        super().__init__(f"{code.value}: {message}")


class CacheMaintenanceError(SiteOrchestratorError):
    """Fingerprint persistence or cache-directory wipe failed; the run continues."""


class HookExecutionError(SiteOrchestratorError):
    """A plugin hook raised, rejected or timed out."""

    def __init__(self, hook: str, plugin: str, cause: BaseException) -> None:
        self.hook = hook
        self.plugin = plugin
        self.cause = cause
        detail = str(cause).strip() or cause.__class__.__name__
        super().__init__(f"plugin {plugin!r} failed in {hook!r}: {detail}")


class FileIOError(SiteOrchestratorError, OSError):
    """A required generated file could not be read or written."""

    fatal = True


class CascadeLimitError(SiteOrchestratorError):
    """Cascading actions did not settle within the configured number of passes."""

    fatal = True

    def __init__(self, phase: str, passes: int, pending: int) -> None:
        self.phase = phase
        self.passes = passes
        self.pending = pending
        super().__init__(
            f"cascading actions in {phase!r} did not settle after {passes} passes "
            f"({pending} still queued)"
        )


class BuildFailedError(SiteOrchestratorError):
    """Raised by the orchestrator when a fatal phase error aborts the run."""

    fatal = True

    def __init__(self, phase: str, cause: BaseException) -> None:
        self.phase = phase
        self.cause = cause
        detail = str(cause).strip() or cause.__class__.__name__
        super().__init__(f"build failed in phase {phase!r}: {detail}")


def is_fatal(exc: BaseException) -> bool:
    """Return ``True`` when ``exc`` must abort the whole run."""

    return isinstance(exc, SiteOrchestratorError) and exc.fatal


__all__ = [
    "BuildFailedError",
    "CacheMaintenanceError",
    "CascadeLimitError",
    "ConfigurationError",
    "ConfigurationIssue",
    "FileIOError",
    "HookExecutionError",
    "PageValidationCode",
    "PageValidationError",
    "SiteOrchestratorError",
    "is_fatal",
]
