"""Core build domain records: plugins, phases, pages, redirects and results."""

from __future__ import annotations

import hashlib
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import PurePosixPath, PureWindowsPath
from types import MappingProxyType
from typing import Any

_CHUNK_NAME_UNSAFE = re.compile(r"[^a-zA-Z0-9_]+")
CHUNK_DIGEST_LENGTH = 8


def _frozen_mapping(value: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(value or {}))


@dataclass(frozen=True, slots=True)
class PluginDescriptor:
    """Resolved plugin entry from the site config; immutable for one run."""

    name: str
    version: str
    resolved_path: str
    options: Mapping[str, Any] = field(default_factory=dict)
    declared_hooks: tuple[str, ...] = ()
    ssr_hooks: tuple[str, ...] = ()
    browser_hooks: tuple[str, ...] = ()
    skip_ssr: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("plugin name must be a non-empty string")
        if not isinstance(self.version, str):
            raise ValueError(f"plugin {self.name!r}: version must be a string")
        object.__setattr__(self, "options", _frozen_mapping(self.options))
        object.__setattr__(self, "declared_hooks", tuple(self.declared_hooks))
        object.__setattr__(self, "ssr_hooks", tuple(self.ssr_hooks))
        object.__setattr__(self, "browser_hooks", tuple(self.browser_hooks))

    @property
    def identity(self) -> str:
        return f"{self.name}@{self.version}"

    def declares(self, hook_name: str) -> bool:
        return hook_name in self.declared_hooks


@dataclass(frozen=True, slots=True)
class BuildPhase:
    """One ordered stage of the bootstrap sequence."""

    name: str
    extension_point: str | None = None
    optional: bool = False
    cascading: bool = False


class PhaseStatus(StrEnum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class PhaseOutcome:
    """Recorded result of a single phase execution."""

    name: str
    status: PhaseStatus
    duration_seconds: float
    failures: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PageDefinition:
    """A routable page keyed by its normalized path."""

    path: str
    component: str
    context: Mapping[str, Any] = field(default_factory=dict)
    match_path: str | None = None
    owner: str = ""
    component_chunk_name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "context", _frozen_mapping(self.context))
        if not self.component_chunk_name:
            object.__setattr__(
                self, "component_chunk_name", component_chunk_name(self.component)
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "component": self.component,
            "context": dict(self.context),
            "match_path": self.match_path,
            "owner": self.owner,
            "component_chunk_name": self.component_chunk_name,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PageDefinition:
        return cls(
            path=str(data["path"]),
            component=str(data["component"]),
            context=dict(data.get("context") or {}),
            match_path=data.get("match_path"),
            owner=str(data.get("owner") or ""),
            component_chunk_name=str(data.get("component_chunk_name") or ""),
        )


@dataclass(frozen=True, slots=True)
class Redirect:
    from_path: str
    to_path: str
    is_permanent: bool = False
    redirect_in_browser: bool = False
    owner: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "from_path": self.from_path,
            "to_path": self.to_path,
            "is_permanent": self.is_permanent,
            "redirect_in_browser": self.redirect_in_browser,
        }


@dataclass(frozen=True, slots=True)
class BuildResult:
    """Handle passed to later query-execution stages."""

    run_id: str
    site_directory: str
    pages: tuple[PageDefinition, ...]
    extensions: tuple[str, ...]
    fingerprint: str
    cache_wiped: bool
    phases: tuple[PhaseOutcome, ...]
    hook_failures: tuple[str, ...] = ()

    @property
    def phase_names(self) -> tuple[str, ...]:
        return tuple(outcome.name for outcome in self.phases)


def is_absolute_component(component: str) -> bool:
    """Accept POSIX and Windows absolute paths."""

    return PurePosixPath(component).is_absolute() or PureWindowsPath(component).is_absolute()


def component_chunk_name(component: str) -> str:
    """Derive a stable bundle chunk name from a component path.

    The readable slug is lossy (case, separators), so a digest of the path is appended.
    """

    stem = component.replace("\\", "/").strip("/")
    slug = _CHUNK_NAME_UNSAFE.sub("-", stem).strip("-").lower() or "index"
    digest = hashlib.sha256(stem.encode("utf-8")).hexdigest()[:CHUNK_DIGEST_LENGTH]
    return f"component---{slug}-{digest}"


__all__ = [
    "BuildPhase",
    "BuildResult",
    "PageDefinition",
    "PhaseOutcome",
    "PhaseStatus",
    "PluginDescriptor",
    "Redirect",
    "component_chunk_name",
    "is_absolute_component",
]
