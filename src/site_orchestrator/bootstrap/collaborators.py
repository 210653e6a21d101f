"""Injected services the orchestrator calls but does not implement.

Schema construction and query extraction live outside this package. The
defaults do nothing so a build without them still completes every phase.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from site_orchestrator.domain.models import PluginDescriptor
from site_orchestrator.plugins.loader import FilePluginLoader, resolve_descriptors
from site_orchestrator.plugins.runner import LoadedPlugin, PagesView


@dataclass(frozen=True, slots=True)
class StageContext:
    """Read-only view of the run handed to collaborator stages."""

    site_directory: Path
    config: Mapping[str, Any]
    plugins: tuple[PluginDescriptor, ...]
    pages: PagesView


Stage = Callable[[StageContext], Any]
DescriptorResolver = Callable[..., Sequence[PluginDescriptor]]
PluginLoader = Callable[[Sequence[PluginDescriptor]], Sequence[LoadedPlugin]]


def noop_stage(context: StageContext) -> None:
    return None


@dataclass(frozen=True, slots=True)
class Collaborators:
    resolve_descriptors: DescriptorResolver = resolve_descriptors
    load_plugins: PluginLoader = field(default_factory=FilePluginLoader)
    build_schema: Stage = noop_stage
    rebuild_schema: Stage = noop_stage
    extract_queries: Stage = noop_stage


async def run_stage(stage: Stage, context: StageContext) -> Any:
    result = stage(context)
    if inspect.isawaitable(result):
        result = await result
    return result


__all__ = [
    "Collaborators",
    "DescriptorResolver",
    "PluginLoader",
    "Stage",
    "StageContext",
    "noop_stage",
    "run_stage",
]
