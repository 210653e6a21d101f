"""
site-orchestrator — file-based plugin loader

Purpose
- Turn validated ``[[plugins]]`` entries into descriptors and descriptors into
  loaded plugins with handler tables.

What should be included in this file
- Resolution of a plugin directory relative to the site (``<resolve>`` or ``plugins/<name>``).
- Content-hash versions for local plugins that do not declare one.
- The implicit site plugin backed by the site's own ``site_node.py``.
- Import of ``site_node.py`` by file location, binding only declared hooks.

Functional requirements
- A declared hook without a matching callable is a load error.
- Descriptor order follows config order; the site plugin is always last.
"""

from __future__ import annotations

import ast
import importlib.util
import re
from collections.abc import Mapping, Sequence
from pathlib import Path
from types import ModuleType
from typing import Any

import structlog

from site_orchestrator.constants import PLUGIN_NODE_MODULE
from site_orchestrator.domain.errors import SiteOrchestratorError
from site_orchestrator.domain.models import PluginDescriptor
from site_orchestrator.plugins.hooks import NODE_HOOKS
from site_orchestrator.plugins.runner import Handler, LoadedPlugin
from site_orchestrator.utils.hashing import sha256_file_if_exists

logger = structlog.get_logger(__name__)

SITE_PLUGIN_NAME = "default-site-plugin"
_MODULE_NAME_UNSAFE = re.compile(r"[^0-9a-zA-Z_]+")


class PluginLoadError(SiteOrchestratorError):
    """A configured plugin could not be resolved or imported."""

    fatal = True


def resolve_descriptors(
    entries: Sequence[Mapping[str, Any]],
    *,
    site_directory: str | Path,
    include_site_plugin: bool = True,
) -> tuple[PluginDescriptor, ...]:
    """Build descriptors from validated plugin entries, plus the site plugin when present."""

    site_root = Path(site_directory)
    descriptors: list[PluginDescriptor] = []
    seen: set[str] = set()
    for entry in entries:
        name = str(entry["name"])
        if name in seen:
            raise PluginLoadError(f"plugin {name!r} is configured more than once")
        seen.add(name)
        plugin_dir = _resolve_plugin_dir(site_root, str(entry.get("resolve") or name), name)
        descriptors.append(
            PluginDescriptor(
                name=name,
                version=str(entry.get("version") or "") or _content_version(plugin_dir),
                resolved_path=plugin_dir.as_posix(),
                options=dict(entry.get("options") or {}),
                declared_hooks=tuple(entry.get("hooks") or ()),
                ssr_hooks=tuple(entry.get("ssr_hooks") or ()),
                browser_hooks=tuple(entry.get("browser_hooks") or ()),
                skip_ssr=bool(entry.get("skip_ssr", False)),
            )
        )

    site_module = site_root / PLUGIN_NODE_MODULE
    if include_site_plugin and site_module.is_file() and SITE_PLUGIN_NAME not in seen:
        descriptors.append(
            PluginDescriptor(
                name=SITE_PLUGIN_NAME,
                version=_content_version(site_root),
                resolved_path=site_root.as_posix(),
                declared_hooks=discover_hooks(site_module),
            )
        )
    return tuple(descriptors)


def discover_hooks(module_path: str | Path) -> tuple[str, ...]:
    """Return known hook names defined at module top level, without importing it."""

    path = Path(module_path)
    try:
        tree = ast.parse(path.read_text(encoding="utf-8"), filename=str(path))
    except (OSError, SyntaxError) as exc:
        raise PluginLoadError(f"unable to read {path}: {exc}") from exc
    found = {
        node.name
        for node in tree.body
        if isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) and node.name in NODE_HOOKS
    }
    return tuple(sorted(found))


def load_plugin(descriptor: PluginDescriptor) -> LoadedPlugin:
    if not descriptor.declared_hooks:
        return LoadedPlugin(descriptor=descriptor)

    module_path = Path(descriptor.resolved_path) / PLUGIN_NODE_MODULE
    module = _import_module(descriptor.name, module_path)
    handlers: dict[str, Handler] = {}
    for hook in descriptor.declared_hooks:
        handler = getattr(module, hook, None)
        if not callable(handler):
            raise PluginLoadError(
                f"plugin {descriptor.name!r} declares {hook!r} but {module_path} defines no callable"
            )
        handlers[hook] = handler
    return LoadedPlugin(descriptor=descriptor, handlers=handlers)


class FilePluginLoader:
    """Default loader used by the orchestrator's load-plugins phase."""

    def __call__(self, descriptors: Sequence[PluginDescriptor]) -> tuple[LoadedPlugin, ...]:
        loaded = tuple(load_plugin(descriptor) for descriptor in descriptors)
        for plugin in loaded:
            logger.debug(
                "plugin_loaded",
                plugin=plugin.descriptor.identity,
                hooks=sorted(plugin.handlers),
            )
        return loaded


def _resolve_plugin_dir(site_root: Path, resolve: str, name: str) -> Path:
    candidate = Path(resolve).expanduser()
    if candidate.is_absolute():
        if candidate.is_dir():
            return candidate
        raise PluginLoadError(f"plugin {name!r}: directory {candidate} does not exist")
    for option in (site_root / candidate, site_root / "plugins" / name):
        if option.is_dir():
            return option.resolve()
    raise PluginLoadError(
        f"plugin {name!r}: unable to find {resolve!r} in {site_root} or {site_root / 'plugins'}"
    )


def _content_version(plugin_dir: Path) -> str:
    digest = sha256_file_if_exists(plugin_dir / PLUGIN_NODE_MODULE)
    return digest[:16] if digest else "0.0.0"


def _import_module(plugin_name: str, module_path: Path) -> ModuleType:
    module_name = "site_plugins." + _MODULE_NAME_UNSAFE.sub("_", plugin_name)
    spec = importlib.util.spec_from_file_location(module_name, module_path)
    if spec is None or spec.loader is None:
        raise PluginLoadError(f"plugin {plugin_name!r}: cannot import {module_path}")
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as exc:
        raise PluginLoadError(f"plugin {plugin_name!r}: importing {module_path} failed: {exc}") from exc
    return module


__all__ = [
    "SITE_PLUGIN_NAME",
    "FilePluginLoader",
    "PluginLoadError",
    "discover_hooks",
    "load_plugin",
    "resolve_descriptors",
]
