"""Plugin loading and hook fan-out."""

from site_orchestrator.plugins.loader import (
    SITE_PLUGIN_NAME,
    FilePluginLoader,
    PluginLoadError,
    discover_hooks,
    load_plugin,
    resolve_descriptors,
)
from site_orchestrator.plugins.runner import (
    HookContext,
    HookInvocation,
    HookResult,
    HookRunner,
    LoadedPlugin,
    PagesView,
)

__all__ = [
    "SITE_PLUGIN_NAME",
    "FilePluginLoader",
    "HookContext",
    "HookInvocation",
    "HookResult",
    "HookRunner",
    "LoadedPlugin",
    "PagesView",
    "PluginLoadError",
    "discover_hooks",
    "load_plugin",
    "resolve_descriptors",
]
