"""Stable constants shared across the build orchestrator."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Final

# Schema versions for persisted contracts.
CONFIG_SCHEMA_VERSION: Final[int] = 1
BUILD_STATE_SCHEMA_VERSION: Final[int] = 1

# Default site-relative paths (overridable through ``[paths]``).
DEFAULT_CONFIG_FILE: Final[str] = "site.toml"
CACHE_DIR: Final[PurePosixPath] = PurePosixPath(".cache")
PUBLIC_DIR: Final[PurePosixPath] = PurePosixPath("public")
LOG_DIR: Final[PurePosixPath] = PurePosixPath(".site-logs")

# Files written into the cache directory.
BUILD_STATE_FILE: Final[str] = "build-state.json"
BROWSER_PLUGINS_MANIFEST: Final[str] = "api-runner-browser-plugins.json"
SSR_RUNNER_FILE: Final[str] = "api_runner_ssr.py"
SYNC_REQUIRES_FILE: Final[str] = "sync-requires.json"
MATCH_PATHS_FILE: Final[str] = "match-paths.json"
REDIRECTS_FILE: Final[str] = "redirects.json"
FRAGMENTS_DIR: Final[str] = "fragments"
JSON_DIR: Final[str] = "json"

# Plugin module file names resolved relative to a plugin's directory.
PLUGIN_NODE_MODULE: Final[str] = "site_node.py"
PLUGIN_BROWSER_MODULE: Final[str] = "site_browser"
PLUGIN_SSR_MODULE: Final[str] = "site_ssr"

# Config files whose content participates in the cache fingerprint.
DEFAULT_WATCHED_FILES: Final[tuple[str, ...]] = ("package.json", "site.toml", "site_node.py")

DEFAULT_RESOLVABLE_EXTENSIONS: Final[tuple[str, ...]] = (".mjs", ".js", ".jsx", ".wasm", ".json")

# Context keys that would shadow page fields downstream.
RESERVED_CONTEXT_KEYS: Final[tuple[str, ...]] = (
    "path",
    "matchPath",
    "component",
    "componentChunkName",
    "pluginCreatorId",
    "pluginCreator___NODE",
)

__all__ = [
    "BROWSER_PLUGINS_MANIFEST",
    "BUILD_STATE_FILE",
    "BUILD_STATE_SCHEMA_VERSION",
    "CACHE_DIR",
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_RESOLVABLE_EXTENSIONS",
    "DEFAULT_WATCHED_FILES",
    "FRAGMENTS_DIR",
    "JSON_DIR",
    "LOG_DIR",
    "MATCH_PATHS_FILE",
    "PLUGIN_BROWSER_MODULE",
    "PLUGIN_NODE_MODULE",
    "PLUGIN_SSR_MODULE",
    "PUBLIC_DIR",
    "REDIRECTS_FILE",
    "RESERVED_CONTEXT_KEYS",
    "SSR_RUNNER_FILE",
    "SYNC_REQUIRES_FILE",
]
