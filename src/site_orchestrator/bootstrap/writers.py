"""
site-orchestrator — generated-file writers

Purpose
- Produce every file the bootstrap sequence writes into the cache and public directories.

What should be included in this file
- Stale public artifact pruning.
- Runtime template copy plus ``fragments/`` and ``json/`` preparation.
- Browser and SSR plugin manifests.
- ``sync-requires.json``, ``match-paths.json`` and ``redirects.json``.

Functional requirements
- Manifests list plugins in descriptor order with their options; unchanged inputs
  yield byte-identical files.
- Failures on required files raise ``FileIOError``.
"""

from __future__ import annotations

import json
import os
import pprint
import shutil
from collections.abc import Iterable, Sequence
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any, Final

from site_orchestrator.constants import (
    BROWSER_PLUGINS_MANIFEST,
    FRAGMENTS_DIR,
    JSON_DIR,
    MATCH_PATHS_FILE,
    PLUGIN_BROWSER_MODULE,
    PLUGIN_SSR_MODULE,
    REDIRECTS_FILE,
    SSR_RUNNER_FILE,
    SYNC_REQUIRES_FILE,
)
from site_orchestrator.domain.errors import FileIOError
from site_orchestrator.domain.models import PageDefinition, PluginDescriptor, Redirect
from site_orchestrator.utils.fs import atomic_write, empty_directory, prune_files

STALE_ARTIFACT_SUFFIXES: Final[tuple[str, ...]] = (".html", ".css")
PRESERVED_PUBLIC_DIRS: Final[tuple[str, ...]] = ("page-data", "static")

# Route ranking weights for match paths; higher scores match first.
_SEGMENT_POINTS: Final[int] = 4
_STATIC_POINTS: Final[int] = 3
_DYNAMIC_POINTS: Final[int] = 2
_SPLAT_PENALTY: Final[int] = 1
_ROOT_POINTS: Final[int] = 1


def bundled_runtime_dir() -> Traversable:
    return resources.files("site_orchestrator") / "runtime"


def delete_stale_artifacts(public_dir: str | Path) -> list[str]:
    """Remove html/css build output except under ``page-data/`` and ``static/``."""

    return prune_files(
        public_dir,
        suffixes=STALE_ARTIFACT_SUFFIXES,
        keep_prefixes=PRESERVED_PUBLIC_DIRS,
    )


def copy_runtime_files(cache_dir: str | Path, runtime_dir: str | Path | None = None) -> None:
    """Copy runtime templates into ``cache_dir`` and reset ``fragments/``."""

    target = Path(cache_dir)
    try:
        target.mkdir(parents=True, exist_ok=True)
        if runtime_dir:
            _copy_tree(Path(runtime_dir), target)
        else:
            with resources.as_file(bundled_runtime_dir()) as bundled:
                _copy_tree(Path(bundled), target)
        empty_directory(target / FRAGMENTS_DIR)
        (target / JSON_DIR).mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileIOError(f"unable to copy runtime files into {target}: {exc}") from exc


def browser_plugin_entries(
    plugins: Sequence[PluginDescriptor], cache_dir: str | Path
) -> list[dict[str, Any]]:
    """Plugins with a browser module, as paths relative to ``cache_dir``.

    A plugin shipping ``site_browser.py`` is always included even without
    declared browser hooks.
    """

    entries: list[dict[str, Any]] = []
    for plugin in plugins:
        module = Path(plugin.resolved_path) / PLUGIN_BROWSER_MODULE
        if not plugin.browser_hooks and not module.with_suffix(".py").is_file():
            continue
        relative = os.path.relpath(module, Path(cache_dir))
        entries.append({"plugin": Path(relative).as_posix(), "options": dict(plugin.options)})
    return entries


def ssr_plugin_entries(plugins: Sequence[PluginDescriptor]) -> list[dict[str, Any]]:
    entries: list[dict[str, Any]] = []
    for plugin in plugins:
        if plugin.skip_ssr or not plugin.ssr_hooks:
            continue
        module = Path(plugin.resolved_path) / PLUGIN_SSR_MODULE
        entries.append({"plugin": module.as_posix(), "options": dict(plugin.options)})
    return entries


def write_browser_manifest(plugins: Sequence[PluginDescriptor], cache_dir: str | Path) -> Path:
    path = Path(cache_dir) / BROWSER_PLUGINS_MANIFEST
    _write_required(path, _json_text(browser_plugin_entries(plugins, cache_dir)))
    return path


def write_ssr_runner(plugins: Sequence[PluginDescriptor], cache_dir: str | Path) -> Path:
    """Prefix the copied SSR runner template with the SSR plugin list."""

    path = Path(cache_dir) / SSR_RUNNER_FILE
    try:
        template = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FileIOError(f"failed to read {path}: {exc}") from exc

    plugins_literal = pprint.pformat(ssr_plugin_entries(plugins), sort_dicts=False, width=88)
    _write_required(path, f"PLUGINS = {plugins_literal}\n{template}")
    return path


def rank_match_path(match_path: str) -> int:
    score = 0
    for segment in match_path.strip("/").split("/"):
        score += _SEGMENT_POINTS
        if segment == "":
            score += _ROOT_POINTS
        elif segment.startswith(":"):
            score += _DYNAMIC_POINTS
        elif segment.startswith("*"):
            score -= _SEGMENT_POINTS + _SPLAT_PENALTY
        else:
            score += _STATIC_POINTS
    return score


def match_path_entries(pages: Iterable[PageDefinition]) -> list[dict[str, str]]:
    """Client-only routes, most specific first; ties keep page order."""

    ranked = [
        (rank_match_path(page.match_path), index, page)
        for index, page in enumerate(pages)
        if page.match_path and page.match_path != page.path
    ]
    ranked.sort(key=lambda item: (-item[0], item[1]))
    return [{"path": page.path, "match_path": str(page.match_path)} for _, _, page in ranked]


def write_requires(pages: Sequence[PageDefinition], cache_dir: str | Path) -> tuple[Path, Path]:
    """Write the component map and the match-path list for the runtime."""

    components: dict[str, str] = {}
    for page in pages:
        claimed = components.setdefault(page.component_chunk_name, page.component)
        if claimed != page.component:
            raise FileIOError(
                f"chunk name {page.component_chunk_name!r} is shared by "
                f"{claimed!r} and {page.component!r}"
            )
    requires_path = Path(cache_dir) / SYNC_REQUIRES_FILE
    match_paths_path = Path(cache_dir) / MATCH_PATHS_FILE
    _write_required(
        requires_path,
        _json_text({"components": dict(sorted(components.items()))}),
    )
    _write_required(match_paths_path, _json_text(match_path_entries(pages)))
    return requires_path, match_paths_path


def write_redirects(redirects: Sequence[Redirect], cache_dir: str | Path) -> Path:
    path = Path(cache_dir) / REDIRECTS_FILE
    browser_redirects = [item.to_dict() for item in redirects if item.redirect_in_browser]
    _write_required(
        path,
        _json_text({"redirects": [item.to_dict() for item in redirects], "browser": browser_redirects}),
    )
    return path


def _json_text(payload: object) -> str:
    return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def _write_required(path: Path, text: str) -> None:
    try:
        atomic_write(path, text)
    except OSError as exc:
        raise FileIOError(f"failed to write {path}: {exc}") from exc


def _copy_tree(source: Path, target: Path) -> None:
    if not source.is_dir():
        raise FileNotFoundError(f"runtime directory {source} does not exist")
    shutil.copytree(
        source,
        target,
        dirs_exist_ok=True,
        ignore=shutil.ignore_patterns("__pycache__", "*.pyc"),
    )


__all__ = [
    "PRESERVED_PUBLIC_DIRS",
    "STALE_ARTIFACT_SUFFIXES",
    "browser_plugin_entries",
    "bundled_runtime_dir",
    "copy_runtime_files",
    "delete_stale_artifacts",
    "match_path_entries",
    "rank_match_path",
    "ssr_plugin_entries",
    "write_browser_manifest",
    "write_redirects",
    "write_requires",
    "write_ssr_runner",
]
