"""
site-orchestrator — site config loader.

Purpose
- Build the effective site config for one run.

Layers, lowest to highest
- built-in defaults
- ``site.toml`` in the site directory (or an explicit file)
- ``SITE_<SECTION>_<KEY>`` environment variables
- dotted-key overrides passed by the CLI or a caller

Only scalar keys of the ``build``, ``paths``, ``cache`` and ``observability``
sections can be set from the environment; each value is coerced to the type of
the key's default. Relative paths resolve against the site directory.
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import Any, Final

import structlog

from site_orchestrator.config.schema import (
    PATH_FIELDS,
    default_config,
    merge_config,
    validate_config,
)
from site_orchestrator.constants import DEFAULT_CONFIG_FILE
from site_orchestrator.domain.errors import ConfigurationError

ENV_PREFIX: Final[str] = "SITE_"
ENV_SECTIONS: Final[tuple[str, ...]] = ("build", "paths", "cache", "observability")

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSY: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})

logger = structlog.get_logger(__name__)


class ConfigLoadError(ConfigurationError):
    """The config file could not be read or an override could not be applied."""


def load_config(
    site_directory: str | Path,
    *,
    config_path: str | Path | None = None,
    overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the validated, path-normalized config for ``site_directory``."""

    site_root = Path(site_directory).expanduser().resolve()
    if config_path is None:
        source, required = site_root / DEFAULT_CONFIG_FILE, False
    else:
        source, required = Path(config_path).expanduser().resolve(), True

    layered = default_config()
    for layer in (
        _read_toml(source, required=required),
        _environment_layer(os.environ if environ is None else environ),
        _dotted_layer(overrides or {}),
    ):
        layered = merge_config(layered, layer)

    result = validate_config(layered)
    for warning in result.warnings:
        logger.warning("site_config_deprecated_key", detail=warning, config_path=str(source))
    if result.config is None:
        raise ConfigurationError(result.issues)
    return normalize_paths(result.config, base_dir=site_root)


def normalize_paths(config: Mapping[str, object], *, base_dir: Path) -> dict[str, Any]:
    """Copy ``config`` with every non-empty path field made absolute under ``base_dir``."""

    normalized = merge_config({}, config)
    for section, key in PATH_FIELDS:
        table = normalized.get(section)
        if isinstance(table, dict) and isinstance(table.get(key), str) and table[key]:
            table[key] = _absolute(table[key], base_dir)
    return normalized


def dump_effective_config(config: Mapping[str, object]) -> str:
    return json.dumps(config, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _read_toml(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.is_file():
        if required:
            raise ConfigLoadError(f"config file not found: {path}")
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigLoadError(f"invalid TOML in {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"unable to read config file {path}: {exc}") from exc


def _environment_layer(environ: Mapping[str, str]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for section, key, default in _env_bound_keys():
        name = f"{ENV_PREFIX}{section.upper()}_{key.upper()}"
        raw = environ.get(name)
        if raw is None:
            continue
        coerce = _COERCERS[type(default)]
        try:
            value = coerce(raw.strip())
        except ValueError as exc:
            raise ConfigLoadError(f"{name} -> {section}.{key}: {exc}") from exc
        layer.setdefault(section, {})[key] = value
    return layer


def _env_bound_keys() -> Iterator[tuple[str, str, object]]:
    defaults = default_config()
    for section in ENV_SECTIONS:
        table = defaults.get(section, {})
        for key in sorted(table):
            if type(table[key]) in _COERCERS:
                yield section, key, table[key]


def _dotted_layer(overrides: Mapping[str, object]) -> dict[str, Any]:
    layer: dict[str, Any] = {}
    for dotted in sorted(overrides):
        *parents, leaf = [part for part in dotted.split(".") if part] or [""]
        if not leaf:
            raise ConfigLoadError(f"invalid override key {dotted!r}")
        cursor = layer
        for part in parents:
            child = cursor.get(part)
            if not isinstance(child, dict):
                child = cursor[part] = {}
            cursor = child
        cursor[leaf] = overrides[dotted]
    return layer


def _as_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    raise ValueError(f"expected a boolean (true/false/1/0/yes/no/on/off), got {raw!r}")


def _as_int(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"expected an integer, got {raw!r}") from None


def _as_float(raw: str) -> float:
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"expected a number, got {raw!r}") from None


_COERCERS: Final[dict[type, Callable[[str], object]]] = {
    bool: _as_bool,
    int: _as_int,
    float: _as_float,
    str: str,
}


def _absolute(raw: str, base_dir: Path) -> str:
    candidate = Path(os.path.expandvars(raw)).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return Path(os.path.normpath(candidate)).as_posix()


__all__ = [
    "ENV_PREFIX",
    "ENV_SECTIONS",
    "ConfigLoadError",
    "dump_effective_config",
    "load_config",
    "normalize_paths",
]
