"""
site-orchestrator — site configuration schema and validation.

Purpose
- Define authoritative configuration defaults and strict validation rules for ``site.toml``.

What should be included in this file
- Schema versioning and migration guidance.
- Validation rules for required fields, types, enums, and numeric constraints.
- Plugin entry normalization (string shorthand or table form).
- Deterministic deep-merge helpers.

Functional requirements
- Validate config payloads and return structured errors (field path + message).
- Warn about deprecated root keys instead of rejecting them.

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final, Literal, TypedDict

from site_orchestrator.constants import (
    CACHE_DIR,
    CONFIG_SCHEMA_VERSION,
    DEFAULT_WATCHED_FILES,
    LOG_DIR,
    PUBLIC_DIR,
)
from site_orchestrator.domain.errors import ConfigurationIssue

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION

_HOOK_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")

# Root keys accepted for compatibility and reported as warnings.
DEPRECATED_ROOT_KEYS: Final[dict[str, str]] = {
    "experimental_themes": (
        "the 'experimental_themes' key is deprecated; list themes under 'plugins' instead"
    ),
    "polyfill": "custom polyfills are no longer supported; the key is ignored",
}

# Config paths that should be normalized relative to config file location.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("paths", "cache_dir"),
    ("paths", "public_dir"),
    ("paths", "runtime_dir"),
    ("observability", "log_dir"),
)


class MetaConfig(TypedDict):
    schema_version: int


class BuildConfig(TypedDict):
    production: bool
    page_build_on_data_changes: bool
    max_concurrency: int
    max_cascade_passes: int
    hook_timeout_seconds: float


class PathsConfig(TypedDict):
    cache_dir: str
    public_dir: str
    runtime_dir: str


class CacheConfig(TypedDict):
    watched_files: list[str]


class ObservabilityConfig(TypedDict):
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"]
    log_dir: str
    log_to_stdout: bool


class PluginEntry(TypedDict):
    name: str
    version: str
    resolve: str
    options: dict[str, Any]
    hooks: list[str]
    ssr_hooks: list[str]
    browser_hooks: list[str]
    skip_ssr: bool


class SiteConfig(TypedDict):
    meta: MetaConfig
    site: dict[str, Any]
    build: BuildConfig
    paths: PathsConfig
    cache: CacheConfig
    observability: ObservabilityConfig
    plugins: list[PluginEntry]


DEFAULT_CONFIG: Final[SiteConfig] = {
    "meta": {"schema_version": ConfigSchemaVersion},
    "site": {},
    "build": {
        "production": False,
        "page_build_on_data_changes": False,
        "max_concurrency": 8,
        "max_cascade_passes": 100,
        "hook_timeout_seconds": 0.0,
    },
    "paths": {
        "cache_dir": str(CACHE_DIR),
        "public_dir": str(PUBLIC_DIR),
        "runtime_dir": "",
    },
    "cache": {"watched_files": list(DEFAULT_WATCHED_FILES)},
    "observability": {
        "log_level": "INFO",
        "log_dir": str(LOG_DIR),
        "log_to_stdout": False,
    },
    "plugins": [],
}


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    """Validation result with normalized config when no issues were found."""

    config: dict[str, Any] | None
    issues: tuple[ConfigurationIssue, ...]
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


@dataclass(frozen=True, slots=True)
class _Rule:
    kind: type
    minimum: float | None = None
    choices: tuple[str, ...] = ()
    required: bool = True
    allow_empty: bool = False


_LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

_SECTION_RULES: Final[dict[str, dict[str, _Rule]]] = {
    "meta": {"schema_version": _Rule(int, minimum=1)},
    "build": {
        "production": _Rule(bool),
        "page_build_on_data_changes": _Rule(bool),
        "max_concurrency": _Rule(int, minimum=1),
        "max_cascade_passes": _Rule(int, minimum=1),
        "hook_timeout_seconds": _Rule(float, minimum=0),
    },
    "paths": {
        "cache_dir": _Rule(str),
        "public_dir": _Rule(str),
        "runtime_dir": _Rule(str, required=False, allow_empty=True),
    },
    "cache": {"watched_files": _Rule(list)},
    "observability": {
        "log_level": _Rule(str, choices=_LOG_LEVELS),
        "log_dir": _Rule(str),
        "log_to_stdout": _Rule(bool),
    },
}

_HOOK_LISTS: Final[tuple[str, ...]] = ("hooks", "ssr_hooks", "browser_hooks")
_PLUGIN_FIELDS: Final[frozenset[str]] = frozenset(
    {"name", "version", "resolve", "options", "skip_ssr", *_HOOK_LISTS}
)
_ROOT_KEYS: Final[frozenset[str]] = frozenset(
    {"site", "plugins", *_SECTION_RULES, *DEPRECATED_ROOT_KEYS}
)

# Marks a value that failed validation; the issue is already recorded.
_INVALID: Final[object] = object()


@dataclass(slots=True)
class _Findings:
    issues: list[ConfigurationIssue] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add(self, path: str, message: str) -> None:
        self.issues.append(ConfigurationIssue(path=path, message=message))

    def reject(self, path: str, message: str) -> object:
        self.add(path, message)
        return _INVALID

    def result(self, config: dict[str, Any] | None) -> ConfigValidationResult:
        return ConfigValidationResult(
            config=None if self.issues else config,
            issues=tuple(self.issues),
            warnings=tuple(self.warnings),
        )


def default_config() -> SiteConfig:
    """Return a deep copy of deterministic built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade site.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade the site-orchestrator runtime"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deep-merge ``overlay`` onto a copy of ``base``. Tables merge, everything else replaces."""

    merged: dict[str, Any] = {key: _clone(value) for key, value in base.items()}
    for key in sorted(overlay):
        value = overlay[key]
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, dict):
            merged[key] = merge_config(current, value)
        else:
            merged[key] = _clone(value)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate a merged config.

    Issues carry dotted paths (``build.max_concurrency``, ``plugins[2].hooks``)
    so the CLI can point at the offending key. Deprecated root keys produce
    warnings and are folded into the result instead of failing validation.
    """

    findings = _Findings()
    if not isinstance(config, Mapping):
        kind = "a callable" if callable(config) else type(config).__name__
        findings.add("<root>", f"the root site config must be a table, not {kind}")
        return findings.result(None)

    for key in sorted(str(key) for key in config if key not in _ROOT_KEYS):
        findings.add(key, "unknown field")

    normalized: dict[str, Any] = {}
    for section in _SECTION_RULES:
        if section not in config:
            findings.add(section, "missing required field")
            continue
        normalized[section] = _validate_section(section, config[section], findings)

    version = normalized.get("meta", {}).get("schema_version")
    if version is not None and version != ConfigSchemaVersion:
        findings.add("meta.schema_version", migration_guidance(version))

    normalized["site"] = merge_config({}, _table(config.get("site", {}), "site", findings) or {})

    raw_plugins = config.get("plugins", [])
    if "experimental_themes" in config:
        findings.warnings.append(DEPRECATED_ROOT_KEYS["experimental_themes"])
        raw_plugins = raw_plugins or config["experimental_themes"]
    if "polyfill" in config:
        findings.warnings.append(DEPRECATED_ROOT_KEYS["polyfill"])
    normalized["plugins"] = _validate_plugins(raw_plugins, findings)

    return findings.result(normalized)


def _validate_section(name: str, raw: object, findings: _Findings) -> dict[str, Any]:
    table = _table(raw, name, findings)
    if table is None:
        return {}
    rules = _SECTION_RULES[name]
    for key in sorted(table.keys() - rules.keys()):
        findings.add(f"{name}.{key}", "unknown field")

    out: dict[str, Any] = {}
    for key, rule in rules.items():
        path = f"{name}.{key}"
        if key not in table:
            if rule.required:
                findings.add(path, "missing required field")
            else:
                fallback = DEFAULT_CONFIG[name][key]  # type: ignore[literal-required]
                out[key] = copy.deepcopy(fallback)
            continue
        value = _check(table[key], rule, path, findings)
        if value is not _INVALID:
            out[key] = value
    return out


def _validate_plugins(raw: object, findings: _Findings) -> list[dict[str, Any]]:
    if not isinstance(raw, list):
        findings.add("plugins", f"expected array, got {type(raw).__name__}")
        return []

    plugins: list[dict[str, Any]] = []
    for index, item in enumerate(raw):
        path = f"plugins[{index}]"
        # A bare string is shorthand for {resolve = "..."}.
        entry = _table({"resolve": item} if isinstance(item, str) else item, path, findings)
        if entry is not None:
            parsed = _plugin_entry(entry, path, findings)
            if parsed is not None:
                plugins.append(parsed)
    return plugins


def _plugin_entry(
    entry: dict[str, object], path: str, findings: _Findings
) -> dict[str, Any] | None:
    for key in sorted(entry.keys() - _PLUGIN_FIELDS):
        findings.add(f"{path}.{key}", "unknown field")
    if "resolve" not in entry and "name" not in entry:
        findings.add(path, "plugin entry requires 'resolve' or 'name'")
        return None

    resolve = _text(entry.get("resolve", entry.get("name")), f"{path}.resolve", findings)
    if resolve is _INVALID:
        return None
    fallback_name = str(resolve).replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
    name = _text(entry.get("name", fallback_name), f"{path}.name", findings)
    version = _text(entry.get("version", ""), f"{path}.version", findings, allow_empty=True)
    options = _table(entry.get("options", {}), f"{path}.options", findings)
    hooks = {key: _hook_names(entry.get(key, []), f"{path}.{key}", findings) for key in _HOOK_LISTS}
    skip_ssr = _check(entry.get("skip_ssr", False), _Rule(bool), f"{path}.skip_ssr", findings)

    if options is None or any(value is _INVALID for value in (name, version, skip_ssr)):
        return None
    return {
        "name": name,
        "version": version,
        "resolve": resolve,
        "options": merge_config({}, options),
        **hooks,
        "skip_ssr": skip_ssr,
    }


def _hook_names(value: object, path: str, findings: _Findings) -> list[str]:
    names: list[str] = []
    for name in _strings(value, path, findings):
        if _HOOK_NAME_PATTERN.fullmatch(name):
            names.append(name)
        else:
            findings.add(path, f"invalid hook name {name!r}; expected snake_case")
    return names


def _check(value: object, rule: _Rule, path: str, findings: _Findings) -> object:
    if rule.kind is bool:
        if isinstance(value, bool):
            return value
        return findings.reject(path, f"expected boolean, got {type(value).__name__}")
    if rule.kind is list:
        return _strings(value, path, findings)
    if rule.kind is str:
        text = _text(value, path, findings, allow_empty=rule.allow_empty)
        if text is not _INVALID and rule.choices and text not in rule.choices:
            expected = ", ".join(sorted(rule.choices))
            return findings.reject(path, f"invalid value {text!r}; expected one of: {expected}")
        return text

    accepted = (int,) if rule.kind is int else (int, float)
    if isinstance(value, bool) or not isinstance(value, accepted):
        label = "integer" if rule.kind is int else "number"
        return findings.reject(path, f"expected {label}, got {type(value).__name__}")
    number = rule.kind(value)
    if not math.isfinite(number):
        return findings.reject(path, "must be finite")
    if rule.minimum is not None and number < rule.minimum:
        return findings.reject(path, f"must be >= {rule.minimum}")
    return number


def _strings(value: object, path: str, findings: _Findings) -> list[str]:
    if not isinstance(value, list):
        findings.add(path, f"expected array, got {type(value).__name__}")
        return []
    texts = [_text(item, f"{path}[{index}]", findings) for index, item in enumerate(value)]
    return [text for text in texts if isinstance(text, str)]


def _text(value: object, path: str, findings: _Findings, *, allow_empty: bool = False) -> object:
    if not isinstance(value, str):
        return findings.reject(path, f"expected string, got {type(value).__name__}")
    text = value.strip()
    if not text and not allow_empty:
        return findings.reject(path, "must not be empty")
    if "\x00" in text:
        return findings.reject(path, "must not contain NUL bytes")
    return text


def _table(value: object, path: str, findings: _Findings) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        findings.add(path, f"expected object, got {type(value).__name__}")
        return None
    table: dict[str, object] = {}
    for key, item in value.items():
        if isinstance(key, str):
            table[key] = item
        else:
            findings.add(path, f"object key must be string, got {type(key).__name__}")
    return table


def _clone(value: object) -> Any:
    if isinstance(value, Mapping):
        return {key: _clone(item) for key, item in value.items()}
    return copy.deepcopy(value)


__all__ = [
    "DEFAULT_CONFIG",
    "DEPRECATED_ROOT_KEYS",
    "PATH_FIELDS",
    "ConfigSchemaVersion",
    "ConfigValidationResult",
    "PluginEntry",
    "SiteConfig",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
