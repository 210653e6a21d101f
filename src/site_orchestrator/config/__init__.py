"""
site-orchestrator config package public API.

Purpose
- Export config loading/validation entrypoints and public error types.

Functional requirements
- Support loading from ``site.toml`` + ``SITE_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from site_orchestrator.config.loader import (
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    load_config,
    normalize_paths,
)
from site_orchestrator.config.schema import (
    DEFAULT_CONFIG,
    DEPRECATED_ROOT_KEYS,
    PATH_FIELDS,
    ConfigSchemaVersion,
    ConfigValidationResult,
    SiteConfig,
    default_config,
    merge_config,
    migration_guidance,
    validate_config,
)

__all__ = [
    "DEFAULT_CONFIG",
    "DEPRECATED_ROOT_KEYS",
    "ENV_PREFIX",
    "PATH_FIELDS",
    "ConfigLoadError",
    "ConfigSchemaVersion",
    "ConfigValidationResult",
    "SiteConfig",
    "default_config",
    "dump_effective_config",
    "load_config",
    "merge_config",
    "migration_guidance",
    "normalize_paths",
    "validate_config",
]
