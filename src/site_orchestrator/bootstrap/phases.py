"""The fixed bootstrap phase order."""

from __future__ import annotations

from typing import Final

from site_orchestrator.domain.models import BuildPhase
from site_orchestrator.plugins import hooks

OPEN_CONFIG: Final[str] = "open-config"
LOAD_PLUGINS: Final[str] = "load-plugins"
PRE_INIT: Final[str] = "pre-init"
DELETE_STALE_ARTIFACTS: Final[str] = "delete-stale-artifacts"
INITIALIZE_CACHE: Final[str] = "initialize-cache"
COPY_RUNTIME_FILES: Final[str] = "copy-runtime-files"
PRE_BOOTSTRAP: Final[str] = "pre-bootstrap"
SCHEMA_CUSTOMIZATION: Final[str] = "schema-customization"
SOURCE_NODES: Final[str] = "source-nodes"
BUILD_SCHEMA: Final[str] = "build-schema"
RESOLVE_EXTENSIONS: Final[str] = "resolve-extensions"
CREATE_PAGES: Final[str] = "create-pages"
CREATE_PAGES_STATEFULLY: Final[str] = "create-pages-statefully"
PRE_EXTRACT_QUERIES: Final[str] = "pre-extract-queries"
REBUILD_SCHEMA: Final[str] = "rebuild-schema"
EXTRACT_QUERIES: Final[str] = "extract-queries"
WRITE_REQUIRES: Final[str] = "write-requires"
WRITE_REDIRECTS: Final[str] = "write-redirects"
POST_BOOTSTRAP: Final[str] = "post-bootstrap"

PHASES: Final[tuple[BuildPhase, ...]] = (
    BuildPhase(OPEN_CONFIG),
    BuildPhase(LOAD_PLUGINS),
    BuildPhase(PRE_INIT, extension_point=hooks.ON_PRE_INIT),
    BuildPhase(DELETE_STALE_ARTIFACTS, optional=True),
    BuildPhase(INITIALIZE_CACHE),
    BuildPhase(COPY_RUNTIME_FILES),
    BuildPhase(PRE_BOOTSTRAP, extension_point=hooks.ON_PRE_BOOTSTRAP),
    BuildPhase(SCHEMA_CUSTOMIZATION, extension_point=hooks.CREATE_SCHEMA_CUSTOMIZATION),
    BuildPhase(SOURCE_NODES, extension_point=hooks.SOURCE_NODES),
    BuildPhase(BUILD_SCHEMA),
    BuildPhase(RESOLVE_EXTENSIONS, extension_point=hooks.RESOLVABLE_EXTENSIONS),
    BuildPhase(CREATE_PAGES, extension_point=hooks.CREATE_PAGES, cascading=True),
    BuildPhase(
        CREATE_PAGES_STATEFULLY,
        extension_point=hooks.CREATE_PAGES_STATEFULLY,
        cascading=True,
    ),
    BuildPhase(PRE_EXTRACT_QUERIES, extension_point=hooks.ON_PRE_EXTRACT_QUERIES),
    BuildPhase(REBUILD_SCHEMA),
    BuildPhase(EXTRACT_QUERIES),
    BuildPhase(WRITE_REQUIRES),
    BuildPhase(WRITE_REDIRECTS, optional=True),
    BuildPhase(POST_BOOTSTRAP, extension_point=hooks.ON_POST_BOOTSTRAP),
)

PHASE_NAMES: Final[tuple[str, ...]] = tuple(phase.name for phase in PHASES)

__all__ = [
    "BUILD_SCHEMA",
    "COPY_RUNTIME_FILES",
    "CREATE_PAGES",
    "CREATE_PAGES_STATEFULLY",
    "DELETE_STALE_ARTIFACTS",
    "EXTRACT_QUERIES",
    "INITIALIZE_CACHE",
    "LOAD_PLUGINS",
    "OPEN_CONFIG",
    "PHASES",
    "PHASE_NAMES",
    "POST_BOOTSTRAP",
    "PRE_BOOTSTRAP",
    "PRE_EXTRACT_QUERIES",
    "PRE_INIT",
    "REBUILD_SCHEMA",
    "RESOLVE_EXTENSIONS",
    "SCHEMA_CUSTOMIZATION",
    "SOURCE_NODES",
    "WRITE_REDIRECTS",
    "WRITE_REQUIRES",
]
