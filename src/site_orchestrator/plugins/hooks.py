"""Names of the build-time extension points plugins may implement."""

from __future__ import annotations

from typing import Final

ON_PRE_INIT: Final[str] = "on_pre_init"
ON_PRE_BOOTSTRAP: Final[str] = "on_pre_bootstrap"
CREATE_SCHEMA_CUSTOMIZATION: Final[str] = "create_schema_customization"
SOURCE_NODES: Final[str] = "source_nodes"
RESOLVABLE_EXTENSIONS: Final[str] = "resolvable_extensions"
CREATE_PAGES: Final[str] = "create_pages"
CREATE_PAGES_STATEFULLY: Final[str] = "create_pages_statefully"
ON_CREATE_PAGE: Final[str] = "on_create_page"
ON_PRE_EXTRACT_QUERIES: Final[str] = "on_pre_extract_queries"
ON_POST_BOOTSTRAP: Final[str] = "on_post_bootstrap"

NODE_HOOKS: Final[frozenset[str]] = frozenset(
    {
        ON_PRE_INIT,
        ON_PRE_BOOTSTRAP,
        CREATE_SCHEMA_CUSTOMIZATION,
        SOURCE_NODES,
        RESOLVABLE_EXTENSIONS,
        CREATE_PAGES,
        CREATE_PAGES_STATEFULLY,
        ON_CREATE_PAGE,
        ON_PRE_EXTRACT_QUERIES,
        ON_POST_BOOTSTRAP,
    }
)

__all__ = [
    "CREATE_PAGES",
    "CREATE_PAGES_STATEFULLY",
    "CREATE_SCHEMA_CUSTOMIZATION",
    "NODE_HOOKS",
    "ON_CREATE_PAGE",
    "ON_POST_BOOTSTRAP",
    "ON_PRE_BOOTSTRAP",
    "ON_PRE_EXTRACT_QUERIES",
    "ON_PRE_INIT",
    "RESOLVABLE_EXTENSIONS",
    "SOURCE_NODES",
]
