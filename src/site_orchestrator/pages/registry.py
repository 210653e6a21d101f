"""
site-orchestrator — page registry

Purpose
- Keyed, in-memory store of page definitions populated by plugin actions.

What should be included in this file
- Page input validation returning structured results (``validate_page_input``).
- ``PageRegistry`` with validated upsert, idempotent delete, ordered reads and
  snapshot/restore for build-state persistence.

Functional requirements
- Paths are normalized by enforcing a leading slash; the normalized path is the key.
- A rejected page never mutates the registry.
- Re-creating an existing path replaces the whole entry; iteration keeps first-insertion order.

Non-functional requirements
- Writes are serialized through a re-entrant lock; reads observe completed writes.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from site_orchestrator.constants import RESERVED_CONTEXT_KEYS
from site_orchestrator.domain.errors import PageValidationCode, PageValidationError
from site_orchestrator.domain.models import PageDefinition, is_absolute_component
from site_orchestrator.utils.hashing import canonical_json


@dataclass(frozen=True, slots=True)
class PageValidationResult:
    """Outcome of validating one page input; exactly one of ``page``/``code`` is set."""

    page: PageDefinition | None = None
    code: PageValidationCode | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.page is not None

    def raise_for_error(self, *, plugin: str | None = None) -> PageDefinition:
        if self.page is None:
            assert self.code is not None
            raise PageValidationError(self.code, self.message, plugin=plugin)
        return self.page


def normalize_page_path(path: str) -> str:
    return path if path.startswith("/") else f"/{path}"


def validate_page_input(page_input: Mapping[str, Any], plugin: str = "") -> PageValidationResult:
    """Validate a page create request without touching any registry."""

    path = page_input.get("path")
    if not isinstance(path, str) or not path:
        return PageValidationResult(
            code=PageValidationCode.MISSING_PATH,
            message="a page must declare a non-empty 'path'",
        )

    component = page_input.get("component")
    if not isinstance(component, str) or not component:
        return PageValidationResult(
            code=PageValidationCode.MISSING_COMPONENT,
            message=f"page {path!r} must declare a 'component'",
        )
    if not is_absolute_component(component):
        return PageValidationResult(
            code=PageValidationCode.COMPONENT_NOT_ABSOLUTE,
            message=f"page {path!r}: component {component!r} must be an absolute path",
        )

    context = page_input.get("context") or {}
    if not isinstance(context, Mapping):
        return PageValidationResult(
            code=PageValidationCode.INVALID_CONTEXT,
            message=f"page {path!r}: context must be a mapping, got {type(context).__name__}",
        )
    reserved = sorted(key for key in context if key in RESERVED_CONTEXT_KEYS)
    if reserved:
        return PageValidationResult(
            code=PageValidationCode.RESERVED_CONTEXT_KEY,
            message=(
                f"page {path!r}: context uses reserved key(s) {', '.join(reserved)}; "
                "rename them, e.g. to 'my_" + reserved[0] + "'"
            ),
        )
    try:
        canonical_json(dict(context))
    except (TypeError, ValueError) as exc:
        return PageValidationResult(
            code=PageValidationCode.INVALID_CONTEXT,
            message=f"page {path!r}: context must be JSON-serializable ({exc})",
        )

    match_path = page_input.get("match_path")
    return PageValidationResult(
        page=PageDefinition(
            path=normalize_page_path(path),
            component=component,
            context=dict(context),
            match_path=str(match_path) if match_path else None,
            owner=plugin,
        )
    )


class PageRegistry:
    """Insertion-ordered mapping of normalized path to ``PageDefinition``."""

    def __init__(self) -> None:
        self._pages: dict[str, PageDefinition] = {}
        self._lock = threading.RLock()

    def create_or_update_page(
        self, page_input: Mapping[str, Any], plugin: str = ""
    ) -> PageDefinition:
        """Validate and store ``page_input``; raise ``PageValidationError`` on rejection."""

        page = validate_page_input(page_input, plugin).raise_for_error(plugin=plugin or None)
        with self._lock:
            self._pages[page.path] = page
        return page

    def delete_page(self, path: str) -> None:
        if not path:
            return
        with self._lock:
            self._pages.pop(normalize_page_path(path), None)

    def get(self, path: str) -> PageDefinition | None:
        with self._lock:
            return self._pages.get(normalize_page_path(path))

    def values(self) -> tuple[PageDefinition, ...]:
        with self._lock:
            return tuple(self._pages.values())

    def size(self) -> int:
        with self._lock:
            return len(self._pages)

    def clear(self) -> None:
        with self._lock:
            self._pages.clear()

    def snapshot(self) -> tuple[PageDefinition, ...]:
        return self.values()

    def restore(self, pages: Iterable[PageDefinition]) -> None:
        """Replace the whole registry with ``pages``, e.g. a loaded build-state snapshot."""

        with self._lock:
            self._pages = {page.path: page for page in pages}

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, str):
            return False
        return self.get(path) is not None

    def __iter__(self) -> Iterator[PageDefinition]:
        return iter(self.values())


__all__ = [
    "PageRegistry",
    "PageValidationResult",
    "normalize_page_path",
    "validate_page_input",
]
