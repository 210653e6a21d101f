"""
site-orchestrator — persisted build state

Purpose
- Read and write the JSON build-state document kept in the cache directory.

What should be included in this file
- ``BuildState``: fingerprint baseline, completion flag and page snapshot.
- ``BuildStateStore``: load/save with schema version checks and atomic writes.

Functional requirements
- A missing state file means "no prior fingerprint".
- An unreadable or foreign-schema state file is reported and treated as missing.
- Save failures surface as ``CacheMaintenanceError`` so callers can continue.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import structlog

from site_orchestrator.constants import BUILD_STATE_FILE, BUILD_STATE_SCHEMA_VERSION
from site_orchestrator.domain.errors import CacheMaintenanceError
from site_orchestrator.domain.models import PageDefinition
from site_orchestrator.utils.fs import atomic_write
from site_orchestrator.utils.hashing import canonical_json

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class BuildState:
    fingerprint: str | None
    completed: bool = False
    pages: tuple[PageDefinition, ...] = ()
    run_id: str | None = None
    updated_at: str = field(default_factory=lambda: _utc_now())

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": BUILD_STATE_SCHEMA_VERSION,
            "fingerprint": self.fingerprint,
            "completed": self.completed,
            "run_id": self.run_id,
            "updated_at": self.updated_at,
            "pages": [page.to_dict() for page in self.pages],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuildState:
        version = data.get("schema_version")
        if version != BUILD_STATE_SCHEMA_VERSION:
            raise ValueError(f"unsupported build state schema_version {version!r}")
        fingerprint = data.get("fingerprint")
        if fingerprint is not None and not isinstance(fingerprint, str):
            raise ValueError("fingerprint must be a string or null")
        raw_pages = data.get("pages") or []
        if not isinstance(raw_pages, list):
            raise ValueError("pages must be a list")
        return cls(
            fingerprint=fingerprint,
            completed=bool(data.get("completed", False)),
            pages=tuple(PageDefinition.from_dict(item) for item in raw_pages),
            run_id=data.get("run_id"),
            updated_at=str(data.get("updated_at") or _utc_now()),
        )


class BuildStateStore:
    """File-backed store for ``BuildState`` under the cache directory."""

    def __init__(self, cache_dir: str | Path) -> None:
        self.cache_dir = Path(cache_dir)
        self.path = self.cache_dir / BUILD_STATE_FILE

    def load(self) -> BuildState | None:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(payload, dict):
                raise ValueError("build state root must be an object")
            return BuildState.from_dict(payload)
        except (OSError, ValueError, KeyError) as exc:
            logger.warning("build_state_unreadable", path=str(self.path), error=str(exc))
            return None

    def save(self, state: BuildState) -> None:
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            atomic_write(self.path, canonical_json(state.to_dict()) + "\n")
        except (OSError, TypeError, ValueError) as exc:
            raise CacheMaintenanceError(
                f"unable to persist build state to {self.path}: {exc}"
            ) from exc


def _utc_now() -> str:
    return datetime.now(tz=UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


__all__ = ["BuildState", "BuildStateStore"]
