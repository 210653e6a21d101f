"""Cache validity decisions, wipe-and-reset, and baseline persistence."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

import structlog

from site_orchestrator.cache.fingerprint import CacheFingerprint
from site_orchestrator.cache.state_store import BuildState, BuildStateStore
from site_orchestrator.domain.errors import CacheMaintenanceError, FileIOError
from site_orchestrator.utils.fs import empty_directory, safe_delete

logger = structlog.get_logger(__name__)

ResetListener = Callable[[], None]


@dataclass(frozen=True, slots=True)
class CacheDecision:
    wipe: bool
    previous: str | None
    current: str

    @property
    def reason(self) -> str:
        if self.previous is None:
            return "no-prior-fingerprint"
        return "fingerprint-changed" if self.wipe else "unchanged"


@dataclass(frozen=True, slots=True)
class CacheInitialization:
    """What ``initialize_cache`` did; ``previous_state`` is the last valid completed build."""

    decision: CacheDecision
    wiped: bool
    previous_state: BuildState | None
    errors: tuple[CacheMaintenanceError, ...] = ()


def decide(old: str | CacheFingerprint | None, new: CacheFingerprint) -> CacheDecision:
    """Wipe only when a prior fingerprint exists and differs from ``new``."""

    previous = None if old is None else str(old)
    return CacheDecision(
        wipe=previous is not None and previous != new.digest,
        previous=previous,
        current=new.digest,
    )


def initialize_cache(
    *,
    cache_dir: str | Path,
    public_dir: str | Path,
    site_root: str | Path,
    fingerprint: CacheFingerprint,
    reset_listeners: Sequence[ResetListener] = (),
    store: BuildStateStore | None = None,
    run_id: str | None = None,
) -> CacheInitialization:
    """Compare ``fingerprint`` with the persisted baseline and reconcile the cache.

    On a wipe every reset listener is called after the directory is cleared and
    before the new baseline is written. Wipe and persistence failures are
    logged and returned, never raised.
    """

    cache_path = Path(cache_dir)
    state_store = store or BuildStateStore(cache_path)
    prior = state_store.load()
    decision = decide(prior.fingerprint if prior is not None else None, fingerprint)
    errors: list[CacheMaintenanceError] = []

    wiped = False
    if decision.wipe:
        logger.info(
            "cache_invalidated",
            cache_dir=str(cache_path),
            previous=decision.previous,
            current=decision.current,
        )
        wipe_error = _wipe(cache_path, Path(site_root))
        if wipe_error is None:
            wiped = True
        else:
            errors.append(wipe_error)
        for listener in reset_listeners:
            listener()

    _ensure_directories(cache_path, Path(public_dir))

    try:
        state_store.save(BuildState(fingerprint=fingerprint.digest, run_id=run_id))
    except CacheMaintenanceError as exc:
        logger.warning("cache_baseline_not_persisted", error=str(exc))
        errors.append(exc)

    previous_state = prior if not decision.wipe and prior is not None and prior.completed else None
    return CacheInitialization(
        decision=decision,
        wiped=wiped,
        previous_state=previous_state,
        errors=tuple(errors),
    )


def _wipe(cache_dir: Path, site_root: Path) -> CacheMaintenanceError | None:
    try:
        safe_delete(cache_dir, site_root)
        return None
    except (OSError, ValueError) as exc:
        logger.warning("cache_remove_failed", cache_dir=str(cache_dir), error=str(exc))

    try:
        empty_directory(cache_dir)
        return None
    except OSError as exc:
        error = CacheMaintenanceError(f"unable to clear cache directory {cache_dir}: {exc}")
        error.__cause__ = exc
        logger.error("cache_wipe_failed", cache_dir=str(cache_dir), error=str(error))
        return error


def _ensure_directories(cache_dir: Path, public_dir: Path) -> None:
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        (public_dir / "static").mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileIOError(f"unable to create build directories: {exc}") from exc


__all__ = [
    "CacheDecision",
    "CacheInitialization",
    "ResetListener",
    "decide",
    "initialize_cache",
]
