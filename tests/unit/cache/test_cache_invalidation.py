"""
site-orchestrator — unit tests for cache invalidation

Purpose
- Validate wipe decisions, reset signalling, fallback behavior and baseline persistence.

What this test file should cover
- First run initializes without wiping.
- A changed fingerprint empties the cache before anything else is written.
- Removal falling back to emptying; both failing is logged, not raised.
- Baseline persistence regardless of the decision.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from site_orchestrator.cache import invalidation
from site_orchestrator.cache.fingerprint import CacheFingerprint
from site_orchestrator.cache.invalidation import decide, initialize_cache
from site_orchestrator.cache.state_store import BuildState, BuildStateStore
from site_orchestrator.constants import BUILD_STATE_FILE
from site_orchestrator.domain.errors import CacheMaintenanceError
from site_orchestrator.domain.models import PageDefinition


def _fp(digest: str) -> CacheFingerprint:
    return CacheFingerprint(digest=digest * 64)


def _site(tmp_path: Path) -> tuple[Path, Path, Path]:
    site = tmp_path / "site"
    site.mkdir()
    return site, site / ".cache", site / "public"


def test_decide_without_prior_fingerprint_does_not_wipe() -> None:
    decision = decide(None, _fp("a"))

    assert decision.wipe is False
    assert decision.reason == "no-prior-fingerprint"


def test_decide_wipes_only_on_difference() -> None:
    assert decide(_fp("a").digest, _fp("a")).wipe is False
    changed = decide(_fp("a"), _fp("b"))
    assert changed.wipe is True
    assert changed.reason == "fingerprint-changed"


def test_first_run_creates_directories_and_persists_baseline(tmp_path: Path) -> None:
    site, cache_dir, public_dir = _site(tmp_path)
    resets: list[str] = []

    outcome = initialize_cache(
        cache_dir=cache_dir,
        public_dir=public_dir,
        site_root=site,
        fingerprint=_fp("a"),
        reset_listeners=(lambda: resets.append("reset"),),
    )

    assert outcome.decision.wipe is False
    assert resets == []
    assert (public_dir / "static").is_dir()
    state = BuildStateStore(cache_dir).load()
    assert state is not None
    assert state.fingerprint == _fp("a").digest
    assert state.completed is False


def test_changed_fingerprint_empties_cache_before_reset(tmp_path: Path) -> None:
    site, cache_dir, public_dir = _site(tmp_path)
    initialize_cache(cache_dir=cache_dir, public_dir=public_dir, site_root=site, fingerprint=_fp("a"))
    (cache_dir / "stale.json").write_text("{}", encoding="utf-8")
    (cache_dir / "nested").mkdir()
    (cache_dir / "nested" / "file.txt").write_text("x", encoding="utf-8")
    seen_at_reset: list[list[str]] = []

    def on_reset() -> None:
        entries = sorted(p.name for p in cache_dir.iterdir()) if cache_dir.exists() else []
        seen_at_reset.append(entries)

    outcome = initialize_cache(
        cache_dir=cache_dir,
        public_dir=public_dir,
        site_root=site,
        fingerprint=_fp("b"),
        reset_listeners=(on_reset,),
    )

    assert outcome.decision.wipe is True
    assert outcome.wiped is True
    assert seen_at_reset == [[]]
    assert sorted(p.name for p in cache_dir.iterdir()) == [BUILD_STATE_FILE]
    assert BuildStateStore(cache_dir).load().fingerprint == _fp("b").digest


def test_unchanged_fingerprint_reports_previous_completed_state(tmp_path: Path) -> None:
    site, cache_dir, public_dir = _site(tmp_path)
    page = PageDefinition(path="/a/", component="/src/a.py")
    BuildStateStore(cache_dir).save(
        BuildState(fingerprint=_fp("a").digest, completed=True, pages=(page,))
    )

    outcome = initialize_cache(
        cache_dir=cache_dir, public_dir=public_dir, site_root=site, fingerprint=_fp("a")
    )

    assert outcome.previous_state is not None
    assert outcome.previous_state.pages == (page,)


def test_removal_failure_falls_back_to_emptying(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    site, cache_dir, public_dir = _site(tmp_path)
    initialize_cache(cache_dir=cache_dir, public_dir=public_dir, site_root=site, fingerprint=_fp("a"))
    (cache_dir / "stale.txt").write_text("x", encoding="utf-8")

    def refuse(*_args: object) -> None:
        raise PermissionError("busy")

    monkeypatch.setattr(invalidation, "safe_delete", refuse)

    outcome = initialize_cache(
        cache_dir=cache_dir, public_dir=public_dir, site_root=site, fingerprint=_fp("b")
    )

    assert outcome.wiped is True
    assert not (cache_dir / "stale.txt").exists()
    assert outcome.errors == ()


def test_wipe_failure_is_reported_not_raised(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    site, cache_dir, public_dir = _site(tmp_path)
    initialize_cache(cache_dir=cache_dir, public_dir=public_dir, site_root=site, fingerprint=_fp("a"))
    resets: list[str] = []

    def refuse(*_args: object) -> None:
        raise PermissionError("busy")

    monkeypatch.setattr(invalidation, "safe_delete", refuse)
    monkeypatch.setattr(invalidation, "empty_directory", refuse)

    outcome = initialize_cache(
        cache_dir=cache_dir,
        public_dir=public_dir,
        site_root=site,
        fingerprint=_fp("b"),
        reset_listeners=(lambda: resets.append("reset"),),
    )

    assert outcome.wiped is False
    assert resets == ["reset"]
    assert len(outcome.errors) == 1
    assert isinstance(outcome.errors[0], CacheMaintenanceError)


def test_baseline_persistence_failure_is_reported(tmp_path: Path) -> None:
    site, cache_dir, public_dir = _site(tmp_path)

    class BrokenStore(BuildStateStore):
        def save(self, state: BuildState) -> None:
            raise CacheMaintenanceError("disk full")

    outcome = initialize_cache(
        cache_dir=cache_dir,
        public_dir=public_dir,
        site_root=site,
        fingerprint=_fp("a"),
        store=BrokenStore(cache_dir),
    )

    assert [str(error) for error in outcome.errors] == ["disk full"]
