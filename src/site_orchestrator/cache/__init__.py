"""Cache invalidation engine: fingerprinting, validity decisions and persisted state."""

from site_orchestrator.cache.fingerprint import CacheFingerprint, compute_fingerprint
from site_orchestrator.cache.invalidation import (
    CacheDecision,
    CacheInitialization,
    ResetListener,
    decide,
    initialize_cache,
)
from site_orchestrator.cache.state_store import BuildState, BuildStateStore

__all__ = [
    "BuildState",
    "BuildStateStore",
    "CacheDecision",
    "CacheFingerprint",
    "CacheInitialization",
    "ResetListener",
    "compute_fingerprint",
    "decide",
    "initialize_cache",
]
