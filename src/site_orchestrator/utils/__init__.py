"""Utility exports for filesystem, hashing, and concurrency helpers."""

from site_orchestrator.utils.concurrency import (
    BoundedSemaphore,
    Settled,
    gather_settled,
    run_with_timeout,
)
from site_orchestrator.utils.fs import (
    atomic_write,
    empty_directory,
    prune_files,
    safe_delete,
)
from site_orchestrator.utils.hashing import (
    canonical_json,
    sha256_file_if_exists,
    sha256_json,
)

__all__ = [
    "BoundedSemaphore",
    "Settled",
    "atomic_write",
    "canonical_json",
    "empty_directory",
    "gather_settled",
    "prune_files",
    "run_with_timeout",
    "safe_delete",
    "sha256_file_if_exists",
    "sha256_json",
]
