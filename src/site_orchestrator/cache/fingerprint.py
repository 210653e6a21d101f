"""Deterministic cache fingerprint over the plugin set and watched config files."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from site_orchestrator.utils.hashing import sha256_file_if_exists, sha256_json

FINGERPRINT_FORMAT_VERSION = 1


class _NamedVersioned(Protocol):
    name: str
    version: str


@dataclass(frozen=True, slots=True)
class CacheFingerprint:
    """Hashed summary of everything that invalidates the build cache.

    Two fingerprints are equal exactly when their digests are equal; the input
    fields are kept for logging only.
    """

    digest: str
    plugins: tuple[tuple[str, str], ...] = ()
    files: tuple[tuple[str, str | None], ...] = ()
    page_build_on_data_changes: bool = False

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CacheFingerprint):
            return self.digest == other.digest
        if isinstance(other, str):
            return self.digest == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.digest)

    def __str__(self) -> str:
        return self.digest

    def summary(self) -> dict[str, Any]:
        return {
            "digest": self.digest,
            "plugins": [f"{name}@{version}" for name, version in self.plugins],
            "files": {path: digest for path, digest in self.files},
            "page_build_on_data_changes": self.page_build_on_data_changes,
        }


def compute_fingerprint(
    plugins: Iterable[_NamedVersioned],
    config_paths: Iterable[str | os.PathLike[str]] = (),
    *,
    page_build_on_data_changes: bool = False,
    base_dir: str | os.PathLike[str] | None = None,
) -> CacheFingerprint:
    """Compute the fingerprint for one run.

    The plugin set is de-duplicated on ``(name, version)`` and sorted, so input
    order never matters. Config files are keyed by their path relative to
    ``base_dir`` when given; a missing file contributes ``None``.
    """

    pairs = tuple(sorted({(plugin.name, plugin.version) for plugin in plugins}))

    base = Path(base_dir) if base_dir is not None else None
    file_entries: dict[str, str | None] = {}
    for raw in config_paths:
        candidate = Path(raw)
        resolved = base / candidate if base is not None and not candidate.is_absolute() else candidate
        file_entries[_display_key(resolved, base)] = sha256_file_if_exists(resolved)
    files = tuple(sorted(file_entries.items()))

    digest = sha256_json(
        {
            "format": FINGERPRINT_FORMAT_VERSION,
            "plugins": [list(pair) for pair in pairs],
            "files": [[path, digest] for path, digest in files],
            "page_build_on_data_changes": bool(page_build_on_data_changes),
        }
    )
    return CacheFingerprint(
        digest=digest,
        plugins=pairs,
        files=files,
        page_build_on_data_changes=bool(page_build_on_data_changes),
    )


def _display_key(path: Path, base: Path | None) -> str:
    if base is not None:
        try:
            return path.relative_to(base).as_posix()
        except ValueError:
            pass
    return path.as_posix()


__all__ = ["FINGERPRINT_FORMAT_VERSION", "CacheFingerprint", "compute_fingerprint"]
