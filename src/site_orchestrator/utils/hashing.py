"""SHA-256 digests over canonical JSON and optional files, used for cache fingerprints."""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path

__all__ = ["canonical_json", "sha256_file_if_exists", "sha256_json"]


def canonical_json(payload: object) -> str:
    """Sorted keys, no insignificant whitespace, UTF-8 kept as-is."""

    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def sha256_json(payload: object) -> str:
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


def sha256_file_if_exists(path: str | os.PathLike[str]) -> str | None:
    """Digest of the file's bytes, or ``None`` when there is no such file."""

    try:
        with Path(path).open("rb") as handle:
            return hashlib.file_digest(handle, "sha256").hexdigest()
    except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
        return None
