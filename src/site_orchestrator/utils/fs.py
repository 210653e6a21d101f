"""
site-orchestrator — filesystem helpers for the cache and public directories.

- ``atomic_write``: generated files and the build state are written to a temp
  file beside the target and swapped in with ``os.replace``, so a crashed run
  never leaves a half-written manifest behind.
- ``safe_delete``: cache wipes refuse to touch anything outside the site root.
- ``empty_directory`` / ``prune_files``: fallback wipe and stale-artifact cleanup.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from collections.abc import Iterable
from pathlib import Path

PathLike = str | os.PathLike[str]

__all__ = [
    "atomic_write",
    "empty_directory",
    "prune_files",
    "safe_delete",
]


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """Replace ``path`` with ``data`` in one step. The parent directory must exist."""

    target = Path(path)
    directory = target.parent.resolve(strict=True)
    payload = data.encode(encoding) if isinstance(data, str) else data

    handle = tempfile.NamedTemporaryFile(
        dir=directory, prefix=f".{target.name}.", suffix=".tmp", delete=False
    )
    try:
        with handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(handle.name, target)
    except BaseException:
        Path(handle.name).unlink(missing_ok=True)
        raise


def safe_delete(path: PathLike, site_root: PathLike) -> None:
    """Remove ``path`` (file, tree or symlink) if it lies strictly inside ``site_root``.

    A missing ``path`` is a no-op. Symlinks are removed, never followed.
    """

    root = Path(site_root).resolve(strict=True)
    target = Path(path)
    if not os.path.lexists(target):
        return
    # Resolve the parent only, so a symlinked target is judged by where it sits.
    located = target.parent.resolve(strict=True) / target.name
    if located == root or root not in located.parents:
        raise ValueError(f"refusing to delete path outside workspace root: {target}")

    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    else:
        target.unlink()


def empty_directory(path: PathLike) -> None:
    """Remove the contents of ``path``, creating it if needed."""

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    for entry in directory.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


def prune_files(
    root: PathLike, *, suffixes: Iterable[str], keep_prefixes: Iterable[str] = ()
) -> list[str]:
    """Delete files under ``root`` ending in one of ``suffixes`` (case-insensitive).

    Root-relative POSIX paths under any of ``keep_prefixes`` survive. Returns the
    deleted relative paths, sorted.
    """

    base = Path(root)
    if not base.is_dir():
        return []
    wanted = {suffix.lower() for suffix in suffixes}
    protected = tuple(f"{prefix.rstrip('/')}/" for prefix in keep_prefixes)

    deleted: list[str] = []
    for dirpath, _dirnames, filenames in os.walk(base):
        for filename in filenames:
            candidate = Path(dirpath) / filename
            relative = candidate.relative_to(base).as_posix()
            if candidate.suffix.lower() in wanted and not relative.startswith(protected):
                candidate.unlink()
                deleted.append(relative)
    return sorted(deleted)
