"""Unit tests for filesystem helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from site_orchestrator.utils.fs import (
    atomic_write,
    empty_directory,
    prune_files,
    safe_delete,
)
from site_orchestrator.utils.hashing import sha256_file_if_exists, sha256_json


def test_atomic_write_replaces_content_without_leftovers(tmp_path: Path) -> None:
    target = tmp_path / "state.json"
    atomic_write(target, "one")
    atomic_write(target, b"two")

    assert target.read_text(encoding="utf-8") == "two"
    assert [entry.name for entry in tmp_path.iterdir()] == ["state.json"]


def test_atomic_write_requires_existing_parent(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        atomic_write(tmp_path / "missing" / "file.txt", "x")


def test_safe_delete_refuses_paths_outside_root(tmp_path: Path) -> None:
    root = tmp_path / "site"
    root.mkdir()
    outside = tmp_path / "outside"
    outside.mkdir()

    with pytest.raises(ValueError, match="outside workspace root"):
        safe_delete(outside, root)
    with pytest.raises(ValueError):
        safe_delete(root, root)
    assert outside.exists()


def test_safe_delete_removes_trees_and_ignores_missing(tmp_path: Path) -> None:
    cache = tmp_path / ".cache"
    (cache / "nested").mkdir(parents=True)
    (cache / "nested" / "file").write_text("x", encoding="utf-8")

    safe_delete(cache, tmp_path)
    safe_delete(cache, tmp_path)

    assert not cache.exists()


def test_empty_directory_keeps_the_directory(tmp_path: Path) -> None:
    target = tmp_path / "fragments"
    (target / "sub").mkdir(parents=True)
    (target / "a.txt").write_text("x", encoding="utf-8")

    empty_directory(target)

    assert target.is_dir()
    assert list(target.iterdir()) == []


def test_prune_files_honours_suffixes_and_prefixes(tmp_path: Path) -> None:
    for rel in ("a.HTML", "keep/b.html", "c.txt"):
        path = tmp_path / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("x", encoding="utf-8")

    assert prune_files(tmp_path, suffixes=(".html",), keep_prefixes=("keep",)) == ["a.HTML"]
    assert (tmp_path / "keep" / "b.html").exists()


def test_hash_helpers(tmp_path: Path) -> None:
    assert sha256_file_if_exists(tmp_path / "nope") is None
    assert sha256_json({"b": 1, "a": 2}) == sha256_json({"a": 2, "b": 1})


def test_safe_delete_unlinks_symlink_without_following_it(tmp_path: Path) -> None:
    root = tmp_path / "site"
    root.mkdir()
    real = tmp_path / "real-cache"
    real.mkdir()
    (real / "keep.txt").write_text("x", encoding="utf-8")
    link = root / ".cache"
    link.symlink_to(real, target_is_directory=True)

    safe_delete(link, root)

    assert not link.exists()
    assert (real / "keep.txt").exists()


def test_file_hash_changes_with_content(tmp_path: Path) -> None:
    target = tmp_path / "site.toml"
    target.write_text("a = 1\n", encoding="utf-8")
    first = sha256_file_if_exists(target)
    target.write_text("a = 2\n", encoding="utf-8")

    assert first is not None
    assert sha256_file_if_exists(target) != first
