"""
site-orchestrator — unit tests for generated-file writers

Purpose
- Validate every file the bootstrap sequence writes.

What this test file should cover
- Browser/SSR manifest selection, ordering and byte-stable output.
- SSR runner template handling and read failures.
- Stale artifact pruning, requires/match-path output and redirects.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from site_orchestrator.bootstrap.writers import (
    browser_plugin_entries,
    copy_runtime_files,
    delete_stale_artifacts,
    match_path_entries,
    rank_match_path,
    ssr_plugin_entries,
    write_browser_manifest,
    write_redirects,
    write_requires,
    write_ssr_runner,
)
from site_orchestrator.constants import (
    BROWSER_PLUGINS_MANIFEST,
    FRAGMENTS_DIR,
    JSON_DIR,
    SSR_RUNNER_FILE,
)
from site_orchestrator.domain.errors import FileIOError
from site_orchestrator.domain.models import (
    PageDefinition,
    PluginDescriptor,
    Redirect,
    component_chunk_name,
)


def _descriptor(root: Path, name: str, **kwargs: object) -> PluginDescriptor:
    plugin_dir = root / "plugins" / name
    plugin_dir.mkdir(parents=True, exist_ok=True)
    return PluginDescriptor(
        name=name, version="1.0.0", resolved_path=plugin_dir.as_posix(), **kwargs  # type: ignore[arg-type]
    )


def test_browser_entries_are_relative_and_ordered(tmp_path: Path) -> None:
    cache_dir = tmp_path / ".cache"
    cache_dir.mkdir()
    with_hooks = _descriptor(tmp_path, "zeta", browser_hooks=("on_route_update",), options={"a": 1})
    with_module = _descriptor(tmp_path, "alpha")
    (Path(with_module.resolved_path) / "site_browser.py").write_text("", encoding="utf-8")
    without = _descriptor(tmp_path, "plain")

    entries = browser_plugin_entries([with_hooks, without, with_module], cache_dir)

    assert entries == [
        {"plugin": "../plugins/zeta/site_browser", "options": {"a": 1}},
        {"plugin": "../plugins/alpha/site_browser", "options": {}},
    ]


def test_ssr_entries_skip_opted_out_plugins(tmp_path: Path) -> None:
    rendered = _descriptor(tmp_path, "seo", ssr_hooks=("on_render_body",))
    skipped = _descriptor(tmp_path, "heavy", ssr_hooks=("on_render_body",), skip_ssr=True)
    silent = _descriptor(tmp_path, "quiet")

    entries = ssr_plugin_entries([rendered, skipped, silent])

    assert entries == [{"plugin": f"{rendered.resolved_path}/site_ssr", "options": {}}]


def test_browser_manifest_is_byte_identical_for_same_input(tmp_path: Path) -> None:
    cache_dir = tmp_path / ".cache"
    cache_dir.mkdir()
    plugins = [_descriptor(tmp_path, "p", browser_hooks=("x",), options={"b": 2, "a": 1})]

    first = write_browser_manifest(plugins, cache_dir).read_bytes()
    second = write_browser_manifest(plugins, cache_dir).read_bytes()

    assert first == second
    assert first.endswith(b"\n")
    assert (cache_dir / BROWSER_PLUGINS_MANIFEST).is_file()


def test_copy_runtime_then_ssr_runner_is_prefixed(tmp_path: Path) -> None:
    cache_dir = tmp_path / ".cache"
    (cache_dir / FRAGMENTS_DIR).mkdir(parents=True)
    (cache_dir / FRAGMENTS_DIR / "old.graphql").write_text("stale", encoding="utf-8")
    plugin = _descriptor(tmp_path, "seo", ssr_hooks=("on_render_body",), options={"lang": "en"})

    copy_runtime_files(cache_dir)
    runner = write_ssr_runner([plugin], cache_dir)

    assert list((cache_dir / FRAGMENTS_DIR).iterdir()) == []
    assert (cache_dir / JSON_DIR).is_dir()
    text = runner.read_text(encoding="utf-8")
    assert text.startswith("PLUGINS = [")
    assert "'lang': 'en'" in text
    assert "def api_runner(" in text


def test_ssr_runner_without_template_is_file_io_error(tmp_path: Path) -> None:
    cache_dir = tmp_path / ".cache"
    cache_dir.mkdir()

    with pytest.raises(FileIOError, match=SSR_RUNNER_FILE):
        write_ssr_runner([], cache_dir)


def test_copy_from_missing_runtime_dir_is_file_io_error(tmp_path: Path) -> None:
    with pytest.raises(FileIOError):
        copy_runtime_files(tmp_path / ".cache", runtime_dir=tmp_path / "nowhere")


def test_stale_artifacts_keep_page_data_and_static(tmp_path: Path) -> None:
    public = tmp_path / "public"
    for rel in ("index.html", "styles.css", "app.js", "page-data/a.html", "static/b.css", "blog/c.html"):
        target = public / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text("x", encoding="utf-8")

    deleted = delete_stale_artifacts(public)

    assert deleted == ["blog/c.html", "index.html", "styles.css"]
    assert (public / "app.js").exists()
    assert (public / "page-data" / "a.html").exists()
    assert (public / "static" / "b.css").exists()


def test_delete_stale_artifacts_without_public_dir(tmp_path: Path) -> None:
    assert delete_stale_artifacts(tmp_path / "public") == []


def test_match_path_ranking_prefers_specific_routes() -> None:
    assert rank_match_path("/app/:id") > rank_match_path("/app/*")
    assert rank_match_path("/app/settings") > rank_match_path("/app/:id")

    pages = [
        PageDefinition(path="/app/", component="/a.js", match_path="/app/*"),
        PageDefinition(path="/plain/", component="/p.js"),
        PageDefinition(path="/user/", component="/u.js", match_path="/user/:id"),
        PageDefinition(path="/same/", component="/s.js", match_path="/same/"),
    ]

    assert match_path_entries(pages) == [
        {"path": "/user/", "match_path": "/user/:id"},
        {"path": "/app/", "match_path": "/app/*"},
    ]


def test_write_requires_maps_chunks_to_components(tmp_path: Path) -> None:
    pages = [
        PageDefinition(path="/b/", component="/src/templates/post.js"),
        PageDefinition(path="/a/", component="/src/pages/index.js"),
        PageDefinition(path="/c/", component="/src/templates/post.js"),
    ]

    requires_path, match_paths_path = write_requires(pages, tmp_path)

    components = json.loads(requires_path.read_text(encoding="utf-8"))["components"]
    assert components == {
        component_chunk_name("/src/pages/index.js"): "/src/pages/index.js",
        component_chunk_name("/src/templates/post.js"): "/src/templates/post.js",
    }
    assert json.loads(match_paths_path.read_text(encoding="utf-8")) == []


def test_write_requires_keeps_components_whose_slugs_match(tmp_path: Path) -> None:
    pages = [
        PageDefinition(path="/x/", component="/src/a-b.js"),
        PageDefinition(path="/y/", component="/src/a/b.js"),
    ]

    requires_path, _ = write_requires(pages, tmp_path)

    components = json.loads(requires_path.read_text(encoding="utf-8"))["components"]
    assert sorted(components.values()) == ["/src/a-b.js", "/src/a/b.js"]


def test_write_requires_rejects_a_shared_chunk_name(tmp_path: Path) -> None:
    pages = [
        PageDefinition(path="/x/", component="/src/a.js", component_chunk_name="component---a"),
        PageDefinition(path="/y/", component="/src/b.js", component_chunk_name="component---a"),
    ]

    with pytest.raises(FileIOError, match="shared by"):
        write_requires(pages, tmp_path)


def test_write_redirects_splits_browser_redirects(tmp_path: Path) -> None:
    redirects = [
        Redirect(from_path="/old/", to_path="/new/", is_permanent=True),
        Redirect(from_path="/x/", to_path="/y/", redirect_in_browser=True),
    ]

    payload = json.loads(write_redirects(redirects, tmp_path).read_text(encoding="utf-8"))

    assert len(payload["redirects"]) == 2
    assert payload["browser"] == [
        {"from_path": "/x/", "to_path": "/y/", "is_permanent": False, "redirect_in_browser": True}
    ]


def test_write_into_missing_directory_is_file_io_error(tmp_path: Path) -> None:
    with pytest.raises(FileIOError):
        write_redirects([], tmp_path / "missing")
