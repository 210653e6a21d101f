"""
site-orchestrator — integration tests for the CLI

Purpose
- Drive ``cli_entrypoint`` end to end over a throwaway site and check exit codes,
  JSON output and run logs.

What this test file should cover
- Successful build emits deterministic JSON and a JSON-lines run log.
- Config errors map to exit code 2; fatal build failures map to exit code 3.
- ``config`` prints the effective config.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from conftest import SiteFactory
from site_orchestrator.main import ExitCode, cli_entrypoint

_PLUGIN_CONFIG = """
[[plugins]]
name = "docs"
version = "0.3.0"
hooks = ["create_pages"]
options = { api_token = "s3cret" }
"""

_PLUGIN_SOURCE = """
def create_pages(ctx):
    ctx.actions.create_page({"path": "/docs/", "component": "/src/docs.js", "context": {"v": 1}})
"""


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()


def test_build_json_output_and_run_log(
    make_site: SiteFactory, capsys: pytest.CaptureFixture[str]
) -> None:
    site = make_site(_PLUGIN_CONFIG, {"docs": _PLUGIN_SOURCE})

    code = cli_entrypoint(["build", str(site), "--json"])

    assert code == ExitCode.SUCCESS
    payload = json.loads(capsys.readouterr().out)
    assert payload["command"] == "build"
    assert [page["path"] for page in payload["pages"]] == ["/docs/"]
    assert payload["phases"][0] == {"name": "open-config", "status": "completed", "failures": []}

    (log_file,) = (site / ".site-logs").glob("*/build.jsonl")
    assert log_file.parent.name == payload["run_id"]
    messages = [json.loads(line)["message"] for line in log_file.read_text(encoding="utf-8").splitlines()]
    assert "bootstrap_started" in messages
    assert "bootstrap_finished" in messages
    assert "s3cret" not in log_file.read_text(encoding="utf-8")


def test_build_renders_human_summary(
    make_site: SiteFactory, capsys: pytest.CaptureFixture[str]
) -> None:
    site = make_site()

    assert cli_entrypoint(["build", str(site), "--no-color"]) == ExitCode.SUCCESS
    assert "write-requires" in capsys.readouterr().out


def test_invalid_config_exits_with_config_error(
    make_site: SiteFactory, capsys: pytest.CaptureFixture[str]
) -> None:
    site = make_site("[build]\nmax_concurrency = -1\n")

    assert cli_entrypoint(["build", str(site)]) == ExitCode.CONFIG_ERROR
    assert "build.max_concurrency" in capsys.readouterr().err


def test_fatal_build_failure_exits_with_build_failed(
    make_site: SiteFactory, capsys: pytest.CaptureFixture[str]
) -> None:
    site = make_site(
        """
        [[plugins]]
        name = "missing-hook"
        hooks = ["source_nodes"]
        """,
        {"missing-hook": "def create_pages(ctx):\n    pass\n"},
    )

    assert cli_entrypoint(["build", str(site)]) == ExitCode.BUILD_FAILED
    assert "load-plugins" in capsys.readouterr().err


def test_config_command_prints_effective_config(
    make_site: SiteFactory, capsys: pytest.CaptureFixture[str]
) -> None:
    site = make_site("[build]\nmax_concurrency = 3\n")

    assert cli_entrypoint(["config", str(site), "--json"]) == ExitCode.SUCCESS
    assert json.loads(capsys.readouterr().out)["build"]["max_concurrency"] == 3
