"""
site-orchestrator — unit tests for structured logging

Purpose
- Validate JSON-lines output, correlation context binding and redaction.

What this test file should cover
- structlog events land in ``<log_dir>/<run_id>/build.jsonl`` as one JSON object per line.
- Correlation fields bound by ``correlation_scope`` appear on each record.
- Credential-like fields are redacted; shutdown is idempotent.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog

from site_orchestrator.observability.logging import (
    LoggingConfig,
    correlation_scope,
    default_log_redactor,
    get_active_logging_handle,
    get_correlation_context,
    setup_structured_logging,
    shutdown_logging,
)


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    shutdown_logging()
    structlog.reset_defaults()


def _records(path: Path) -> list[dict[str, object]]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_structlog_events_are_written_as_json_lines(tmp_path: Path) -> None:
    handle = setup_structured_logging(LoggingConfig(run_id="run-1", base_log_dir=tmp_path))
    log = structlog.get_logger("site_orchestrator.tests")

    with correlation_scope(phase="create-pages", plugin="blog@1.0.0"):
        log.info("pages_created", count=3, options={"api_token": "abc", "limit": 5})
    log.debug("too_quiet")
    shutdown_logging(handle)

    assert handle.log_path == tmp_path / "run-1" / "build.jsonl"
    (record,) = _records(handle.log_path)
    assert record["message"] == "pages_created"
    assert record["level"] == "INFO"
    assert record["run_id"] == "run-1"
    assert record["phase"] == "create-pages"
    assert record["plugin"] == "blog@1.0.0"
    assert record["fields"] == {
        "count": 3,
        "options": {"api_token": "***REDACTED***", "limit": 5},
    }


def test_log_level_is_respected(tmp_path: Path) -> None:
    handle = setup_structured_logging(
        LoggingConfig(run_id="run-2", base_log_dir=tmp_path, level="DEBUG")
    )

    structlog.get_logger("site_orchestrator.tests").debug("verbose_detail")
    shutdown_logging(handle)

    assert [record["message"] for record in _records(handle.log_path)] == ["verbose_detail"]


def test_correlation_scope_nests_and_restores() -> None:
    with correlation_scope(run_id="r"):
        with correlation_scope(phase="p"):
            assert get_correlation_context() == {"run_id": "r", "phase": "p"}
            with correlation_scope(phase=None):
                assert get_correlation_context() == {"run_id": "r"}
        assert get_correlation_context() == {"run_id": "r"}
    assert get_correlation_context() == {}


def test_correlation_scope_rejects_unknown_keys() -> None:
    with pytest.raises(ValueError, match="unsupported correlation key"):
        with correlation_scope(user="someone"):
            pass


def test_redactor_masks_nested_credentials() -> None:
    redacted = default_log_redactor(
        {"plugins": [{"options": {"password": "x", "Authorization": "Bearer y", "ok": 1}}]}
    )

    assert redacted == {
        "plugins": [
            {"options": {"password": "***REDACTED***", "Authorization": "***REDACTED***", "ok": 1}}
        ]
    }


def test_shutdown_is_idempotent_and_clears_active_handle(tmp_path: Path) -> None:
    handle = setup_structured_logging(LoggingConfig(run_id="run-3", base_log_dir=tmp_path))
    assert get_active_logging_handle() is handle

    shutdown_logging()
    shutdown_logging(handle)

    assert handle.is_shutdown
    assert get_active_logging_handle() is None


def test_invalid_configuration_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        setup_structured_logging(LoggingConfig(run_id=" ", base_log_dir=tmp_path))
    with pytest.raises(ValueError):
        setup_structured_logging(LoggingConfig(run_id="r", base_log_dir=tmp_path, level="LOUD"))
