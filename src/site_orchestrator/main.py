"""Process entrypoint: runs the CLI and turns any escaping exception into an exit code."""

from __future__ import annotations

import sys
import traceback
from collections.abc import Iterator, Sequence
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    CONFIG_ERROR = 2
    BUILD_FAILED = 3
    INTERNAL_ERROR = 4


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Run ``site-orchestrator`` and return its exit status.

    Configuration problems exit 2, fatal build failures exit 3 and anything
    unexpected exits 4 with a traceback on stderr.
    """

    from site_orchestrator.ui.cli import run_cli

    try:
        return _as_exit_status(run_cli(argv))
    except SystemExit as exc:
        return _as_exit_status(exc.code)
    except Exception as exc:
        code = _route_exception(exc)
        if code is ExitCode.INTERNAL_ERROR:
            traceback.print_exception(exc, file=sys.stderr)
        else:
            print(str(exc).strip() or type(exc).__name__, file=sys.stderr)
        return int(code)


def console_script() -> None:
    raise SystemExit(cli_entrypoint())


def _as_exit_status(raw: object) -> int:
    if raw is None:
        return int(ExitCode.SUCCESS)
    if isinstance(raw, int) and raw in {code.value for code in ExitCode}:
        return raw
    if isinstance(raw, str) and raw.strip():
        print(raw.strip(), file=sys.stderr)
    return int(ExitCode.INTERNAL_ERROR)


def _route_exception(exc: BaseException) -> ExitCode:
    from site_orchestrator.domain.errors import BuildFailedError, ConfigurationError, is_fatal

    chain = list(_causes(exc))
    if any(isinstance(item, ConfigurationError) for item in chain):
        return ExitCode.CONFIG_ERROR
    if any(isinstance(item, BuildFailedError) or is_fatal(item) for item in chain):
        return ExitCode.BUILD_FAILED
    return ExitCode.INTERNAL_ERROR


def _causes(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


__all__ = ["ExitCode", "cli_entrypoint", "console_script"]
