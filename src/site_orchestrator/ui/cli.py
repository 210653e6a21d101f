"""Command-line interface router for site-orchestrator."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from pathlib import Path

from site_orchestrator.bootstrap import BuildOrchestrator
from site_orchestrator.config import dump_effective_config, load_config
from site_orchestrator.domain import ids
from site_orchestrator.domain.models import BuildResult
from site_orchestrator.observability import (
    LoggingConfig,
    setup_structured_logging,
    shutdown_logging,
)
from site_orchestrator.ui.render import create_renderer

# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router."""

    parser = argparse.ArgumentParser(
        prog="site-orchestrator",
        description=(
            "site-orchestrator — plugin-driven static site bootstrap.\n\n"
            "Common workflows:\n"
            "  site-orchestrator build .               Bootstrap the site in the cwd\n"
            "  site-orchestrator build . --production  Production bootstrap\n"
            "  site-orchestrator config .              Show the effective config\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "site_directory",
        nargs="?",
        default=".",
        help="Site root directory (default: current working directory).",
    )
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to the site TOML config (default: <site>/site.toml if present).",
    )
    common.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Emit deterministic JSON output.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser_ = subparsers.add_parser(
        "build",
        parents=[common],
        help="Run the bootstrap sequence.",
        description="Load plugins, reconcile the cache, and run every bootstrap phase.",
    )
    build_parser_.add_argument(
        "--production",
        action="store_true",
        default=False,
        help="Production mode; enables stale artifact deletion.",
    )
    build_parser_.add_argument(
        "--log-level",
        default=None,
        help="Override observability.log_level for this run.",
    )
    build_parser_.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )
    build_parser_.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Mirror JSON log lines to stdout.",
    )
    build_parser_.set_defaults(handler=_cmd_build)

    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Print the effective site config.",
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2
    return int(handler(namespace))


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_build(args: argparse.Namespace) -> int:
    site_directory = Path(args.site_directory)
    overrides: dict[str, object] = {}
    if args.production:
        overrides["build.production"] = True
    if args.log_level:
        overrides["observability.log_level"] = args.log_level
    if args.verbose:
        overrides["observability.log_to_stdout"] = True

    # Loaded once here for logging settings; the open-config phase reloads it.
    config = load_config(site_directory, config_path=args.config_path, overrides=overrides)
    observability = config["observability"]
    run_id = ids.generate_run_id()
    handle = setup_structured_logging(
        LoggingConfig(
            run_id=run_id,
            base_log_dir=observability["log_dir"],
            level=observability["log_level"],
            log_to_stdout=bool(observability["log_to_stdout"]),
        )
    )
    try:
        orchestrator = BuildOrchestrator(
            site_directory,
            config_path=args.config_path,
            overrides=overrides,
            run_id=run_id,
        )
        result = asyncio.run(orchestrator.run())
    finally:
        shutdown_logging(handle)

    if args.json:
        _emit_json(_result_payload(result))
    else:
        create_renderer(no_color=args.no_color).build_summary(result)
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    config = load_config(Path(args.site_directory), config_path=args.config_path)
    if args.json:
        print(dump_effective_config(config))
    else:
        print(json.dumps(config, indent=2, sort_keys=True, ensure_ascii=False))
    return 0


def _result_payload(result: BuildResult) -> dict[str, object]:
    return {
        "command": "build",
        "run_id": result.run_id,
        "site_directory": result.site_directory,
        "fingerprint": result.fingerprint,
        "cache_wiped": result.cache_wiped,
        "extensions": list(result.extensions),
        "pages": [page.to_dict() for page in result.pages],
        "phases": [
            {
                "name": outcome.name,
                "status": outcome.status.value,
                "failures": list(outcome.failures),
            }
            for outcome in result.phases
        ],
        "hook_failures": list(result.hook_failures),
    }


def _emit_json(payload: object) -> None:
    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


__all__ = ["build_parser", "run_cli"]
