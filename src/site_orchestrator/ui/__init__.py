"""UI package exports for the CLI and its plain-text renderer."""

from site_orchestrator.ui.cli import build_parser, run_cli
from site_orchestrator.ui.render import CLIRenderer, create_renderer

__all__ = ["CLIRenderer", "build_parser", "create_renderer", "run_cli"]
