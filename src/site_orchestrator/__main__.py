"""Module entrypoint for ``python -m site_orchestrator``."""

from __future__ import annotations

from site_orchestrator.main import cli_entrypoint

if __name__ == "__main__":
    raise SystemExit(cli_entrypoint())
