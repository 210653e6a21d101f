"""Plain-text build summaries for the terminal.

Status cells are colored only when writing to a TTY and neither ``--no-color``
nor ``NO_COLOR`` is set, so piped output stays free of escape codes.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from collections.abc import Sequence

    from site_orchestrator.domain.models import BuildResult

_STATUS_COLORS = {
    "completed": "32",
    "skipped": "90",
    "degraded": "33",
    "failed": "31",
}


class CLIRenderer:
    def __init__(self, *, no_color: bool = False, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout
        isatty = getattr(self._stream, "isatty", None)
        self._color = (
            not no_color and not os.environ.get("NO_COLOR") and callable(isatty) and isatty()
        )

    def build_summary(self, result: BuildResult) -> None:
        """Header facts, one row per phase, then any plugin failures."""

        self._line(f"Bootstrap finished for {result.site_directory}")
        for label, value in (
            ("Run", result.run_id),
            ("Pages", len(result.pages)),
            ("Cache wiped", "yes" if result.cache_wiped else "no"),
            ("Extensions", ", ".join(result.extensions)),
        ):
            self._line(f"{label}: {value}")

        self._line("\nPhases:")
        self._table(
            ("Phase", "Status", "Duration"),
            [
                (outcome.name, outcome.status.value, f"{outcome.duration_seconds:.3f}s")
                for outcome in result.phases
            ],
        )
        if result.hook_failures:
            self._line("\nPlugin failures:")
            for failure in result.hook_failures:
                self._line(f"  - {failure}")

    def _table(self, headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        widths = [
            max(len(str(cells[i])) for cells in (headers, *rows)) for i in range(len(headers))
        ]

        def fmt(cells: Sequence[str]) -> str:
            padded = (self._paint(str(cell).ljust(width)) for cell, width in zip(cells, widths))
            return "  " + "  ".join(padded).rstrip()

        self._line(fmt(headers))
        self._line("  " + "  ".join("-" * width for width in widths))
        for row in rows:
            self._line(fmt(row))

    def _paint(self, cell: str) -> str:
        code = _STATUS_COLORS.get(cell.strip())
        if not self._color or code is None:
            return cell
        return f"\x1b[{code}m{cell}\x1b[0m"

    def _line(self, text: str) -> None:
        print(text, file=self._stream)


def create_renderer(*, no_color: bool = False) -> CLIRenderer:
    return CLIRenderer(no_color=no_color)


__all__ = ["CLIRenderer", "create_renderer"]
