"""perfgate.console._rich -- Rich-based backend.

Coloured pass/fail tables and messages using the Rich library.
"""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.rule import Rule
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from perfgate.console._protocol import AUDIT_COLUMNS, FAIL, PASS, SKIP

_THEME = Theme(
    {
        "info": "blue",
        "success": "bold green",
        "warning": "bold yellow",
        "error": "bold red",
        "pass": "bold green",
        "fail": "bold red",
        "skip": "bold yellow",
        "subhead": "bold underline",
        "dim": "dim",
    }
)

_MARKER_STYLES = {PASS: "pass", FAIL: "fail", SKIP: "skip"}


def _status_text(status: str) -> Text:
    """Colour the leading [PASS]/[FAIL]/[SKIP] marker of a status cell."""
    for marker, style in _MARKER_STYLES.items():
        if status.startswith(marker):
            text = Text(marker, style=style)
            text.append(status[len(marker) :])
            return text
    return Text(status)


class RichBackend:
    """ConsoleProtocol implementation backed by Rich."""

    def __init__(self, console: Console | None = None) -> None:
        self._con = console or Console(theme=_THEME, highlight=False)

    # -- General messages ---------------------------------------------------

    def info(self, message: str) -> None:
        self._con.print(f"  {message}", style="info", markup=False)

    def success(self, message: str) -> None:
        self._con.print(f"  ✓ {message}", style="success", markup=False)

    def warning(self, message: str) -> None:
        self._con.print(f"  ⚠ {message}", style="warning", markup=False)

    def error(self, message: str) -> None:
        self._con.print(f"  ✗ {message}", style="error", markup=False)

    # -- Structured output --------------------------------------------------

    def table(self, headers: list[str], rows: list[list[str]], *, title: str = "") -> None:
        t = Table(title=title or None, box=box.SIMPLE, show_edge=False, pad_edge=True)
        for h in headers:
            t.add_column(h)
        for r in rows:
            t.add_row(*r)
        self._con.print(t)

    def audit_block(self, header: str, rows: list[tuple[str, str, str]], *, passed: bool) -> None:
        self._con.print()
        self._con.print(Text(header, style="subhead"))
        border = "green" if passed else "red"
        t = Table(box=box.SIMPLE, show_header=False, show_edge=False, border_style=border)
        for width in AUDIT_COLUMNS:
            t.add_column(width=width, no_wrap=True, overflow="ellipsis")
        for label, measured, status in rows:
            t.add_row(Text(label), Text(measured), _status_text(status))
        self._con.print(t)

    def run_result(self, name: str, success: bool, completed: int, total: int) -> None:
        icon = "✓" if success else "✗"
        word = "passed" if success else "failed"
        style = "green" if success else "red"
        self._con.print()
        self._con.print(
            Rule(f" {icon} {name} {word} ── {completed}/{total} targets ", style=style),
        )
