"""perfgate.console._plain -- Plain-text fallback backend.

Used when Rich is not wanted or stdout is not a TTY.
"""

from __future__ import annotations

from perfgate.console._protocol import AUDIT_COLUMNS


class PlainBackend:
    """ConsoleProtocol implementation using only built-in print()."""

    # -- General messages ---------------------------------------------------

    def info(self, message: str) -> None:
        print(f"  {message}")

    def success(self, message: str) -> None:
        print(f"  [ok] {message}")

    def warning(self, message: str) -> None:
        print(f"  [warn] {message}")

    def error(self, message: str) -> None:
        print(f"  [error] {message}")

    # -- Structured output --------------------------------------------------

    def table(self, headers: list[str], rows: list[list[str]], *, title: str = "") -> None:
        if title:
            print(f"\n  {title}:")

        if not headers and not rows:
            return

        all_rows = [headers, *rows]
        col_widths = [
            max(len(str(row[i])) if i < len(row) else 0 for row in all_rows)
            for i in range(len(headers))
        ]

        print("  " + "  ".join(h.ljust(w) for h, w in zip(headers, col_widths, strict=True)))
        print("  " + "  ".join("-" * w for w in col_widths))
        for row in rows:
            cells = [
                str(row[i]).ljust(col_widths[i]) if i < len(row) else " " * col_widths[i]
                for i in range(len(headers))
            ]
            print("  " + "  ".join(cells))

    def audit_block(self, header: str, rows: list[tuple[str, str, str]], *, passed: bool) -> None:
        suffix = "" if passed else " -- FAILED"
        print(f"\n{header}{suffix}")
        for row in rows:
            line = "".join(
                cell.ljust(width) for cell, width in zip(row, AUDIT_COLUMNS, strict=True)
            )
            print(f">> {line.rstrip()}")

    def run_result(self, name: str, success: bool, completed: int, total: int) -> None:
        icon = "✓" if success else "✗"
        word = "passed" if success else "failed"
        print()
        print(f"━━ {icon} {name} {word} ── {completed}/{total} targets ━━")
