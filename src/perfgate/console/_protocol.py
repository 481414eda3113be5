"""perfgate.console._protocol -- ConsoleProtocol definition.

Pure standard-library typing.Protocol for perfgate's terminal output.
No external dependencies allowed in this file.
"""

from __future__ import annotations

from typing import Protocol

# Fixed column widths of the per-target metric table.
AUDIT_COLUMNS = (20, 15, 55)

PASS = "[PASS]"
FAIL = "[FAIL]"
SKIP = "[SKIP]"


class ConsoleProtocol(Protocol):
    """perfgate terminal output protocol.

    **General messages**::

        console.info("Testing 3 URLs, this might take a few moments...")
        console.success("Report for index.html collected")
        console.warning("Threshold limit exhausted while testing index.html.")
        console.error("Audit output could not be decoded")

    **Structured output**::

        console.table(["Test", "URL"], [["1", "index.html"]], title="pages")
        console.audit_block("Test 1: index.html", rows, passed=True)
    """

    # -- General messages ---------------------------------------------------

    def info(self, message: str) -> None:
        """Informational message."""
        ...

    def success(self, message: str) -> None:
        """Success / positive-outcome message."""
        ...

    def warning(self, message: str) -> None:
        """Warning message."""
        ...

    def error(self, message: str) -> None:
        """Error message."""
        ...

    # -- Structured output --------------------------------------------------

    def table(self, headers: list[str], rows: list[list[str]], *, title: str = "") -> None:
        """Display a table with *headers* and *rows*."""
        ...

    def audit_block(self, header: str, rows: list[tuple[str, str, str]], *, passed: bool) -> None:
        """Display one target's metric table under *header*.

        Each row is ``(label, measured, status)``; the whole block is
        styled as a success or a failure depending on *passed*.
        """
        ...

    def run_result(self, name: str, success: bool, completed: int, total: int) -> None:
        """Display the end-of-run summary line."""
        ...
