"""perfgate.console -- terminal output system.

Usage (any module)::

    from perfgate.console import console

    console.info("Hello")
    console.audit_block("Test 1: index.html", rows, passed=True)

Configuration (call once in ``cli.py:main()``)::

    from perfgate.console import configure

    configure(backend="auto")  # "rich" | "plain" | "auto"
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from perfgate.console._plain import PlainBackend

if TYPE_CHECKING:
    from perfgate.console._protocol import ConsoleProtocol

# ---------------------------------------------------------------------------
# Global singleton -- defaults to PlainBackend
# ---------------------------------------------------------------------------

_backend: ConsoleProtocol = PlainBackend()


def configure(*, backend: str = "auto") -> None:
    """Select the console backend.

    Args:
        backend: ``"rich"`` -- always use Rich.
                 ``"plain"`` -- always use plain text.
                 ``"auto"`` (default) -- Rich when stdout is a TTY,
                 plain otherwise.
    """
    global _backend  # noqa: PLW0603

    if backend == "auto":
        backend = "rich" if sys.stdout.isatty() else "plain"

    if backend == "plain":
        _backend = PlainBackend()
    elif backend == "rich":
        from perfgate.console._rich import RichBackend

        _backend = RichBackend()
    else:
        msg = f"unknown console backend: {backend!r}"
        raise ValueError(msg)


def get_console() -> ConsoleProtocol:
    """Return the current backend instance."""
    return _backend


# ---------------------------------------------------------------------------
# Proxy object -- ``from perfgate.console import console``
# ---------------------------------------------------------------------------


class _ConsoleProxy:
    """Delegates to the current ``_backend`` so later configure() calls apply."""

    def __getattr__(self, name: str) -> object:
        return getattr(_backend, name)


console: ConsoleProtocol = _ConsoleProxy()  # type: ignore[assignment]
