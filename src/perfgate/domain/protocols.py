"""Protocol interfaces for perfgate components."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from perfgate.domain.models import EvaluationOutcome, ProcessOutput, Target


class BinaryResolver(Protocol):
    """One strategy for locating the audit binary."""

    name: str

    def resolve(self) -> Path | None:
        """Return the binary path, or None to let the next strategy try."""
        ...


class AuditRunner(Protocol):
    """Runs one audit command and captures its output."""

    async def run(self, command: Sequence[str]) -> ProcessOutput:
        """Spawn *command* and wait for it to exit."""
        ...


class TargetReporter(Protocol):
    """Renders the evaluation of one target in interactive mode."""

    def report(self, target: Target, outcome: EvaluationOutcome) -> None:
        """Display the outcome for *target*."""
        ...


class ArtifactWriter(Protocol):
    """Persists raw audit output in machine mode."""

    def write(self, target: Target, stdout: str) -> Path:
        """Write *stdout* for *target* and return the file written."""
        ...
