"""Core data models for perfgate."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class RunMode(Enum):
    """How results are reported."""

    INTERACTIVE = "interactive"
    MACHINE = "machine"


class RunStatus(Enum):
    """Lifecycle of a single run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


class MetricStatus(Enum):
    """Outcome of comparing one metric against its threshold."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


class DecodeErrorPolicy(Enum):
    """What to do when an audit's output cannot be decoded."""

    ABORT = "abort"
    COLLECT = "collect"


@dataclass(frozen=True)
class Target:
    """One page under audit."""

    index: int
    src: str
    overrides: dict[str, Any] = field(default_factory=lambda: dict[str, Any]())

    @property
    def number(self) -> int:
        """One-based position, as shown to humans."""
        return self.index + 1


@dataclass(frozen=True)
class ThresholdSet:
    """Resolved thresholds for one target. ``None`` means not configured."""

    weight: float | None = None
    requests: float | None = None
    score: float | None = None
    speed: float | None = None


@dataclass(frozen=True)
class AuditOptions:
    """Extra settings forwarded to the audit script."""

    user_agent: str | None = None
    cdns: tuple[str, ...] = ()
    viewport: str | None = None
    headers: dict[str, str] = field(default_factory=lambda: dict[str, str]())


@dataclass(frozen=True)
class AuditMetrics:
    """Decoded result of one audit."""

    requests: int
    score: int
    load_time_ms: int
    weight_bytes: int

    @property
    def weight_kb(self) -> float:
        """Page weight in decimal kilobytes."""
        return self.weight_bytes / 1000


@dataclass(frozen=True)
class MetricCheck:
    """A single metric compared against its threshold."""

    name: str
    label: str
    measured: float
    threshold: float | None
    status: MetricStatus

    @property
    def passed(self) -> bool:
        return self.status != MetricStatus.FAILED


@dataclass(frozen=True)
class EvaluationOutcome:
    """All metric checks for one target, in display order."""

    checks: tuple[MetricCheck, ...]

    @property
    def any_failed(self) -> bool:
        """True if at least one check failed."""
        return any(c.status == MetricStatus.FAILED for c in self.checks)

    @property
    def skipped(self) -> list[str]:
        """Names of metrics that had no threshold configured."""
        return [c.name for c in self.checks if c.status == MetricStatus.SKIPPED]


@dataclass(frozen=True)
class ProcessOutput:
    """Captured output of one audit process."""

    stdout: str
    stderr: str = ""
    returncode: int | None = 0
    timed_out: bool = False


@dataclass(frozen=True)
class PreparedTarget:
    """A target with everything resolved, ready to be spawned."""

    target: Target
    url: str
    thresholds: ThresholdSet
    options: AuditOptions
    command: tuple[str, ...]


@dataclass
class TargetResult:
    """What happened to one target."""

    target: Target
    output: ProcessOutput
    outcome: EvaluationOutcome | None = None
    artifact: Path | None = None
    failed: bool = False
    error: str | None = None


@dataclass
class RunState:
    """Progress of one run. Mutated only by the orchestrator."""

    total_targets: int
    completed_count: int = 0
    overall_failed: bool = False
    status: RunStatus = RunStatus.IDLE

    @property
    def is_finished(self) -> bool:
        return self.status in (RunStatus.COMPLETED, RunStatus.ABORTED)


@dataclass
class RunResult:
    """Final result of a run, produced exactly once."""

    state: RunState
    results: list[TargetResult] = field(default_factory=lambda: list[TargetResult]())
    reasons: list[str] = field(default_factory=lambda: list[str]())

    @property
    def failed(self) -> bool:
        return self.state.overall_failed

    @property
    def aborted(self) -> bool:
        return self.state.status == RunStatus.ABORTED
