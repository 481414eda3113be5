"""Human-readable pass/fail tables for interactive runs."""

from perfgate.console import console
from perfgate.console._protocol import FAIL, PASS, SKIP
from perfgate.domain.models import EvaluationOutcome, MetricCheck, MetricStatus, Target

# metric name -> (measured format, threshold format)
_FORMATS = {
    "requests": ("{}", "{} requests"),
    "score": ("{}/100", "{}"),
    "speed": ("{}ms", "{}ms"),
    "weight": ("{}Kb", "{}Kb"),
}


def _number(value: float) -> int | float:
    """Drop a trailing .0 but keep every other digit."""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def format_check(check: MetricCheck) -> tuple[str, str, str]:
    """Return the (label, measured, status) cells for one metric."""
    measured_fmt, threshold_fmt = _FORMATS[check.name]
    measured = measured_fmt.format(_number(check.measured))
    if check.status == MetricStatus.PASSED:
        status = PASS
    elif check.status == MetricStatus.SKIPPED:
        status = f"{SKIP} no threshold configured"
    else:
        status = f"{FAIL} threshold is {threshold_fmt.format(_number(check.threshold))}"
    return check.label, measured, status


def target_header(target: Target) -> str:
    return f"Test {target.number}: {target.src}"


def failure_reason(target: Target) -> str:
    return f"Threshold limit exhausted while testing {target.src}."


class InteractiveReporter:
    """Prints one block per target, styled by whether any metric failed."""

    def report(self, target: Target, outcome: EvaluationOutcome) -> None:
        rows = [format_check(c) for c in outcome.checks]
        console.audit_block(target_header(target), rows, passed=not outcome.any_failed)
        if outcome.any_failed:
            console.warning(failure_reason(target))
