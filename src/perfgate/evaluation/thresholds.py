"""Comparing audit metrics against thresholds.

Every bound is inclusive: a value equal to its threshold passes.
A metric with no threshold configured is reported as skipped, never
as passed or failed.
"""

import logging
import operator
from collections.abc import Callable

from perfgate.domain.models import (
    AuditMetrics,
    EvaluationOutcome,
    MetricCheck,
    MetricStatus,
    ThresholdSet,
)

logger = logging.getLogger(__name__)

Comparison = Callable[[float, float], bool]


def _check(
    name: str,
    label: str,
    measured: float,
    threshold: float | None,
    ok: Comparison,
) -> MetricCheck:
    if threshold is None:
        logger.warning("No threshold configured for '%s', skipping", name)
        status = MetricStatus.SKIPPED
    elif ok(measured, threshold):
        status = MetricStatus.PASSED
    else:
        status = MetricStatus.FAILED
    return MetricCheck(
        name=name, label=label, measured=measured, threshold=threshold, status=status
    )


def evaluate(metrics: AuditMetrics, thresholds: ThresholdSet) -> EvaluationOutcome:
    """Evaluate one target's metrics. Reads nothing but its arguments."""
    checks = (
        _check("requests", "Requests", metrics.requests, thresholds.requests, operator.le),
        _check("score", "YSlow score", metrics.score, thresholds.score, operator.ge),
        _check("speed", "Page load time", metrics.load_time_ms, thresholds.speed, operator.le),
        _check("weight", "Page size", metrics.weight_kb, thresholds.weight, operator.le),
    )
    return EvaluationOutcome(checks=checks)
