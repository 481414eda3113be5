"""Tests for threshold evaluation."""

from typing import Any

from perfgate.domain.models import MetricStatus, ThresholdSet
from perfgate.evaluation.thresholds import evaluate


def _statuses(outcome: Any) -> dict[str, MetricStatus]:
    return {c.name: c.status for c in outcome.checks}


class TestEvaluate:
    def test_all_pass(self, make_metrics: Any, scenario_thresholds: ThresholdSet) -> None:
        outcome = evaluate(make_metrics(), scenario_thresholds)
        assert set(_statuses(outcome).values()) == {MetricStatus.PASSED}
        assert not outcome.any_failed

    def test_order_is_fixed(self, make_metrics: Any, scenario_thresholds: ThresholdSet) -> None:
        outcome = evaluate(make_metrics(), scenario_thresholds)
        assert [c.name for c in outcome.checks] == ["requests", "score", "speed", "weight"]
        assert [c.label for c in outcome.checks] == [
            "Requests",
            "YSlow score",
            "Page load time",
            "Page size",
        ]

    def test_too_many_requests(self, make_metrics: Any, scenario_thresholds: ThresholdSet) -> None:
        outcome = evaluate(make_metrics(requests=60), scenario_thresholds)
        statuses = _statuses(outcome)
        assert statuses["requests"] == MetricStatus.FAILED
        assert statuses["score"] == MetricStatus.PASSED
        assert statuses["speed"] == MetricStatus.PASSED
        assert statuses["weight"] == MetricStatus.PASSED
        assert outcome.any_failed

    def test_low_score_fails(self, make_metrics: Any, scenario_thresholds: ThresholdSet) -> None:
        outcome = evaluate(make_metrics(score=79), scenario_thresholds)
        assert _statuses(outcome)["score"] == MetricStatus.FAILED
        assert outcome.any_failed

    def test_boundaries_pass(self, make_metrics: Any, scenario_thresholds: ThresholdSet) -> None:
        metrics = make_metrics(requests=50, score=80, load_time_ms=2000, weight_bytes=500000)
        outcome = evaluate(metrics, scenario_thresholds)
        assert not outcome.any_failed

    def test_slow_page_fails(self, make_metrics: Any, scenario_thresholds: ThresholdSet) -> None:
        outcome = evaluate(make_metrics(load_time_ms=2001), scenario_thresholds)
        assert _statuses(outcome)["speed"] == MetricStatus.FAILED

    def test_weight_uses_decimal_kilobytes(self, make_metrics: Any) -> None:
        metrics = make_metrics(weight_bytes=734000)
        heavy = evaluate(metrics, ThresholdSet(weight=700))
        light = evaluate(metrics, ThresholdSet(weight=800))
        assert _statuses(heavy)["weight"] == MetricStatus.FAILED
        assert _statuses(light)["weight"] == MetricStatus.PASSED
        assert heavy.checks[3].measured == 734

    def test_unconfigured_thresholds_are_skipped(self, make_metrics: Any) -> None:
        outcome = evaluate(make_metrics(requests=10_000), ThresholdSet(score=80))
        statuses = _statuses(outcome)
        assert statuses["requests"] == MetricStatus.SKIPPED
        assert statuses["score"] == MetricStatus.PASSED
        assert not outcome.any_failed
        assert outcome.skipped == ["requests", "speed", "weight"]

    def test_nothing_configured_never_fails(self, make_metrics: Any) -> None:
        outcome = evaluate(make_metrics(score=0), ThresholdSet())
        assert not outcome.any_failed
        assert all(c.passed for c in outcome.checks)
