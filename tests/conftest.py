"""Shared pytest fixtures for perfgate tests.

Provides factory fixtures for domain models, a scripted in-memory audit
runner, and a throwaway executable that stands in for PhantomJS.
"""

from __future__ import annotations

import asyncio
import json
import logging
import stat
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

import pytest

from perfgate.console import configure
from perfgate.domain.models import (
    AuditMetrics,
    AuditOptions,
    PreparedTarget,
    ProcessOutput,
    Target,
    ThresholdSet,
)

# ---------------------------------------------------------------------------
# Console / logging isolation
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def plain_console() -> Iterator[None]:
    """Every test prints through the plain backend so capsys sees it."""
    configure(backend="plain")
    yield
    configure(backend="plain")


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


def _yslow_json(r: int = 40, o: int = 85, lt: int = 1500, w: int = 300000) -> str:
    return json.dumps({"r": r, "o": o, "lt": lt, "w": w, "u": "http://example.test/"})


@pytest.fixture()
def yslow_output() -> _YSlowOutputFactory:
    """Factory for a YSlow result as the audit script prints it."""
    return _yslow_json


_YSlowOutputFactory = Any  # callable[..., str]


@pytest.fixture()
def make_metrics() -> _MetricsFactory:
    """Factory for AuditMetrics; defaults pass the scenario thresholds."""

    def _factory(
        *,
        requests: int = 40,
        score: int = 85,
        load_time_ms: int = 1500,
        weight_bytes: int = 300000,
    ) -> AuditMetrics:
        return AuditMetrics(
            requests=requests,
            score=score,
            load_time_ms=load_time_ms,
            weight_bytes=weight_bytes,
        )

    return _factory


_MetricsFactory = Any


@pytest.fixture()
def scenario_thresholds() -> ThresholdSet:
    """requests<=50, score>=80, speed<=2000ms, weight<=500KB."""
    return ThresholdSet(weight=500, requests=50, score=80, speed=2000)


@pytest.fixture()
def make_prepared(scenario_thresholds: ThresholdSet) -> _PreparedFactory:
    """Factory for a PreparedTarget whose command ends with its URL."""

    def _factory(
        index: int,
        src: str | None = None,
        *,
        thresholds: ThresholdSet | None = None,
    ) -> PreparedTarget:
        src = src or f"page{index}.html"
        url = f"http://example.test/{src}"
        return PreparedTarget(
            target=Target(index=index, src=src),
            url=url,
            thresholds=thresholds or scenario_thresholds,
            options=AuditOptions(),
            command=("phantomjs", "yslow.js", url),
        )

    return _factory


_PreparedFactory = Any


# ---------------------------------------------------------------------------
# Scripted runner
# ---------------------------------------------------------------------------


class ScriptedRunner:
    """AuditRunner double keyed by the URL at the end of the command.

    A URL mapped to an ``asyncio.Event`` blocks until the event is set,
    which lets a test hold one audit in flight while others finish.
    """

    def __init__(
        self,
        outputs: dict[str, str | ProcessOutput],
        gates: dict[str, asyncio.Event] | None = None,
    ) -> None:
        self._outputs = outputs
        self._gates = gates or {}
        self.started: list[str] = []
        self.cancelled: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def run(self, command: Sequence[str]) -> ProcessOutput:
        url = command[-1]
        self.started.append(url)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            gate = self._gates.get(url)
            if gate is not None:
                await gate.wait()
            else:
                # Yield a few times so sibling audits get to start.
                for _ in range(3):
                    await asyncio.sleep(0)
        except asyncio.CancelledError:
            self.cancelled.append(url)
            raise
        finally:
            self.in_flight -= 1
        out = self._outputs[url]
        if isinstance(out, ProcessOutput):
            return out
        return ProcessOutput(stdout=out)


@pytest.fixture()
def make_runner() -> _RunnerFactory:
    """Factory for ScriptedRunner."""

    def _factory(
        outputs: dict[str, str | ProcessOutput],
        gates: dict[str, asyncio.Event] | None = None,
    ) -> ScriptedRunner:
        return ScriptedRunner(outputs, gates)

    return _factory


_RunnerFactory = Any


# ---------------------------------------------------------------------------
# Fake PhantomJS executable
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_executable(tmp_path: Path) -> _ExecutableFactory:
    """Factory for a ``/bin/sh`` script in tmp_path, marked executable."""

    def _factory(name: str, body: str) -> Path:
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _factory


_ExecutableFactory = Any


@pytest.fixture()
def fake_phantomjs(tmp_path: Path, make_executable: _ExecutableFactory) -> Path:
    """An executable that records its argv to argv.txt and prints a passing result."""
    args_file = tmp_path / "argv.txt"
    return make_executable(
        "phantomjs",
        f"""for a in "$@"; do echo "$a" >> '{args_file}'; done
echo '{_yslow_json()}'
""",
    )
