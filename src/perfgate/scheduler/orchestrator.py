"""Concurrent audit fan-out with a single completion barrier.

One asyncio task per target runs the audit process. This coroutine
reacts to completions one at a time, so the run state is only ever
touched from a single control flow.
"""

import asyncio
import logging
from collections.abc import Iterable, Sequence

from perfgate.audit.parser import DecodeError, parse_metrics
from perfgate.audit.process import build_command, build_url
from perfgate.config import TaskConfig, resolve_audit_options, resolve_thresholds
from perfgate.console import console
from perfgate.domain.models import (
    DecodeErrorPolicy,
    PreparedTarget,
    ProcessOutput,
    RunMode,
    RunResult,
    RunState,
    RunStatus,
    TargetResult,
)
from perfgate.domain.protocols import ArtifactWriter, AuditRunner, TargetReporter
from perfgate.evaluation.thresholds import evaluate
from perfgate.report.interactive import failure_reason

logger = logging.getLogger(__name__)


def prepare_targets(task: TaskConfig, binary: str) -> list[PreparedTarget]:
    """Resolve thresholds, options and the command line for every target."""
    ci = task.ci
    prepared: list[PreparedTarget] = []
    for target in task.targets:
        thresholds = resolve_thresholds(target, task.options)
        options = resolve_audit_options(target, task.options)
        url = build_url(task.base_url, target.src)
        command = build_command(
            binary,
            task.script,
            url,
            task.mode,
            thresholds,
            options,
            ci_format=ci.format if ci else "junit",
        )
        prepared.append(
            PreparedTarget(
                target=target,
                url=url,
                thresholds=thresholds,
                options=options,
                command=tuple(command),
            )
        )
    return prepared


class Orchestrator:
    """Runs every prepared target and finalizes the run exactly once."""

    def __init__(
        self,
        runner: AuditRunner,
        mode: RunMode,
        *,
        reporter: TargetReporter | None = None,
        artifacts: ArtifactWriter | None = None,
        concurrency: int | None = None,
        policy: DecodeErrorPolicy = DecodeErrorPolicy.ABORT,
    ) -> None:
        if mode == RunMode.INTERACTIVE and reporter is None:
            raise ValueError("interactive mode needs a reporter")
        if mode == RunMode.MACHINE and artifacts is None:
            raise ValueError("machine mode needs an artifact writer")
        self._runner = runner
        self._mode = mode
        self._reporter = reporter
        self._artifacts = artifacts
        self._concurrency = concurrency
        self._policy = policy
        self._state = RunState(total_targets=0)
        self._result: RunResult | None = None

    @property
    def state(self) -> RunState:
        return self._state

    async def run(self, prepared: Sequence[PreparedTarget]) -> RunResult:
        """Audit all *prepared* targets and return the final result."""
        if self._state.status != RunStatus.IDLE:
            raise RuntimeError("an orchestrator runs only once")

        self._state = RunState(total_targets=len(prepared), status=RunStatus.RUNNING)
        self._result = RunResult(state=self._state)
        console.info(f"Testing {len(prepared)} URLs, this might take a few moments...")
        logger.info("Run started with %d targets (mode=%s)", len(prepared), self._mode.value)

        if not prepared:
            return self._finalize(RunStatus.COMPLETED)

        semaphore = asyncio.Semaphore(self._concurrency) if self._concurrency else None
        by_task = {
            asyncio.create_task(self._audit(p, semaphore), name=f"audit-{p.target.index}"): p
            for p in prepared
        }
        pending: set[asyncio.Task[ProcessOutput]] = set(by_task)
        try:
            while pending and not self._state.is_finished:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    self._complete(by_task[task], task.result())
                    if self._state.is_finished:
                        break
        finally:
            await _cancel(pending)

        return self._finalize(RunStatus.COMPLETED)

    async def _audit(
        self, prepared: PreparedTarget, semaphore: asyncio.Semaphore | None
    ) -> ProcessOutput:
        if semaphore is None:
            return await self._runner.run(prepared.command)
        async with semaphore:
            return await self._runner.run(prepared.command)

    def _complete(self, prepared: PreparedTarget, output: ProcessOutput) -> None:
        """Handle one finished audit. Touches only this target's data."""
        self._state.completed_count += 1
        target = prepared.target
        logger.info(
            "Target %d (%s) finished [%d/%d]",
            target.number,
            target.src,
            self._state.completed_count,
            self._state.total_targets,
        )

        if self._mode == RunMode.MACHINE:
            result = self._collect_artifact(prepared, output)
        else:
            result = self._evaluate(prepared, output)
            if result is None:
                return

        assert self._result is not None
        self._result.results.append(result)
        if result.failed:
            self._state.overall_failed = True
            if result.error:
                self._result.reasons.append(result.error)

        if self._state.completed_count >= self._state.total_targets:
            self._finalize(RunStatus.COMPLETED)

    def _collect_artifact(self, prepared: PreparedTarget, output: ProcessOutput) -> TargetResult:
        assert self._artifacts is not None
        target = prepared.target
        if output.timed_out:
            console.warning(f"Audit timed out for {target.src}; report may be empty")
        try:
            path = self._artifacts.write(target, output.stdout)
        except OSError as exc:
            logger.error("Cannot write report for %s: %s", target.src, exc)
            reason = f"Could not write report for {target.src}: {exc}"
            console.error(reason)
            return TargetResult(target=target, output=output, failed=True, error=reason)
        return TargetResult(target=target, output=output, artifact=path)

    def _evaluate(self, prepared: PreparedTarget, output: ProcessOutput) -> TargetResult | None:
        """Parse, evaluate and report one target. None means the run aborted."""
        assert self._reporter is not None
        target = prepared.target

        if output.timed_out:
            reason = f"Audit timed out for {target.src}."
            console.error(reason)
            return TargetResult(target=target, output=output, failed=True, error=reason)

        try:
            metrics = parse_metrics(output.stdout)
        except DecodeError as exc:
            logger.error("Cannot decode output for %s: %s", target.src, exc)
            console.error(output.stdout or output.stderr or "(no output)")
            reason = f"Could not decode audit output for {target.src}: {exc}"
            if self._policy == DecodeErrorPolicy.ABORT:
                assert self._result is not None
                self._result.reasons.append(reason)
                self._finalize(RunStatus.ABORTED)
                return None
            return TargetResult(target=target, output=output, failed=True, error=reason)

        outcome = evaluate(metrics, prepared.thresholds)
        self._reporter.report(target, outcome)
        return TargetResult(
            target=target,
            output=output,
            outcome=outcome,
            failed=outcome.any_failed,
            error=failure_reason(target) if outcome.any_failed else None,
        )

    def _finalize(self, status: RunStatus) -> RunResult:
        """Move to a terminal state. Later calls return the same result."""
        assert self._result is not None
        if self._state.is_finished:
            return self._result
        self._state.status = status
        if status == RunStatus.ABORTED:
            self._state.overall_failed = True
        logger.info(
            "Run %s after %d/%d targets (failed=%s)",
            status.value,
            self._state.completed_count,
            self._state.total_targets,
            self._state.overall_failed,
        )
        return self._result


async def _cancel(tasks: Iterable[asyncio.Task[ProcessOutput]]) -> None:
    """Cancel still-running audits and wait for their processes to go away."""
    pending = [t for t in tasks if not t.done()]
    for task in pending:
        task.cancel()
    if pending:
        logger.info("Cancelling %d in-flight audits", len(pending))
        await asyncio.gather(*pending, return_exceptions=True)
