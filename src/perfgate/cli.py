"""CLI entry point for perfgate.

Usage:
  perfgate [-c FILE] [--plain] [--verbose] run [TASK ...] [--ci] [--report-path DIR]
           [--format FMT] [--concurrency N] [--timeout S]
           [--on-decode-error abort|collect] [--dry-run]
  perfgate [-c FILE] targets [TASK ...]
  perfgate [-c FILE] init
"""

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Any

from perfgate.audit.discovery import default_resolvers, find_binary
from perfgate.audit.process import AuditProcessRunner
from perfgate.config import (
    CONFIG_FILE,
    THRESHOLD_KEYS,
    ConfigError,
    TaskConfig,
    load_config,
    logs_dir,
    resolve_thresholds,
    select_tasks,
)
from perfgate.console import configure, console
from perfgate.domain.models import PreparedTarget, RunMode, RunResult
from perfgate.report.artifacts import ArtifactReporter
from perfgate.report.interactive import InteractiveReporter
from perfgate.scheduler.orchestrator import Orchestrator, prepare_targets

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ABORTED = 2
EXIT_CONFIG = 3

_STARTER_CONFIG = """\
# perfgate configuration
options:
  thresholds:
    weight: 500      # KB
    requests: 50
    score: 80        # 0-100
    speed: 2000      # ms
  yslowOptions: {}
  timeout: 300
  # ci:
  #   format: junit
  #   reportPath: reports
tasks:
  pages:
    baseUrl: "http://localhost:8000/"
    files:
      - src: index.html
"""


def _setup_logging(project_dir: Path, level: int = logging.INFO) -> None:
    """Configure file logging to .perfgate/logs/perfgate.log."""
    log_dir = logs_dir(project_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "perfgate.log"

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def _apply_overrides(task: TaskConfig, args: argparse.Namespace) -> TaskConfig:
    """Layer command-line flags over the task's file options.

    --report-path and --format only make sense for report files, so either
    one switches the task to machine mode just like --ci.
    """
    options: dict[str, Any] = dict(task.options)
    if args.ci or args.report_path or args.format:
        raw = options.get("ci")
        ci: dict[str, Any] = dict(raw) if isinstance(raw, dict) else {}
        if args.report_path:
            ci["reportPath"] = str(args.report_path)
        if args.format:
            ci["format"] = args.format
        options["ci"] = ci
    if args.timeout is not None:
        options["timeout"] = args.timeout
    if args.concurrency is not None:
        options["concurrency"] = args.concurrency
    if args.on_decode_error:
        options["onDecodeError"] = args.on_decode_error
    return dataclasses.replace(task, options=options)


async def _run_task(task: TaskConfig, prepared: list[PreparedTarget]) -> RunResult:
    runner = AuditProcessRunner(timeout=task.timeout)
    ci = task.ci
    if task.mode == RunMode.MACHINE:
        assert ci is not None
        orchestrator = Orchestrator(
            runner,
            RunMode.MACHINE,
            artifacts=ArtifactReporter(ci.report_path, ci.format),
            concurrency=task.concurrency,
            policy=task.decode_error_policy,
        )
    else:
        orchestrator = Orchestrator(
            runner,
            RunMode.INTERACTIVE,
            reporter=InteractiveReporter(),
            concurrency=task.concurrency,
            policy=task.decode_error_policy,
        )
    return await orchestrator.run(prepared)


def _show_commands(task: TaskConfig, prepared: list[PreparedTarget]) -> None:
    rows = [[str(p.target.number), p.url, " ".join(p.command)] for p in prepared]
    console.table(["#", "URL", "Command"], rows, title=f"{task.name} (dry run)")


def cmd_run(args: argparse.Namespace) -> int:
    """Audit every target of the selected tasks."""
    project_dir = Path.cwd()
    tasks = [_apply_overrides(t, args) for t in select_tasks(load_config(args.config), args.tasks)]

    exit_code = EXIT_OK
    for task in tasks:
        binary = find_binary(default_resolvers(project_dir, task.binary))
        prepared = prepare_targets(task, binary)

        if args.dry_run:
            _show_commands(task, prepared)
            continue

        console.info(f"Running task '{task.name}' ({task.mode.value} mode)")
        result = asyncio.run(_run_task(task, prepared))
        state = result.state
        console.run_result(task.name, not result.failed, state.completed_count, state.total_targets)

        for reason in result.reasons:
            console.error(reason)
        if result.aborted:
            logger.error("Task '%s' aborted", task.name)
            return EXIT_ABORTED
        if result.failed:
            exit_code = EXIT_FAILED
    return exit_code


def cmd_targets(args: argparse.Namespace) -> int:
    """List targets with their resolved thresholds."""
    for task in select_tasks(load_config(args.config), args.tasks):
        rows: list[list[str]] = []
        for target in task.targets:
            thresholds = resolve_thresholds(target, task.options)
            values = [getattr(thresholds, key) for key in THRESHOLD_KEYS]
            rows.append(
                [str(target.number), f"{task.base_url}{target.src}"]
                + ["-" if v is None else f"{v:g}" for v in values]
            )
        console.table(
            ["#", "URL", "Weight (KB)", "Requests", "Score", "Speed (ms)"],
            rows,
            title=f"{task.name} ({task.mode.value})",
        )
    return EXIT_OK


def cmd_init(args: argparse.Namespace) -> int:
    """Write a starter configuration file."""
    path: Path = args.config
    if path.exists():
        console.warning(f"{path} already exists, leaving it untouched")
        return EXIT_OK
    path.write_text(_STARTER_CONFIG)
    console.success(f"Wrote {path}")
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perfgate",
        description="perfgate -- YSlow performance budgets for web pages",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path(CONFIG_FILE),
        help=f"Configuration file (default: {CONFIG_FILE})",
    )
    parser.add_argument("--plain", action="store_true", help="Disable coloured output")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    run_p = sub.add_parser("run", help="Audit the configured pages")
    run_p.add_argument("tasks", nargs="*", help="Task names (default: all)")
    run_p.add_argument("--ci", action="store_true", help="Write report files instead of tables")
    run_p.add_argument(
        "--report-path", type=Path, default=None, help="Report directory (implies --ci)"
    )
    run_p.add_argument(
        "--format", default=None, help="Report format, default junit (implies --ci)"
    )
    run_p.add_argument("--concurrency", type=int, default=None, help="Max parallel audits")
    run_p.add_argument("--timeout", type=float, default=None, help="Per-page timeout in seconds")
    run_p.add_argument(
        "--on-decode-error",
        choices=["abort", "collect"],
        default=None,
        help="Abort the run or record a failure when output is not JSON",
    )
    run_p.add_argument("--dry-run", action="store_true", help="Print commands without running")

    targets_p = sub.add_parser("targets", help="List targets and their thresholds")
    targets_p.add_argument("tasks", nargs="*", help="Task names (default: all)")

    sub.add_parser("init", help="Write a starter perfgate.yaml")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the `perfgate` command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure(backend="plain" if args.plain else "auto")
    _setup_logging(Path.cwd(), logging.DEBUG if args.verbose else logging.INFO)

    commands = {"run": cmd_run, "targets": cmd_targets, "init": cmd_init}
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        sys.exit(EXIT_FAILED)

    try:
        code = command(args)
    except ConfigError as exc:
        console.error(str(exc))
        logger.error("Configuration error: %s", exc)
        code = EXIT_CONFIG
    except KeyboardInterrupt:
        console.warning("Interrupted.")
        code = EXIT_FAILED

    if code != EXIT_OK:
        sys.exit(code)


if __name__ == "__main__":
    main()
