"""Path constants, configuration loading and option resolution."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from perfgate.domain.models import (
    AuditOptions,
    DecodeErrorPolicy,
    RunMode,
    Target,
    ThresholdSet,
)

logger = logging.getLogger(__name__)

# .perfgate/ directory structure
PERFGATE_DIR = ".perfgate"
LOGS_DIR = "logs"
CONFIG_FILE = "perfgate.yaml"

DEFAULT_TASK = "default"
DEFAULT_SCRIPT = "node_modules/grunt-yslow/tasks/lib/yslow.js"
DEFAULT_CI_FORMAT = "junit"
DEFAULT_REPORT_PATH = "reports"
DEFAULT_TIMEOUT = 300.0

THRESHOLD_KEYS = ("weight", "requests", "score", "speed")


class ConfigError(Exception):
    """Raised when the configuration file is missing or malformed."""


def perfgate_dir(project_root: Path) -> Path:
    """Return the .perfgate directory path for a project."""
    return project_root / PERFGATE_DIR


def logs_dir(project_root: Path) -> Path:
    """Return the logs directory path."""
    return perfgate_dir(project_root) / LOGS_DIR


def config_file(project_root: Path) -> Path:
    """Return the default perfgate.yaml path."""
    return project_root / CONFIG_FILE


def fetch_option(
    namespace: str,
    key: str,
    target_overrides: dict[str, Any],
    global_defaults: dict[str, Any],
) -> Any:
    """Look up ``namespace.key``, target first, then global defaults.

    Returns None when neither defines it. Values are returned as-is.
    """
    for source in (target_overrides, global_defaults):
        section = source.get(namespace)
        if isinstance(section, dict) and key in section:
            return section[key]
    return None


def _as_number(key: str, value: Any, src: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        msg = f"threshold '{key}' for {src!r} must be a number, got {value!r}"
        raise ConfigError(msg)
    return value


def resolve_thresholds(target: Target, options: dict[str, Any]) -> ThresholdSet:
    """Resolve the four thresholds for *target*."""
    values: dict[str, float | None] = {}
    for key in THRESHOLD_KEYS:
        raw = fetch_option("thresholds", key, target.overrides, options)
        values[key] = _as_number(key, raw, target.src)
        if values[key] is None:
            logger.debug("No '%s' threshold configured for %s", key, target.src)
    return ThresholdSet(**values)


def resolve_audit_options(target: Target, options: dict[str, Any]) -> AuditOptions:
    """Resolve the yslowOptions forwarded to the audit script for *target*."""

    def fetch(key: str) -> Any:
        return fetch_option("yslowOptions", key, target.overrides, options)

    cdns = fetch("cdns") or ()
    if isinstance(cdns, str):
        cdns = (cdns,)
    headers = fetch("headers") or {}
    if not isinstance(headers, dict):
        msg = f"yslowOptions.headers for {target.src!r} must be a mapping"
        raise ConfigError(msg)
    user_agent = fetch("userAgent")
    viewport = fetch("viewport")
    return AuditOptions(
        user_agent=str(user_agent) if user_agent else None,
        cdns=tuple(str(c) for c in cdns),
        viewport=str(viewport) if viewport else None,
        headers={str(k): str(v) for k, v in headers.items()},
    )


@dataclass
class CIOptions:
    """Machine-mode settings (the ``options.ci`` block)."""

    format: str = DEFAULT_CI_FORMAT
    report_path: Path = field(default_factory=lambda: Path(DEFAULT_REPORT_PATH))


@dataclass
class TaskConfig:
    """One named group of targets sharing a base URL and options."""

    name: str
    base_url: str
    targets: list[Target]
    options: dict[str, Any]

    @property
    def ci(self) -> CIOptions | None:
        raw = self.options.get("ci")
        if raw is None or raw is False:
            return None
        if raw is True:
            return CIOptions()
        if not isinstance(raw, dict):
            msg = f"options.ci in task '{self.name}' must be a mapping"
            raise ConfigError(msg)
        return CIOptions(
            format=str(raw.get("format") or DEFAULT_CI_FORMAT),
            report_path=Path(raw.get("reportPath") or DEFAULT_REPORT_PATH),
        )

    @property
    def mode(self) -> RunMode:
        return RunMode.MACHINE if self.ci is not None else RunMode.INTERACTIVE

    @property
    def script(self) -> str:
        return str(self.options.get("script") or DEFAULT_SCRIPT)

    @property
    def binary(self) -> str | None:
        value = self.options.get("binary")
        return str(value) if value else None

    @property
    def timeout(self) -> float | None:
        value = self.options.get("timeout", DEFAULT_TIMEOUT)
        if not value:
            return None
        if isinstance(value, bool) or not isinstance(value, int | float):
            msg = f"options.timeout must be a number of seconds, got {value!r}"
            raise ConfigError(msg)
        return float(value)

    @property
    def concurrency(self) -> int | None:
        value = self.options.get("concurrency")
        if not value:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            msg = f"options.concurrency must be a positive integer, got {value!r}"
            raise ConfigError(msg)
        return value

    @property
    def decode_error_policy(self) -> DecodeErrorPolicy:
        value = self.options.get("onDecodeError", DecodeErrorPolicy.ABORT.value)
        try:
            return DecodeErrorPolicy(value)
        except ValueError:
            msg = f"options.onDecodeError must be 'abort' or 'collect', got {value!r}"
            raise ConfigError(msg) from None


def _parse_targets(task_name: str, files: Any) -> list[Target]:
    if not isinstance(files, list) or not files:
        msg = f"task '{task_name}' needs a non-empty 'files' list"
        raise ConfigError(msg)
    targets: list[Target] = []
    for index, entry in enumerate(files):
        if isinstance(entry, str):
            entry = {"src": entry}
        if not isinstance(entry, dict) or "src" not in entry:
            msg = f"task '{task_name}' file #{index + 1} has no 'src'"
            raise ConfigError(msg)
        src = entry["src"]
        if isinstance(src, list):
            if not src:
                msg = f"task '{task_name}' file #{index + 1} has an empty 'src'"
                raise ConfigError(msg)
            src = src[0]
        overrides = {k: v for k, v in entry.items() if k != "src"}
        targets.append(Target(index=index, src=str(src), overrides=overrides))
    return targets


def _task_from_dict(name: str, data: dict[str, Any], global_options: dict[str, Any]) -> TaskConfig:
    task_options = data.get("options") or {}
    if not isinstance(task_options, dict):
        msg = f"options of task '{name}' must be a mapping"
        raise ConfigError(msg)
    # Task-level keys replace global ones wholesale.
    options = {**global_options, **task_options}
    return TaskConfig(
        name=name,
        base_url=str(data.get("baseUrl") or ""),
        targets=_parse_targets(name, data.get("files")),
        options=options,
    )


def parse_config(data: dict[str, Any]) -> dict[str, TaskConfig]:
    """Build the task table from a decoded configuration mapping."""
    global_options = data.get("options") or {}
    if not isinstance(global_options, dict):
        raise ConfigError("top-level 'options' must be a mapping")

    tasks_raw = data.get("tasks")
    if tasks_raw is None:
        return {DEFAULT_TASK: _task_from_dict(DEFAULT_TASK, data, global_options)}
    if not isinstance(tasks_raw, dict) or not tasks_raw:
        raise ConfigError("'tasks' must be a non-empty mapping")

    tasks: dict[str, TaskConfig] = {}
    for name, task_data in tasks_raw.items():
        if not isinstance(task_data, dict):
            msg = f"task '{name}' must be a mapping"
            raise ConfigError(msg)
        tasks[str(name)] = _task_from_dict(str(name), task_data, global_options)
    return tasks


def load_config(path: Path) -> dict[str, TaskConfig]:
    """Load and parse a perfgate.yaml file."""
    if not path.exists():
        msg = f"configuration file not found: {path}"
        raise ConfigError(msg)
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        msg = f"cannot parse {path}: {exc}"
        raise ConfigError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path} must contain a mapping at the top level"
        raise ConfigError(msg)
    logger.info("Loaded configuration from %s", path)
    return parse_config(data)


def select_tasks(tasks: dict[str, TaskConfig], names: list[str]) -> list[TaskConfig]:
    """Return the named tasks in order, or all of them when *names* is empty."""
    if not names:
        return list(tasks.values())
    unknown = [n for n in names if n not in tasks]
    if unknown:
        msg = f"unknown task(s): {', '.join(unknown)} (available: {', '.join(tasks)})"
        raise ConfigError(msg)
    return [tasks[n] for n in names]
