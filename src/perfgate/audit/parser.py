"""Decoding YSlow's JSON output into AuditMetrics."""

import json
from typing import Any

from perfgate.domain.models import AuditMetrics

# YSlow result keys -> AuditMetrics fields
FIELDS = {
    "r": "requests",
    "o": "score",
    "lt": "load_time_ms",
    "w": "weight_bytes",
}


class DecodeError(Exception):
    """Raised when audit output is not a well-formed YSlow result."""

    def __init__(self, message: str, raw: str) -> None:
        super().__init__(message)
        self.raw = raw


def _as_int(key: str, value: Any, raw: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int | float):
        msg = f"field '{key}' is not a number: {value!r}"
        raise DecodeError(msg, raw)
    return int(value)


def parse_metrics(raw: str) -> AuditMetrics:
    """Parse the stdout of one audit."""
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"output is not JSON: {exc}", raw) from exc
    if not isinstance(data, dict):
        raise DecodeError("output is not a JSON object", raw)

    missing = [k for k in FIELDS if k not in data]
    if missing:
        raise DecodeError(f"output is missing field(s): {', '.join(missing)}", raw)

    values = {attr: _as_int(key, data[key], raw) for key, attr in FIELDS.items()}
    return AuditMetrics(**values)
