"""Raw per-target report files for machine (CI) runs."""

import logging
from pathlib import Path

from perfgate.console import console
from perfgate.domain.models import Target

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "junit": "xml",
    "checkstyle": "xml",
    "xml": "xml",
    "tap": "tap",
    "json": "json",
}


def artifact_name(index: int, fmt: str) -> str:
    """File name for the target at zero-based *index*."""
    return f"report{index}.{_EXTENSIONS.get(fmt, 'txt')}"


class ArtifactReporter:
    """Writes each target's audit output, unmodified, into *report_dir*."""

    def __init__(self, report_dir: Path, fmt: str = "junit") -> None:
        self._report_dir = report_dir
        self._format = fmt

    @property
    def report_dir(self) -> Path:
        return self._report_dir

    def path_for(self, target: Target) -> Path:
        return self._report_dir / artifact_name(target.index, self._format)

    def write(self, target: Target, stdout: str) -> Path:
        path = self.path_for(target)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(stdout, encoding="utf-8", newline="")
        logger.info("Wrote %d bytes for %s to %s", len(stdout), target.src, path)
        console.success(f"Report for {target.src} collected")
        return path
