"""Locating the PhantomJS binary that runs the YSlow script.

Strategies are tried in order; each either returns a path or skips.
The last one assumes ``phantomjs`` is on PATH and never skips.
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from perfgate.domain.protocols import BinaryResolver

logger = logging.getLogger(__name__)

PHANTOMJS = "phantomjs"

# Where the npm phantomjs package drops its binary.
PACKAGE_BINARY = Path("node_modules") / "phantomjs" / "lib" / "phantom" / "bin" / PHANTOMJS

# src/perfgate/audit/discovery.py -> checkout root
ANCESTOR_DIR = Path(__file__).resolve().parents[3]


class ExplicitPathResolver:
    """Use a path given in the configuration."""

    name = "configured path"

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def resolve(self) -> Path | None:
        if self._path.is_file():
            return self._path
        logger.error("Configured binary %s does not exist", self._path)
        return None


class LocalPackageResolver:
    """Look for the npm package installed in the project directory."""

    name = "local package"

    def __init__(self, project_dir: Path) -> None:
        self._project_dir = project_dir

    def resolve(self) -> Path | None:
        candidate = self._project_dir / PACKAGE_BINARY
        if candidate.is_file():
            return candidate
        logger.error("PhantomJS path from local package is empty (%s)", candidate)
        return None


class AncestorPackageResolver:
    """Look for the npm package next to the perfgate checkout."""

    name = "included dependency"

    def __init__(self, root: Path = ANCESTOR_DIR) -> None:
        self._root = root

    def resolve(self) -> Path | None:
        candidate = self._root / PACKAGE_BINARY
        if candidate.is_file():
            return candidate
        logger.error("PhantomJS path from included dependency is empty (%s)", candidate)
        return None


class SearchPathResolver:
    """Assume the binary is on PATH. Not validated."""

    name = "search path"

    def resolve(self) -> Path | None:
        return Path(PHANTOMJS)


def default_resolvers(project_dir: Path, binary: str | None = None) -> list[BinaryResolver]:
    """Build the standard resolver chain."""
    chain: list[BinaryResolver] = []
    if binary:
        chain.append(ExplicitPathResolver(binary))
    chain.extend(
        [
            LocalPackageResolver(project_dir),
            AncestorPackageResolver(),
            SearchPathResolver(),
        ]
    )
    return chain


def find_binary(resolvers: Sequence[BinaryResolver]) -> str:
    """Return the first path any resolver produces.

    Falls back to the bare binary name if the whole chain skips.
    """
    for resolver in resolvers:
        path = resolver.resolve()
        if path is not None:
            logger.info("Using PhantomJS from %s: %s", resolver.name, path)
            return str(path)
    logger.warning("No resolver located PhantomJS, falling back to %r", PHANTOMJS)
    return PHANTOMJS
