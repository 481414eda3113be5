"""Tests for the PhantomJS resolver chain."""

from pathlib import Path

from perfgate.audit.discovery import (
    PACKAGE_BINARY,
    PHANTOMJS,
    AncestorPackageResolver,
    ExplicitPathResolver,
    LocalPackageResolver,
    SearchPathResolver,
    default_resolvers,
    find_binary,
)


def _install(root: Path) -> Path:
    binary = root / PACKAGE_BINARY
    binary.parent.mkdir(parents=True)
    binary.write_text("")
    return binary


class _Skip:
    name = "skip"

    def __init__(self) -> None:
        self.calls = 0

    def resolve(self) -> Path | None:
        self.calls += 1
        return None


class _Found:
    name = "found"

    def __init__(self, path: str) -> None:
        self._path = Path(path)
        self.calls = 0

    def resolve(self) -> Path | None:
        self.calls += 1
        return self._path


class TestResolvers:
    def test_local_package(self, tmp_path: Path) -> None:
        binary = _install(tmp_path)
        assert LocalPackageResolver(tmp_path).resolve() == binary

    def test_local_package_missing(self, tmp_path: Path) -> None:
        assert LocalPackageResolver(tmp_path).resolve() is None

    def test_ancestor_package(self, tmp_path: Path) -> None:
        binary = _install(tmp_path)
        assert AncestorPackageResolver(tmp_path).resolve() == binary

    def test_ancestor_package_missing(self, tmp_path: Path) -> None:
        assert AncestorPackageResolver(tmp_path).resolve() is None

    def test_explicit_path(self, tmp_path: Path) -> None:
        binary = tmp_path / "phantomjs"
        binary.write_text("")
        assert ExplicitPathResolver(binary).resolve() == binary
        assert ExplicitPathResolver(tmp_path / "nope").resolve() is None

    def test_search_path_never_skips(self) -> None:
        assert SearchPathResolver().resolve() == Path(PHANTOMJS)


class TestFindBinary:
    def test_first_hit_wins(self) -> None:
        skip, first, second = _Skip(), _Found("/a/phantomjs"), _Found("/b/phantomjs")
        assert find_binary([skip, first, second]) == "/a/phantomjs"
        assert skip.calls == 1
        assert second.calls == 0

    def test_exhausted_chain_falls_back_to_name(self) -> None:
        assert find_binary([_Skip(), _Skip()]) == PHANTOMJS

    def test_default_chain_prefers_project_install(self, tmp_path: Path) -> None:
        binary = _install(tmp_path)
        assert find_binary(default_resolvers(tmp_path)) == str(binary)

    def test_default_chain_with_configured_binary(self, tmp_path: Path) -> None:
        configured = tmp_path / "custom-phantomjs"
        configured.write_text("")
        _install(tmp_path)
        chain = default_resolvers(tmp_path, str(configured))
        assert isinstance(chain[0], ExplicitPathResolver)
        assert find_binary(chain) == str(configured)

    def test_default_chain_ends_with_search_path(self, tmp_path: Path) -> None:
        chain = default_resolvers(tmp_path)
        assert isinstance(chain[-1], SearchPathResolver)
