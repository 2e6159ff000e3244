from __future__ import annotations

import os
from pathlib import Path

import pytest

from tollgate.git.resolver import GitNotFoundError, RealGitResolver


def _fake_git(directory: Path, name: str = "git") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    binary = directory / name
    binary.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    binary.chmod(0o755)
    return binary


def test_env_override_wins(tmp_path: Path) -> None:
    override = _fake_git(tmp_path / "override")
    on_path = _fake_git(tmp_path / "bin")

    resolver = RealGitResolver(
        env_override=str(override),
        path_env=str(on_path.parent),
        fallback_paths=(),
        self_path=None,
    )

    assert resolver.resolve() == override


def test_config_hint_before_path(tmp_path: Path) -> None:
    hinted = _fake_git(tmp_path / "hint")
    on_path = _fake_git(tmp_path / "bin")

    resolver = RealGitResolver(path_env=str(on_path.parent), fallback_paths=(), self_path=None)

    assert resolver.resolve(str(hinted)) == hinted


def test_skips_non_executable_candidates(tmp_path: Path) -> None:
    broken = tmp_path / "broken" / "git"
    broken.parent.mkdir()
    broken.write_text("not executable", encoding="utf-8")
    real = _fake_git(tmp_path / "bin")

    resolver = RealGitResolver(
        env_override=str(broken),
        path_env=str(real.parent),
        fallback_paths=(),
        self_path=None,
    )

    assert resolver.resolve() == real


def test_never_returns_wrapper_artifact(tmp_path: Path) -> None:
    shim = _fake_git(tmp_path / "shim")
    real = _fake_git(tmp_path / "real")
    path_env = os.pathsep.join([str(shim.parent), str(real.parent)])

    resolver = RealGitResolver(
        env_override=str(shim),
        path_env=path_env,
        fallback_paths=(str(shim),),
        self_path=shim,
    )

    assert resolver.resolve(str(shim)) == real


def test_symlinked_wrapper_is_rejected(tmp_path: Path) -> None:
    shim = _fake_git(tmp_path / "shim", name="tollgate")
    link_dir = tmp_path / "links"
    link_dir.mkdir()
    (link_dir / "git").symlink_to(shim)
    real = _fake_git(tmp_path / "real")

    resolver = RealGitResolver(
        path_env=os.pathsep.join([str(link_dir), str(real.parent)]),
        fallback_paths=(),
        self_path=shim.resolve(),
    )

    assert resolver.resolve() == real


def test_candidates_are_deduplicated_and_absolute(tmp_path: Path) -> None:
    real = _fake_git(tmp_path / "bin")

    resolver = RealGitResolver(
        env_override=str(real),
        path_env=str(real.parent),
        fallback_paths=(str(real),),
        self_path=None,
    )

    candidates = resolver.candidates(str(real))
    assert candidates == [real]
    assert all(candidate.is_absolute() for candidate in candidates)


def test_raises_when_nothing_usable(tmp_path: Path) -> None:
    resolver = RealGitResolver(
        path_env=str(tmp_path),
        fallback_paths=(str(tmp_path / "missing"),),
        self_path=None,
    )

    with pytest.raises(GitNotFoundError):
        resolver.resolve()
