"""Locate the real git executable without resolving back onto the wrapper."""

from __future__ import annotations

import logging
import os
import shutil
import sys
from pathlib import Path
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)

FALLBACK_PATHS: tuple[str, ...] = (
    "/usr/bin/git",
    "/usr/local/bin/git",
    "/opt/homebrew/bin/git",
    "C:/Program Files/Git/bin/git.exe",
    "C:/Program Files/Git/cmd/git.exe",
)


class GitNotFoundError(RuntimeError):
    """Raised when no usable git executable can be located."""


def _normalize(path: Path | str) -> Path:
    return Path(os.path.normpath(os.path.abspath(os.path.expanduser(str(path)))))


def current_artifact_path() -> Path | None:
    """Return the resolved path of the running wrapper script, if it is a file."""

    argv0 = sys.argv[0] if sys.argv else ""
    if not argv0:
        return None
    if os.sep not in argv0 and (os.altsep is None or os.altsep not in argv0):
        located = shutil.which(argv0)
        if located is None:
            return None
        argv0 = located
    candidate = Path(argv0)
    if not candidate.is_file():
        return None
    return candidate.resolve()


def is_usable_executable(path: Path) -> bool:
    return path.exists() and path.is_file() and os.access(path, os.X_OK)


def _same_file(left: Path, right: Path) -> bool:
    try:
        return os.path.samefile(left, right)
    except OSError:
        return False


class RealGitResolver:
    """Resolves the real git binary from env, config, PATH and OS fallbacks."""

    def __init__(
        self,
        *,
        env_override: str | None = None,
        path_env: str | None = None,
        fallback_paths: Iterable[str] = FALLBACK_PATHS,
        self_path: Path | None = None,
        binary_name: str | None = None,
    ) -> None:
        self._env_override = env_override
        self._path_env = os.environ.get("PATH", "") if path_env is None else path_env
        self._fallback_paths = tuple(fallback_paths)
        self._self_path = self_path if self_path is not None else current_artifact_path()
        self._binary_name = binary_name or ("git.exe" if sys.platform == "win32" else "git")

    @property
    def self_path(self) -> Path | None:
        return self._self_path

    def _path_matches(self) -> Iterator[Path]:
        for directory in self._path_env.split(os.pathsep):
            if not directory.strip():
                continue
            candidate = Path(directory) / self._binary_name
            if is_usable_executable(candidate):
                yield candidate

    def candidates(self, config_hint: str | None = None) -> list[Path]:
        """Return de-duplicated candidate paths in priority order."""

        ordered: list[Path] = []
        if self._env_override and self._env_override.strip():
            ordered.append(Path(self._env_override.strip()))
        if config_hint and config_hint.strip():
            ordered.append(Path(config_hint.strip()))
        ordered.extend(self._path_matches())
        ordered.extend(Path(path) for path in self._fallback_paths)

        unique: list[Path] = []
        seen: set[Path] = set()
        for path in ordered:
            normalized = _normalize(path)
            if normalized in seen:
                continue
            seen.add(normalized)
            unique.append(normalized)
        return unique

    def resolve(self, config_hint: str | None = None) -> Path:
        """Return the first usable candidate that is not the wrapper itself."""

        for candidate in self.candidates(config_hint):
            if not is_usable_executable(candidate):
                continue
            if self._self_path is not None and _same_file(candidate, self._self_path):
                logger.debug("Skipping %s (points to wrapper artifact)", candidate)
                continue
            logger.debug("Resolved git binary at %s", candidate)
            return candidate

        raise GitNotFoundError("Unable to resolve real git binary")


__all__ = [
    "FALLBACK_PATHS",
    "GitNotFoundError",
    "RealGitResolver",
    "current_artifact_path",
    "is_usable_executable",
]
