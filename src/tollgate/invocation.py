"""The immutable view of a single wrapped git invocation."""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Sequence

from .git import runner
from .git.runner import CommandResult

DETACHED_HEAD = "HEAD"


class Invocation:
    """Raw git arguments plus everything needed to call the real git again.

    Helper calls into the process runner are bound to the resolved binary,
    working directory and environment captured at construction time.
    """

    __slots__ = ("_args", "_real_git", "_work_dir", "_env", "_timeout")

    def __init__(
        self,
        args: Sequence[str],
        real_git: Path | str,
        work_dir: Path | str,
        env: Mapping[str, str] | None = None,
        *,
        passthrough_timeout: float | None = runner.DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._args = tuple(args)
        self._real_git = Path(real_git)
        self._work_dir = Path(work_dir)
        self._env = MappingProxyType(dict(env or {}))
        self._timeout = passthrough_timeout

    def __repr__(self) -> str:
        return f"Invocation(args={self._args!r}, work_dir={str(self._work_dir)!r})"

    @property
    def args(self) -> tuple[str, ...]:
        return self._args

    @property
    def real_git(self) -> Path:
        return self._real_git

    @property
    def work_dir(self) -> Path:
        return self._work_dir

    @property
    def env(self) -> Mapping[str, str]:
        return self._env

    @property
    def command(self) -> str | None:
        return self._args[0].lower() if self._args else None

    def is_command(self, *names: str) -> bool:
        command = self.command
        if command is None:
            return False
        return any(name.lower() == command for name in names)

    def has_flag(self, *flags: str) -> bool:
        wanted = set(flags)
        return any(arg in wanted for arg in self._args)

    def capture_git(self, *git_args: str) -> CommandResult:
        return runner.capture(
            [str(self._real_git), *git_args],
            work_dir=self._work_dir,
            env=self._env,
        )

    def passthrough_git(self, *git_args: str) -> int:
        return runner.passthrough(
            [str(self._real_git), *git_args],
            work_dir=self._work_dir,
            env=self._env,
            timeout=self._timeout,
        )

    def current_branch(self) -> str | None:
        """Return the checked-out branch, or ``None`` when detached or unknown."""

        result = self.capture_git("rev-parse", "--abbrev-ref", "HEAD")
        if not result.ok:
            return None
        branch = result.stdout.strip()
        if not branch or branch == DETACHED_HEAD:
            return None
        return branch


__all__ = ["Invocation"]
