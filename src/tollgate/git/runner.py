"""Process execution for the real git binary and tracker CLIs.

Two modes are deliberately kept as separate functions: ``passthrough`` hands
the caller's terminal to the child (prompts, pagers, colour detection all
behave as if git were run directly) while ``capture`` collects output for
programmatic inspection.
"""

from __future__ import annotations

import json
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from .utils import decode_output, merge_environment

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0
TIMEOUT_EXIT_CODE = -1


@dataclass(slots=True)
class CommandResult:
    """Holds the outcome of a captured invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def timed_out(self) -> bool:
        return self.returncode == TIMEOUT_EXIT_CODE


def _validate(cmd: Sequence[str]) -> list[str]:
    argv = [str(part) for part in cmd]
    if not argv:
        raise ValueError("Command must not be empty")
    return argv


def passthrough(
    cmd: Sequence[str],
    *,
    work_dir: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
) -> int:
    """Run ``cmd`` with inherited stdio and return its exit code.

    Returns ``-1`` when the child had to be killed after ``timeout`` seconds.
    """

    argv = _validate(cmd)
    process = subprocess.Popen(
        argv,
        cwd=str(work_dir) if work_dir is not None else None,
        env=merge_environment(env),
    )
    try:
        return process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.debug("Killing %s after %ss", argv[0], timeout)
        process.kill()
        process.wait()
        return TIMEOUT_EXIT_CODE
    except KeyboardInterrupt:
        # The child shares our process group and got the same SIGINT.
        return process.wait()


def capture(
    cmd: Sequence[str],
    *,
    work_dir: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
) -> CommandResult:
    """Run ``cmd`` with stdout and stderr collected into memory."""

    argv = _validate(cmd)
    try:
        completed = subprocess.run(
            argv,
            cwd=str(work_dir) if work_dir is not None else None,
            env=merge_environment(env),
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        logger.debug("Killed %s after %ss", argv[0], timeout)
        return CommandResult(
            args=tuple(argv),
            returncode=TIMEOUT_EXIT_CODE,
            stdout=decode_output(exc.stdout),
            stderr=decode_output(exc.stderr),
        )

    return CommandResult(
        args=tuple(argv),
        returncode=completed.returncode,
        stdout=decode_output(completed.stdout).rstrip(),
        stderr=decode_output(completed.stderr).rstrip(),
    )


def serialize_result(result: CommandResult) -> str:
    """Serialize a command result for the debug log."""

    return json.dumps(
        {
            "args": list(result.args),
            "returncode": result.returncode,
            "stdout": result.stdout,
            "stderr": result.stderr,
        }
    )


__all__ = [
    "CommandResult",
    "DEFAULT_TIMEOUT_SECONDS",
    "TIMEOUT_EXIT_CODE",
    "capture",
    "passthrough",
    "serialize_result",
]
