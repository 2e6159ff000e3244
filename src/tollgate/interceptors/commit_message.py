"""Prefixes commit messages with the task id taken from the branch name."""

from __future__ import annotations

from typing import Sequence

from ..config import Config
from ..git.branches import extract_task
from ..invocation import Invocation
from ..trackers.base import TaskTracker
from .base import GitInterceptor

_SHORT = "-m"
_LONG = "--message"
_END_OF_OPTIONS = "--"


def find_message_index(args: Sequence[str]) -> int | None:
    for index in range(1, len(args)):
        token = args[index]
        if token == _END_OF_OPTIONS:
            return None
        if token in (_SHORT, _LONG) or token.startswith(f"{_LONG}="):
            return index
        if token.startswith(_SHORT) and not token.startswith("--"):
            return index
    return None


def extract_message(args: Sequence[str], index: int) -> str | None:
    token = args[index]
    if token in (_SHORT, _LONG):
        return args[index + 1] if index + 1 < len(args) else None
    if token.startswith(f"{_LONG}="):
        return token[len(_LONG) + 1 :]
    if token.startswith(f"{_SHORT}="):
        return token[len(_SHORT) + 1 :]
    return token[len(_SHORT) :]


def replace_message(args: Sequence[str], index: int, message: str) -> list[str]:
    """Return a copy of ``args`` with the message swapped, keeping the flag form."""

    rewritten = list(args)
    token = rewritten[index]
    if token in (_SHORT, _LONG):
        rewritten[index + 1] = message
    elif token.startswith(f"{_LONG}="):
        rewritten[index] = f"{_LONG}={message}"
    elif token.startswith(f"{_SHORT}="):
        rewritten[index] = f"{_SHORT}={message}"
    else:
        rewritten[index] = f"{_SHORT}{message}"
    return rewritten


class CommitMessageInterceptor(GitInterceptor):
    """Runs ``git commit`` itself with ``"<task>: <message>"`` when needed.

    This is the one hook that replaces the command instead of gating it: the
    exit code of the rewritten commit is returned as the veto.
    """

    name = "commit-message"

    def before(
        self,
        invocation: Invocation,
        config: Config,
        tracker: TaskTracker,
    ) -> int | None:
        if invocation.command != "commit":
            return None

        branch = invocation.current_branch()
        if branch is None:
            return None
        task = extract_task(branch, config.branch_pattern)
        if not task:
            return None

        args = invocation.args
        index = find_message_index(args)
        if index is None:
            return None
        message = extract_message(args, index)
        if message is None:
            return None
        if task.casefold() in message.casefold():
            return None

        rewritten = replace_message(args, index, f"{task}: {message}")
        return invocation.passthrough_git(*rewritten)


__all__ = [
    "CommitMessageInterceptor",
    "extract_message",
    "find_message_index",
    "replace_message",
]
