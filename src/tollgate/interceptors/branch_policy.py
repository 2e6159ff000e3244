"""Branch naming policy for commands that create branches."""

from __future__ import annotations

from typing import Sequence

from ..config import Config, EnforcementMode
from ..git.branches import extract_task
from ..invocation import Invocation
from ..models import TaskFound, TaskNotFound
from ..trackers.base import TaskTracker
from .base import GitInterceptor, handle_violation

BRANCH_POLICY_EXIT_CODE = 2

_CHECKOUT_FLAGS = ("-b", "-B")
_SWITCH_FLAGS = ("-c", "--create")
_COPY_FLAGS = ("-c", "-C")
_END_OF_OPTIONS = "--"


def _flag_value(args: Sequence[str], index: int, flags: Sequence[str]) -> str | None:
    token = args[index]
    for flag in flags:
        if token == flag:
            return args[index + 1] if index + 1 < len(args) else None
        if token.startswith(f"{flag}="):
            return token[len(flag) + 1 :]
        if len(flag) == 2 and token.startswith(flag) and not token.startswith("--"):
            return token[len(flag) :]
    return None


def parse_single_flag_variant(args: Sequence[str], flags: Sequence[str]) -> str | None:
    """Find ``<flag> <name>``, ``<flag>=<name>`` or ``<flag><name>`` in ``args``."""

    for index in range(1, len(args)):
        if args[index] == _END_OF_OPTIONS:
            break
        value = _flag_value(args, index, flags)
        if value:
            return value
    return None


def parse_branch_copy(args: Sequence[str]) -> str | None:
    """``branch -c <src> <new>``: the new name sits two places after the flag.

    The one-argument form (``branch -c <new>``, copying the current branch)
    is not recognised and yields ``None``.
    """

    for index, token in enumerate(args):
        if token in _COPY_FLAGS:
            target = index + 2
            return args[target] if target < len(args) else None
    return None


def extract_created_branch(invocation: Invocation) -> str | None:
    command = invocation.command
    if command == "checkout":
        return parse_single_flag_variant(invocation.args, _CHECKOUT_FLAGS)
    if command == "switch":
        return parse_single_flag_variant(invocation.args, _SWITCH_FLAGS)
    if command == "branch":
        return parse_branch_copy(invocation.args)
    return None


class BranchPolicyInterceptor(GitInterceptor):
    """Checks new branch names against the pattern and the tracker."""

    name = "branch-policy"

    def before(
        self,
        invocation: Invocation,
        config: Config,
        tracker: TaskTracker,
    ) -> int | None:
        mode = config.enforcement.branch_policy
        if mode is EnforcementMode.OFF:
            return None

        new_branch = extract_created_branch(invocation)
        if not new_branch:
            return None

        task = extract_task(new_branch, config.branch_pattern)
        if task is None:
            return handle_violation(
                mode,
                f"Branch '{new_branch}' does not match pattern {config.branch_pattern}",
                BRANCH_POLICY_EXIT_CODE,
            )

        result = tracker.get_task_status(task)
        if isinstance(result, TaskFound):
            return None
        if isinstance(result, TaskNotFound):
            message = f"No task found for {task}; verify before creating branch"
        else:
            message = f"Task lookup failed for {task} ({result.message}); cannot verify branch"
        return handle_violation(mode, message, BRANCH_POLICY_EXIT_CODE)


__all__ = [
    "BRANCH_POLICY_EXIT_CODE",
    "BranchPolicyInterceptor",
    "extract_created_branch",
    "parse_branch_copy",
    "parse_single_flag_variant",
]
