"""Blocks commit and push unless the branch's task is in an allowed status."""

from __future__ import annotations

from typing import Iterable

from ..config import Config, EnforcementMode, StatusRules
from ..git.branches import extract_task
from ..invocation import Invocation
from ..models import TaskFound, TaskNotFound, TaskStatus
from ..normalization import StatusNormalizer, canonical_status
from ..trackers.base import TaskTracker
from .base import GitInterceptor, handle_violation

COMMIT_EXIT_CODE = 3
PUSH_EXIT_CODE = 4

_EXIT_CODES = {"commit": COMMIT_EXIT_CODE, "push": PUSH_EXIT_CODE}


def allow_list_for(command: str, rules: StatusRules) -> list[str]:
    if command == "commit":
        return rules.allow_commit_when
    if command == "push":
        return rules.allow_push_when
    return []


def is_status_allowed(status: TaskStatus, allowed: Iterable[str]) -> bool:
    """Match the internal status name or the canonical raw text."""

    wanted = {canonical_status(entry) for entry in allowed}
    wanted.discard("")
    if status.internal is not None and status.internal.value in wanted:
        return True
    raw = canonical_status(status.raw)
    return bool(raw) and raw in wanted


class StatusGateInterceptor(GitInterceptor):
    """Fails closed: unknown tasks and lookup errors are never allowed."""

    name = "status-gate"

    def before(
        self,
        invocation: Invocation,
        config: Config,
        tracker: TaskTracker,
    ) -> int | None:
        mode = config.enforcement.status_check
        if mode is EnforcementMode.OFF:
            return None

        command = invocation.command
        if command not in _EXIT_CODES:
            return None
        exit_code = _EXIT_CODES[command]

        branch = invocation.current_branch()
        if branch is None:
            return None

        task = extract_task(branch, config.branch_pattern)
        if not task:
            return handle_violation(
                mode, f"Branch '{branch}' does not contain a task id", exit_code
            )

        result = tracker.get_task_status(task)
        if isinstance(result, TaskFound):
            status = StatusNormalizer(config.ticket_mapping).to_internal(result.status)
            if is_status_allowed(status, allow_list_for(command, config.status_rules)):
                return None
            message = f"Task {task} status {status.display} blocks {command}"
        elif isinstance(result, TaskNotFound):
            message = f"Task {task} not found; cannot {command}"
        else:
            message = f"Task lookup failed for {task} ({result.message}); cannot verify status"
        return handle_violation(mode, message, exit_code)


__all__ = [
    "COMMIT_EXIT_CODE",
    "PUSH_EXIT_CODE",
    "StatusGateInterceptor",
    "allow_list_for",
    "is_status_allowed",
]
