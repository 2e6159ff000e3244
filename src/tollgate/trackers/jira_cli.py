"""Task tracker backend that shells out to the ``jira`` command line client."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from ..config import JiraCliIntegration
from ..git import runner
from ..git.runner import CommandResult
from ..models import (
    OperationFailed,
    SubtaskCreated,
    SubtaskResult,
    TaskDetails,
    TaskDetailsResult,
    TaskFound,
    TaskLookupFailed,
    TaskLookupResult,
    TaskNotFound,
    TaskStatus,
    TransitionResult,
    TransitionSucceeded,
)
from ..storage.models import SessionSnapshot

logger = logging.getLogger(__name__)

_ISSUE_KEY = re.compile(r"\b[A-Z][A-Z0-9_]*-\d+\b")


def _parse_json(output: str) -> dict[str, Any]:
    document = json.loads(output)
    if not isinstance(document, dict):
        raise ValueError("expected a JSON object")
    return document


def _text(value: Any) -> str:
    # Jira Cloud returns rich-text documents for descriptions; keep plain strings only.
    return value if isinstance(value, str) else ""


class JiraCliTracker:
    """Runs ``jira issue ...`` commands through the capture runner."""

    def __init__(self, integration: JiraCliIntegration) -> None:
        self._integration = integration

    @property
    def provider(self) -> str:
        return self._integration.provider

    @property
    def executable(self) -> str:
        return self._integration.executable or "jira"

    def close(self) -> None:
        """No persistent resources to release."""

    def _run(self, *args: str) -> CommandResult | None:
        try:
            result = runner.capture(
                [self.executable, *args],
                env=self._integration.environment,
                timeout=self._integration.timeout_seconds,
            )
        except OSError as exc:
            logger.debug("Unable to launch %s: %s", self.executable, exc)
            return None
        if not result.ok:
            logger.debug("jira command failed: %s", runner.serialize_result(result))
        return result

    def _failure(self, result: CommandResult | None) -> str:
        if result is None:
            return f"{self.executable} could not be launched"
        if result.timed_out:
            return "timeout"
        detail = f": {result.stderr}" if result.stderr else ""
        return f"{self.executable} exit {result.returncode}{detail}"

    def _view(self, task_id: str) -> tuple[dict[str, Any] | None, str | None]:
        result = self._run("issue", "view", task_id, "--raw")
        if result is None or not result.ok:
            return None, self._failure(result)
        try:
            return _parse_json(result.stdout), None
        except ValueError as exc:
            return None, f"parse error: {exc}"

    def get_task_status(self, task_id: str) -> TaskLookupResult:
        if not task_id.strip():
            return TaskNotFound()
        document, error = self._view(task_id)
        if document is None:
            return TaskLookupFailed(error or "unknown error")

        fields = document.get("fields")
        status = fields.get("status") if isinstance(fields, dict) else None
        name = status.get("name") if isinstance(status, dict) else None
        if not isinstance(name, str) or not name.strip():
            logger.debug("No status name in %s output for %s", self.executable, task_id)
            return TaskNotFound()
        return TaskFound(TaskStatus(provider=self.provider, key=task_id, raw=name.strip()))

    def track_session(self, snapshot: SessionSnapshot) -> None:
        logger.debug(
            "%s integration does not support session tracking; skipping %s",
            self.executable,
            snapshot.branch,
        )

    def create_subtask(self, parent_id: str, title: str | None = None) -> SubtaskResult:
        if not parent_id.strip():
            return OperationFailed("Parent ID cannot be blank")
        if not title or not title.strip():
            return OperationFailed("A subtask title is required")

        result = self._run(
            "issue",
            "create",
            "--type",
            "Sub-task",
            "--parent",
            parent_id,
            "--summary",
            title,
            "--no-input",
        )
        if result is None or not result.ok:
            return OperationFailed(self._failure(result))

        try:
            key = _parse_json(result.stdout).get("key")
        except ValueError:
            key = None
        if not key:
            match = _ISSUE_KEY.findall(result.stdout)
            key = match[-1] if match else None
        if not key:
            return OperationFailed("No issue key in jira output")
        return SubtaskCreated(str(key))

    def transition_task(self, task_id: str, target_status: str) -> TransitionResult:
        if not task_id.strip():
            return OperationFailed("Task ID cannot be blank")
        result = self._run("issue", "move", task_id, target_status)
        if result is None or not result.ok:
            return OperationFailed(self._failure(result))
        return TransitionSucceeded()

    def get_task_details(self, task_id: str) -> TaskDetailsResult:
        if not task_id.strip():
            return OperationFailed("Task ID cannot be blank")
        document, error = self._view(task_id)
        if document is None:
            return OperationFailed(error or "unknown error")

        key = document.get("key")
        fields = document.get("fields")
        if not key:
            return OperationFailed("No key field in response")
        if not isinstance(fields, dict):
            return OperationFailed("No fields in response")
        parent = fields.get("parent")
        parent_key = parent.get("key") if isinstance(parent, dict) else None
        return TaskDetails(
            key=str(key),
            summary=_text(fields.get("summary")),
            description=_text(fields.get("description")),
            parent_key=parent_key or None,
        )


__all__ = ["JiraCliTracker"]
