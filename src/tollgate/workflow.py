"""Task workflow commands layered on top of git: start, subtask, review, merge, work."""

from __future__ import annotations

import logging
import sys
from typing import Callable, Sequence, TextIO

from .config import Config, EnforcementMode
from .git import runner
from .git.branches import branch_name_for, extract_task
from .git.runner import CommandResult
from .interceptors.branch_policy import BRANCH_POLICY_EXIT_CODE
from .invocation import Invocation
from .models import (
    InternalStatus,
    SubtaskCreated,
    TaskDetails,
    TaskFound,
    TaskNotFound,
    TaskStatus,
    TransitionSucceeded,
)
from .normalization import canonical_status
from .trackers.base import TaskTracker

logger = logging.getLogger(__name__)

WORKFLOW_COMMANDS = ("start", "subtask", "review", "merge", "work")

IN_PROGRESS = "In Progress"
CODE_REVIEW = "Code Review"
DONE = "Done"

_RULE = "-" * 40

HELP_TEXT = """\
tollgate workflow commands:
  git subtask <PARENT> <title>       Create a subtask and move it to In Progress
  git subtask <SUBTASK-ID>           Move an existing subtask to In Progress
  git start <TASK-ID> [-B <name>]    Create a branch and move the task to In Progress
  git review [<title>]               Push, open a pull request, move to Code Review
  git merge [<id>] [--close-parent]  Merge the pull request and close the task
  git work                           Show the work log for the current branch"""


class WorkflowError(RuntimeError):
    """Stops a workflow command; ``exit_code`` is returned to the shell."""

    def __init__(self, message: str, exit_code: int = 1) -> None:
        super().__init__(message)
        self.exit_code = exit_code


def _status_matches(
    status: TaskStatus,
    internal: Sequence[InternalStatus],
    raw_fragments: Sequence[str],
) -> bool:
    if status.internal is not None and status.internal in internal:
        return True
    canonical = canonical_status(status.display)
    return any(fragment in canonical for fragment in raw_fragments)


class Workflow:
    """Runs one workflow command against the tracker, git and the ``gh`` CLI.

    Messages go to ``out``/``err``; every command returns an exit code instead
    of terminating the process.
    """

    def __init__(
        self,
        invocation: Invocation,
        config: Config,
        tracker: TaskTracker,
        *,
        out: TextIO | None = None,
        err: TextIO | None = None,
        gh_runner: Callable[..., CommandResult] | None = None,
        gh_executable: str = "gh",
    ) -> None:
        self._invocation = invocation
        self._config = config
        self._tracker = tracker
        self._out = out or sys.stdout
        self._err = err or sys.stderr
        self._gh_runner = gh_runner or runner.capture
        self._gh = gh_executable

    def run(self) -> int:
        args = self._invocation.args
        command = self._invocation.command
        handlers = {
            "start": self.start,
            "subtask": self.subtask,
            "review": self.review,
            "merge": self.merge,
            "work": self.work,
        }
        handler = handlers.get(command or "")
        if handler is None:
            self._fail(f"Unknown workflow command: {command}")
            return 1
        try:
            handler(list(args[1:]))
        except WorkflowError as exc:
            self._fail(str(exc))
            return exc.exit_code
        return 0

    # output -----------------------------------------------------------------

    def _say(self, message: str = "") -> None:
        print(message, file=self._out)

    def _warn(self, message: str) -> None:
        print(f"warning: {message}", file=self._err)

    def _fail(self, message: str) -> None:
        print(f"error: {message}", file=self._err)

    # helpers ----------------------------------------------------------------

    def _gh_command(self, *args: str) -> CommandResult:
        try:
            return self._gh_runner(
                [self._gh, *args],
                work_dir=self._invocation.work_dir,
                env=self._invocation.env,
            )
        except OSError as exc:
            raise WorkflowError(f"Unable to run {self._gh}: {exc}") from exc

    def _branch_task(self) -> tuple[str, str]:
        result = self._invocation.capture_git("rev-parse", "--abbrev-ref", "HEAD")
        if not result.ok:
            raise WorkflowError("Failed to get current branch", result.returncode or 1)
        branch = result.stdout.strip()
        task = extract_task(branch, self._config.branch_pattern)
        if not task:
            raise WorkflowError(
                f"Current branch '{branch}' does not contain a valid task id "
                f"(expected pattern {self._config.branch_pattern})"
            )
        return branch, task

    def _require_status(
        self,
        task_id: str,
        label: str,
        internal: Sequence[InternalStatus],
        raw_fragments: Sequence[str],
    ) -> TaskStatus:
        result = self._tracker.get_task_status(task_id)
        if isinstance(result, TaskFound):
            if not _status_matches(result.status, internal, raw_fragments):
                raise WorkflowError(
                    f"Task {task_id} must be in '{label}' status "
                    f"(current status: {result.status.display})"
                )
            return result.status
        if isinstance(result, TaskNotFound):
            raise WorkflowError(f"Task {task_id} not found")
        raise WorkflowError(f"Failed to check task status: {result.message}")

    def _check_branch_name(self, branch: str) -> None:
        mode = self._config.enforcement.branch_policy
        if mode is EnforcementMode.OFF or extract_task(branch, self._config.branch_pattern):
            return
        message = f"Branch '{branch}' does not match pattern {self._config.branch_pattern}"
        if mode is EnforcementMode.BLOCK:
            raise WorkflowError(message, BRANCH_POLICY_EXIT_CODE)
        self._warn(message)

    def _transition(self, task_id: str, target: str) -> bool:
        self._say(f"Transitioning {task_id} to '{target}'...")
        result = self._tracker.transition_task(task_id, target)
        if isinstance(result, TransitionSucceeded):
            self._say(f"Task {task_id} -> {target}")
            return True
        self._warn(f"Failed to transition {task_id}: {result.message}")
        return False

    # commands ---------------------------------------------------------------

    def start(self, args: list[str]) -> None:
        if not args:
            raise WorkflowError("Usage: git start <TASK-ID> [--branch/-B <branch-name>]")
        task_id = args[0]
        custom_branch = None
        for flag in ("--branch", "-B"):
            if flag in args:
                index = args.index(flag)
                if index + 1 < len(args):
                    custom_branch = args[index + 1]
                break

        if custom_branch is not None:
            self._check_branch_name(custom_branch)

        self._require_status(
            task_id,
            "Ready for Dev",
            (InternalStatus.TODO, InternalStatus.IN_PROGRESS),
            ("READY", "IN_PROGRESS"),
        )

        branch = custom_branch
        if branch is None:
            details = self._tracker.get_task_details(task_id)
            title = details.summary if isinstance(details, TaskDetails) else None
            branch = branch_name_for(task_id, title)

        self._say(f"Creating branch: {branch}")
        created = self._invocation.capture_git("checkout", "-b", branch)
        if not created.ok:
            raise WorkflowError(
                f"Failed to create branch: {created.stderr}", created.returncode or 1
            )
        self._say(f"Branch created: {branch}")
        if not self._transition(task_id, IN_PROGRESS):
            raise WorkflowError(f"Branch created but {task_id} was not transitioned")

    def subtask(self, args: list[str]) -> None:
        if not args:
            raise WorkflowError(
                "Usage: git subtask <PARENT-ID> <subtask-title> | git subtask <SUBTASK-ID>"
            )
        if len(args) > 1:
            parent_id, title = args[0], " ".join(args[1:])
            self._say(f"Creating subtask under parent {parent_id}...")
            result = self._tracker.create_subtask(parent_id, title)
            if not isinstance(result, SubtaskCreated):
                raise WorkflowError(f"Failed to create subtask: {result.message}")
            self._say(f"Created subtask: {result.subtask_key} (parent {parent_id})")
            self._transition(result.subtask_key, IN_PROGRESS)
            return

        subtask_id = args[0]
        lookup = self._tracker.get_task_status(subtask_id)
        if isinstance(lookup, TaskFound):
            if _status_matches(lookup.status, (InternalStatus.IN_PROGRESS,), ("IN_PROGRESS",)):
                self._say(f"Subtask {subtask_id} is already In Progress")
                return
        elif isinstance(lookup, TaskNotFound):
            raise WorkflowError(f"Subtask {subtask_id} not found")
        else:
            raise WorkflowError(f"Failed to check subtask status: {lookup.message}")
        if not self._transition(subtask_id, IN_PROGRESS):
            raise WorkflowError(f"Failed to transition subtask {subtask_id}")

    def review(self, args: list[str]) -> None:
        custom_title = " ".join(args).strip() or None
        branch, task_id = self._branch_task()
        self._require_status(
            task_id, IN_PROGRESS, (InternalStatus.IN_PROGRESS,), ("IN_PROGRESS",)
        )

        details = self._tracker.get_task_details(task_id)
        if isinstance(details, TaskDetails):
            title = custom_title or details.summary or task_id
            body = build_pull_request_body(details)
        else:
            self._warn(f"Could not fetch task details: {details.message}")
            title = custom_title or task_id
            body = ""

        self._say("Pushing branch to remote...")
        pushed = self._invocation.capture_git("push", "-u", "origin", branch)
        if not pushed.ok:
            raise WorkflowError(f"Failed to push branch: {pushed.stderr}", pushed.returncode or 1)

        self._say("Creating pull request...")
        created = self._gh_command("pr", "create", "--title", title, "--body", body)
        if not created.ok:
            raise WorkflowError(
                f"Failed to create pull request: {created.stderr}", created.returncode or 1
            )
        self._transition(task_id, CODE_REVIEW)
        if created.stdout:
            self._say(created.stdout)

    def merge(self, args: list[str]) -> None:
        positional = [arg for arg in args if not arg.startswith("--")]
        close_parent = any(arg in ("--close-parent", "--close-parent=true") for arg in args)
        if positional:
            task_id = positional[0]
        else:
            _, task_id = self._branch_task()

        self._require_status(
            task_id, CODE_REVIEW, (InternalStatus.REVIEW,), ("REVIEW",)
        )

        self._say("Merging pull request...")
        merged = self._gh_command("pr", "merge", "--auto", "--squash")
        if not merged.ok:
            raise WorkflowError(
                f"Failed to merge pull request: {merged.stderr}", merged.returncode or 1
            )
        if not self._transition(task_id, DONE) or not close_parent:
            return

        details = self._tracker.get_task_details(task_id)
        if not isinstance(details, TaskDetails):
            self._warn(f"Could not fetch task details to close parent: {details.message}")
        elif details.parent_key is None:
            self._warn(f"No parent task found for {task_id}")
        else:
            self._transition(details.parent_key, DONE)

    def work(self, args: list[str]) -> None:
        _, task_id = self._branch_task()
        lookup = self._tracker.get_task_status(task_id)
        status = lookup.status.display if isinstance(lookup, TaskFound) else "Unknown"

        details = self._tracker.get_task_details(task_id)
        if not isinstance(details, TaskDetails):
            raise WorkflowError(f"Failed to fetch task details: {details.message}")

        self._say(_RULE)
        self._say(f"Work log for {details.key}")
        self._say(_RULE)
        self._say(f"Task: {details.summary}")
        self._say(f"Status: {status}")
        if details.parent_key:
            self._say(f"Parent: {details.parent_key}")

        self._section("Recent commits")
        log = self._invocation.capture_git("log", "--oneline", "-10")
        self._say(log.stdout if log.ok and log.stdout else "No commits found")

        self._section("Branch status")
        short = self._invocation.capture_git("status", "--short")
        if short.ok:
            self._say(short.stdout or "Working directory clean")

        self._section("Pull request")
        try:
            pr = self._gh_command("pr", "view", "--json", "url,state,title")
        except WorkflowError as exc:
            logger.debug("%s", exc)
            pr = None
        if pr is not None and pr.ok and pr.stdout:
            self._say(pr.stdout)
        else:
            self._say("No pull request found for this branch")

    def _section(self, title: str) -> None:
        self._say()
        self._say(f"{title}:")
        self._say(_RULE)


def build_pull_request_body(details: TaskDetails) -> str:
    description = details.description.strip() or "_No description provided_"
    lines = [
        "<details>",
        "<summary>Task details</summary>",
        "",
        f"**Task:** {details.key}",
        f"**Summary:** {details.summary}",
    ]
    if details.parent_key:
        lines.append(f"**Parent:** {details.parent_key}")
    lines.extend(["", description, "</details>"])
    return "\n".join(lines)


def is_workflow_command(command: str | None) -> bool:
    return command is not None and command.lower() in WORKFLOW_COMMANDS


__all__ = [
    "HELP_TEXT",
    "WORKFLOW_COMMANDS",
    "Workflow",
    "WorkflowError",
    "build_pull_request_body",
    "is_workflow_command",
]
