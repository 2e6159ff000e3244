"""Branch name helpers shared by the policies and workflow commands."""

from __future__ import annotations

import re
from functools import lru_cache

TASK_GROUP = "task"

# Java/.NET style named groups, but not lookbehinds ``(?<=`` / ``(?<!``.
_FOREIGN_NAMED_GROUP = re.compile(r"\(\?<(?![=!])")
_SLUG_INVALID = re.compile(r"[^a-z0-9]+")
_MAX_SLUG_LENGTH = 50


@lru_cache(maxsize=32)
def compile_branch_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a branch pattern, accepting ``(?<name>...)`` group syntax."""

    try:
        return re.compile(_FOREIGN_NAMED_GROUP.sub("(?P<", pattern))
    except re.error as exc:
        raise ValueError(f"Invalid branch pattern {pattern!r}: {exc}") from exc


def extract_task(branch: str, pattern: str) -> str | None:
    """Pull a task id out of ``branch``.

    The named group ``task`` wins when present, otherwise the first capturing
    group is used.
    """

    compiled = compile_branch_pattern(pattern)
    match = compiled.search(branch)
    if match is None:
        return None
    if TASK_GROUP in compiled.groupindex:
        task = match.group(TASK_GROUP)
        if task:
            return task
    if compiled.groups >= 1:
        return match.group(1) or None
    return None


def branch_name_for(task_id: str, title: str | None = None) -> str:
    """Build ``<task>/<slug>`` from a task summary, or ``<task>/dev``."""

    slug = _SLUG_INVALID.sub("-", (title or "").lower()).strip("-")
    slug = slug[:_MAX_SLUG_LENGTH].strip("-")
    return f"{task_id}/{slug or 'dev'}"


__all__ = ["TASK_GROUP", "branch_name_for", "compile_branch_pattern", "extract_task"]
