"""Process execution and git binary resolution."""

from .branches import branch_name_for, compile_branch_pattern, extract_task
from .resolver import GitNotFoundError, RealGitResolver, current_artifact_path
from .runner import CommandResult, TIMEOUT_EXIT_CODE, capture, passthrough

__all__ = [
    "CommandResult",
    "GitNotFoundError",
    "RealGitResolver",
    "TIMEOUT_EXIT_CODE",
    "branch_name_for",
    "capture",
    "compile_branch_pattern",
    "current_artifact_path",
    "extract_task",
    "passthrough",
]
