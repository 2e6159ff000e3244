"""Policy hooks wrapped around the real git command."""

from .base import GitInterceptor, handle_violation
from .branch_policy import BRANCH_POLICY_EXIT_CODE, BranchPolicyInterceptor
from .commit_message import CommitMessageInterceptor
from .pipeline import InterceptorPipeline, default_interceptors
from .session_tracking import SessionTrackingInterceptor
from .status_gate import COMMIT_EXIT_CODE, PUSH_EXIT_CODE, StatusGateInterceptor

__all__ = [
    "BRANCH_POLICY_EXIT_CODE",
    "BranchPolicyInterceptor",
    "COMMIT_EXIT_CODE",
    "CommitMessageInterceptor",
    "GitInterceptor",
    "InterceptorPipeline",
    "PUSH_EXIT_CODE",
    "SessionTrackingInterceptor",
    "StatusGateInterceptor",
    "default_interceptors",
    "handle_violation",
]
