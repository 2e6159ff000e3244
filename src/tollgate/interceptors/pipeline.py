"""Runs the interceptor chain around a single real git invocation."""

from __future__ import annotations

import logging
from typing import Iterable

from ..config import Config
from ..invocation import Invocation
from ..trackers.base import TaskTracker
from .base import GitInterceptor
from .branch_policy import BranchPolicyInterceptor
from .commit_message import CommitMessageInterceptor
from .session_tracking import SessionTrackingInterceptor
from .status_gate import StatusGateInterceptor

logger = logging.getLogger(__name__)


def default_interceptors() -> list[GitInterceptor]:
    return [
        BranchPolicyInterceptor(),
        StatusGateInterceptor(),
        CommitMessageInterceptor(),
        SessionTrackingInterceptor(),
    ]


class InterceptorPipeline:
    """Before-hooks in order, then git, then after-hooks in order.

    The first before-hook returning an exit code ends the run: git is not
    executed and no after-hook sees the invocation.
    """

    def __init__(self, interceptors: Iterable[GitInterceptor] | None = None) -> None:
        self._interceptors = list(
            default_interceptors() if interceptors is None else interceptors
        )

    @property
    def interceptors(self) -> tuple[GitInterceptor, ...]:
        return tuple(self._interceptors)

    def run(self, invocation: Invocation, config: Config, tracker: TaskTracker) -> int:
        for interceptor in self._interceptors:
            veto = interceptor.before(invocation, config, tracker)
            if veto is not None:
                logger.debug("%s stopped %s with exit %s", interceptor.name, invocation, veto)
                return veto

        exit_code = invocation.passthrough_git(*invocation.args)

        for interceptor in self._interceptors:
            replacement = interceptor.after(invocation, exit_code, config, tracker)
            if replacement is not None:
                logger.debug(
                    "%s replaced exit %s with %s", interceptor.name, exit_code, replacement
                )
                return replacement
        return exit_code


__all__ = ["InterceptorPipeline", "default_interceptors"]
