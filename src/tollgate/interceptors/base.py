"""The before/after hook contract every policy implements."""

from __future__ import annotations

from .. import console
from ..config import Config, EnforcementMode
from ..invocation import Invocation
from ..trackers.base import TaskTracker


class GitInterceptor:
    """Base class with no-op hooks.

    ``before`` returns ``None`` to let the command continue, or an exit code
    that stops the chain; the real command is then never run. ``after`` sees
    the command's exit code and may return a replacement exit code, which
    also ends after-processing.
    """

    name = "interceptor"

    def before(
        self,
        invocation: Invocation,
        config: Config,
        tracker: TaskTracker,
    ) -> int | None:
        return None

    def after(
        self,
        invocation: Invocation,
        exit_code: int,
        config: Config,
        tracker: TaskTracker,
    ) -> int | None:
        return None


def handle_violation(mode: EnforcementMode, message: str, exit_code: int) -> int | None:
    """Report ``message`` according to ``mode``; BLOCK yields ``exit_code``."""

    if mode is EnforcementMode.BLOCK:
        console.error(message)
        return exit_code
    if mode is EnforcementMode.WARN:
        console.warn(message)
    return None


__all__ = ["GitInterceptor", "handle_violation"]
