"""Task tracker contract, client and the built-in backends."""

from __future__ import annotations

from ..config import Config, JiraCliIntegration, RestIntegration
from ..normalization import StatusNormalizer
from .base import TaskTracker
from .client import TrackerClient
from .jira_cli import JiraCliTracker
from .rest import RestTracker


def create_tracker(config: Config) -> TrackerClient:
    """Build the backend named by ``config.external`` behind a :class:`TrackerClient`."""

    integration = config.external
    if isinstance(integration, JiraCliIntegration):
        adapter: TaskTracker = JiraCliTracker(integration)
    elif isinstance(integration, RestIntegration):
        adapter = RestTracker(integration)
    else:  # pragma: no cover - closed union
        raise TypeError(f"Unsupported integration: {type(integration).__name__}")
    return TrackerClient(adapter, StatusNormalizer(config.ticket_mapping))


__all__ = [
    "JiraCliTracker",
    "RestTracker",
    "TaskTracker",
    "TrackerClient",
    "create_tracker",
]
