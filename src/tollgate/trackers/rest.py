"""Task tracker backend speaking a small JSON-over-HTTP API."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..config import BasicAuth, BearerAuth, PersonalAccessTokenAuth, RestIntegration
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


def _build_auth(integration: RestIntegration) -> tuple[httpx.Auth | None, dict[str, str]]:
    auth = integration.auth
    if isinstance(auth, BearerAuth):
        return None, {"Authorization": f"Bearer {auth.token.get_secret_value()}"}
    if isinstance(auth, BasicAuth):
        return httpx.BasicAuth(auth.username, auth.password.get_secret_value()), {}
    if isinstance(auth, PersonalAccessTokenAuth):
        return httpx.BasicAuth(auth.email, auth.token.get_secret_value()), {}
    return None, {}


def _task_path(task_id: str, suffix: str = "") -> str:
    return f"/tasks/{quote(task_id, safe='')}{suffix}"


class RestTracker:
    """Talks to ``{baseUrl}/tasks/...`` and ``{baseUrl}/sessions/track``."""

    def __init__(
        self,
        integration: RestIntegration,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._integration = integration
        auth, headers = _build_auth(integration)
        self._client = httpx.Client(
            base_url=integration.base_url.rstrip("/"),
            auth=auth,
            headers={"Accept": "application/json", **headers},
            timeout=integration.timeout_ms / 1000,
            transport=transport,
        )

    @property
    def provider(self) -> str:
        return self._integration.provider

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        return self._client.request(method, path, **kwargs)

    def get_task_status(self, task_id: str) -> TaskLookupResult:
        if not task_id.strip():
            return TaskNotFound()
        try:
            response = self._request("GET", _task_path(task_id, "/status"))
        except httpx.TimeoutException:
            logger.debug("Task lookup timed out for %s", task_id)
            return TaskLookupFailed("timeout")
        except httpx.HTTPError as exc:
            logger.debug("Task lookup failed for %s: %s", task_id, exc)
            return TaskLookupFailed(str(exc) or exc.__class__.__name__)

        if response.status_code == 404:
            return TaskNotFound()
        if not response.is_success:
            logger.debug("Task lookup for %s returned HTTP %s", task_id, response.status_code)
            return TaskLookupFailed(f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as exc:
            return TaskLookupFailed(f"malformed response: {exc}")
        status = payload.get("status") if isinstance(payload, dict) else None
        if not isinstance(status, str) or not status.strip():
            return TaskLookupFailed("response did not include a status")
        return TaskFound(TaskStatus(provider=self.provider, key=task_id, raw=status))

    def track_session(self, snapshot: SessionSnapshot) -> None:
        try:
            response = self._request(
                "POST",
                "/sessions/track",
                json=snapshot.model_dump(mode="json", by_alias=True),
            )
        except httpx.HTTPError as exc:
            logger.debug("Session tracking failed: %s", exc)
            return
        if not response.is_success:
            logger.debug("Session tracking returned HTTP %s", response.status_code)

    def create_subtask(self, parent_id: str, title: str | None = None) -> SubtaskResult:
        if not parent_id.strip():
            return OperationFailed("Parent ID cannot be blank")
        body: dict[str, Any] = {}
        if title:
            body["title"] = title
        try:
            response = self._request("POST", _task_path(parent_id, "/subtasks"), json=body)
        except httpx.HTTPError as exc:
            return OperationFailed(str(exc) or exc.__class__.__name__)
        if not response.is_success:
            return OperationFailed(f"HTTP {response.status_code}")
        try:
            key = response.json().get("key")
        except (ValueError, AttributeError):
            key = None
        if not key:
            return OperationFailed("No key field in response")
        return SubtaskCreated(str(key))

    def transition_task(self, task_id: str, target_status: str) -> TransitionResult:
        if not task_id.strip():
            return OperationFailed("Task ID cannot be blank")
        try:
            response = self._request(
                "POST", _task_path(task_id, "/transitions"), json={"status": target_status}
            )
        except httpx.HTTPError as exc:
            return OperationFailed(str(exc) or exc.__class__.__name__)
        if not response.is_success:
            return OperationFailed(f"HTTP {response.status_code}")
        return TransitionSucceeded()

    def get_task_details(self, task_id: str) -> TaskDetailsResult:
        if not task_id.strip():
            return OperationFailed("Task ID cannot be blank")
        try:
            response = self._request("GET", _task_path(task_id))
        except httpx.HTTPError as exc:
            return OperationFailed(str(exc) or exc.__class__.__name__)
        if not response.is_success:
            return OperationFailed(f"HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as exc:
            return OperationFailed(f"malformed response: {exc}")
        if not isinstance(payload, dict):
            return OperationFailed("malformed response")
        return TaskDetails(
            key=str(payload.get("key") or task_id),
            summary=str(payload.get("summary") or ""),
            description=str(payload.get("description") or ""),
            parent_key=payload.get("parentKey") or None,
        )


__all__ = ["RestTracker"]
