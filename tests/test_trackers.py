from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

from tollgate.config import (
    BasicAuth,
    BearerAuth,
    Config,
    JiraCliIntegration,
    MappingRule,
    ProviderMapping,
    RestIntegration,
    TicketMapping,
)
from tollgate.models import (
    InternalStatus,
    OperationFailed,
    SubtaskCreated,
    TaskDetails,
    TaskFound,
    TaskLookupFailed,
    TaskNotFound,
    TaskStatus,
    TransitionSucceeded,
)
from tollgate.normalization import StatusNormalizer
from tollgate.storage import SessionSnapshot
from tollgate.trackers import JiraCliTracker, RestTracker, TaskTracker, TrackerClient, create_tracker

T0 = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


def _rest(handler, **overrides) -> RestTracker:
    integration = RestIntegration(base_url="https://tracker.test/api", **overrides)
    return RestTracker(integration, transport=httpx.MockTransport(handler))


def test_rest_status_found() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "In Progress"})

    tracker = _rest(handler, auth=BearerAuth(token="t0k"))
    result = tracker.get_task_status("PROJ-1")

    assert result == TaskFound(TaskStatus(provider="rest", key="PROJ-1", raw="In Progress"))
    assert seen[0].url.path == "/api/tasks/PROJ-1/status"
    assert seen[0].headers["Authorization"] == "Bearer t0k"


def test_rest_basic_auth_header() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "Done"})

    _rest(handler, auth=BasicAuth(username="me", password="pw")).get_task_status("PROJ-1")

    assert seen[0].headers["Authorization"].startswith("Basic ")


@pytest.mark.parametrize(
    "response, expected",
    [
        (httpx.Response(404), TaskNotFound()),
        (httpx.Response(500), TaskLookupFailed("HTTP 500")),
        (httpx.Response(200, json={"other": 1}), TaskLookupFailed("response did not include a status")),
    ],
)
def test_rest_status_failures(response: httpx.Response, expected) -> None:
    tracker = _rest(lambda request: response)

    assert tracker.get_task_status("PROJ-1") == expected


def test_rest_timeout_is_lookup_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    assert _rest(handler).get_task_status("PROJ-1") == TaskLookupFailed("timeout")


def test_rest_blank_task_is_not_found() -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never called
        raise AssertionError("no request expected")

    assert _rest(handler).get_task_status("  ") == TaskNotFound()


def test_rest_track_session_posts_snapshot() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(204)

    snapshot = SessionSnapshot(
        branch="PROJ-1/x", task="PROJ-1", start_time=T0, end_time=T0, duration_ms=1000
    )
    _rest(handler).track_session(snapshot)

    assert bodies[0]["branch"] == "PROJ-1/x"
    assert bodies[0]["durationMs"] == 1000
    assert "startTime" in bodies[0]


def test_rest_track_session_swallows_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    snapshot = SessionSnapshot(branch="main", start_time=T0, end_time=T0, duration_ms=1)
    _rest(handler).track_session(snapshot)


def test_rest_workflow_operations() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/api/tasks/PROJ-1/subtasks":
            assert json.loads(request.content) == {"title": "Write docs"}
            return httpx.Response(201, json={"key": "PROJ-2"})
        if path == "/api/tasks/PROJ-2/transitions":
            assert json.loads(request.content) == {"status": "In Progress"}
            return httpx.Response(200, json={})
        if path == "/api/tasks/PROJ-2":
            return httpx.Response(
                200,
                json={"key": "PROJ-2", "summary": "Docs", "description": "", "parentKey": "PROJ-1"},
            )
        return httpx.Response(404)

    tracker = _rest(handler)

    assert tracker.create_subtask("PROJ-1", "Write docs") == SubtaskCreated("PROJ-2")
    assert tracker.transition_task("PROJ-2", "In Progress") == TransitionSucceeded()
    assert tracker.get_task_details("PROJ-2") == TaskDetails(
        key="PROJ-2", summary="Docs", description="", parent_key="PROJ-1"
    )
    assert tracker.transition_task("PROJ-9", "Done") == OperationFailed("HTTP 404")


def _jira(tmp_path: Path, body: str) -> JiraCliTracker:
    script = tmp_path / "jira"
    script.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    script.chmod(0o755)
    return JiraCliTracker(JiraCliIntegration(executable=str(script), timeout_seconds=5))


def test_jira_status_from_raw_view(tmp_path: Path) -> None:
    payload = json.dumps({"key": "PROJ-1", "fields": {"status": {"name": "In Review"}}})
    tracker = _jira(tmp_path, f"echo '{payload}'")

    result = tracker.get_task_status("PROJ-1")

    assert result == TaskFound(TaskStatus(provider="jira", key="PROJ-1", raw="In Review"))


def test_jira_missing_status_is_not_found(tmp_path: Path) -> None:
    tracker = _jira(tmp_path, "echo '{\"fields\": {}}'")

    assert tracker.get_task_status("PROJ-1") == TaskNotFound()


def test_jira_failed_command_is_lookup_error(tmp_path: Path) -> None:
    tracker = _jira(tmp_path, "echo 'boom' >&2\nexit 1")

    result = tracker.get_task_status("PROJ-1")

    assert isinstance(result, TaskLookupFailed)
    assert "boom" in result.message


def test_jira_missing_executable(tmp_path: Path) -> None:
    tracker = JiraCliTracker(JiraCliIntegration(executable=str(tmp_path / "absent")))

    assert isinstance(tracker.get_task_status("PROJ-1"), TaskLookupFailed)


def test_jira_create_subtask_parses_key_from_text(tmp_path: Path) -> None:
    tracker = _jira(tmp_path, "echo \"args: $*\" >&2\necho 'Issue created: https://jira/browse/PROJ-42'")

    assert tracker.create_subtask("PROJ-1", "Write docs") == SubtaskCreated("PROJ-42")
    assert isinstance(tracker.create_subtask("PROJ-1"), OperationFailed)


def test_jira_transition_passes_arguments(tmp_path: Path) -> None:
    log = tmp_path / "args.txt"
    tracker = _jira(tmp_path, f"echo \"$@\" > '{log}'")

    assert tracker.transition_task("PROJ-1", "Done") == TransitionSucceeded()
    assert log.read_text(encoding="utf-8").strip() == "issue move PROJ-1 Done"


def test_jira_task_details(tmp_path: Path) -> None:
    payload = json.dumps(
        {
            "key": "PROJ-3",
            "fields": {"summary": "Sub", "description": {"type": "doc"}, "parent": {"key": "PROJ-1"}},
        }
    )
    tracker = _jira(tmp_path, f"echo '{payload}'")

    assert tracker.get_task_details("PROJ-3") == TaskDetails(
        key="PROJ-3", summary="Sub", description="", parent_key="PROJ-1"
    )


class ExplodingTracker:
    def get_task_status(self, task_id):
        raise RuntimeError("kaboom")

    def track_session(self, snapshot):
        raise RuntimeError("kaboom")

    def create_subtask(self, parent_id, title=None):
        raise RuntimeError("kaboom")

    def transition_task(self, task_id, target_status):
        raise RuntimeError("kaboom")

    def get_task_details(self, task_id):
        raise RuntimeError("kaboom")

    def close(self):
        pass


class FixedTracker(ExplodingTracker):
    def get_task_status(self, task_id):
        return TaskFound(TaskStatus(provider="jira", key=task_id, raw="Shipped"))


def test_client_contains_adapter_exceptions() -> None:
    client = TrackerClient(ExplodingTracker())
    snapshot = SessionSnapshot(branch="main", start_time=T0, end_time=T0, duration_ms=1)

    assert client.get_task_status("PROJ-1") == TaskLookupFailed("kaboom")
    assert client.create_subtask("PROJ-1", "x") == OperationFailed("kaboom")
    assert client.transition_task("PROJ-1", "Done") == OperationFailed("kaboom")
    assert client.get_task_details("PROJ-1") == OperationFailed("kaboom")
    client.track_session(snapshot)


def test_client_normalizes_found_status() -> None:
    mapping = TicketMapping(
        providers=[ProviderMapping(provider="jira", rules=[MappingRule(to=InternalStatus.DONE, match=["shipped"])])]
    )
    client = TrackerClient(FixedTracker(), StatusNormalizer(mapping))

    result = client.get_task_status("PROJ-1")

    assert isinstance(result, TaskFound)
    assert result.status.internal is InternalStatus.DONE
    assert result.status.raw == "Shipped"


def test_create_tracker_picks_backend() -> None:
    with create_tracker(Config(external=JiraCliIntegration())) as client:
        assert isinstance(client.adapter, JiraCliTracker)
    with create_tracker(Config()) as client:
        assert isinstance(client.adapter, RestTracker)
        assert isinstance(client, TaskTracker)
