from __future__ import annotations

from pathlib import Path

import pytest

from tollgate.git import runner
from tollgate.git.runner import CommandResult, serialize_result


def _script(tmp_path: Path, name: str, body: str) -> Path:
    script = tmp_path / name
    script.write_text(f"#!/bin/sh\n{body}\n", encoding="utf-8")
    script.chmod(0o755)
    return script


def test_capture_collects_and_trims_output(tmp_path: Path) -> None:
    script = _script(tmp_path, "tool", "echo \"out $@\"\necho 'err' >&2\nexit 3")

    result = runner.capture([script, "a", "b"])

    assert result.returncode == 3
    assert not result.ok
    assert result.stdout == "out a b"
    assert result.stderr == "err"


def test_capture_layers_env_over_inherited(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOLLGATE_INHERITED", "kept")
    script = _script(tmp_path, "env", "echo \"$TOLLGATE_INHERITED $TOLLGATE_EXTRA\"")

    result = runner.capture([script], env={"TOLLGATE_EXTRA": "added"})

    assert result.ok
    assert result.stdout == "kept added"


def test_capture_uses_work_dir(tmp_path: Path) -> None:
    script = _script(tmp_path, "where", "pwd")
    work_dir = tmp_path / "nested"
    work_dir.mkdir()

    result = runner.capture([script], work_dir=work_dir)

    assert Path(result.stdout).resolve() == work_dir.resolve()


def test_capture_timeout_returns_minus_one(tmp_path: Path) -> None:
    script = _script(tmp_path, "slow", "sleep 5")

    result = runner.capture([script], timeout=0.2)

    assert result.returncode == runner.TIMEOUT_EXIT_CODE
    assert result.timed_out


def test_passthrough_returns_exit_code(tmp_path: Path) -> None:
    script = _script(tmp_path, "fail", "exit 7")

    assert runner.passthrough([script]) == 7


def test_passthrough_timeout_kills_child(tmp_path: Path) -> None:
    script = _script(tmp_path, "slow", "sleep 5")

    assert runner.passthrough([script], timeout=0.2) == -1


def test_empty_command_is_rejected() -> None:
    with pytest.raises(ValueError):
        runner.capture([])
    with pytest.raises(ValueError):
        runner.passthrough([])


def test_serialize_result_includes_args() -> None:
    result = CommandResult(args=("git", "status"), returncode=0, stdout="clean", stderr="")

    payload = serialize_result(result)

    assert "\"status\"" in payload
    assert "\"returncode\": 0" in payload
