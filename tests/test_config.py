from __future__ import annotations

import json
from pathlib import Path

import pytest

from tollgate.config import (
    BearerAuth,
    Config,
    ConfigLoadError,
    EnforcementMode,
    JiraCliIntegration,
    RestIntegration,
    TollgateSettings,
    config_candidates,
    load_config,
    read_config,
)
from tollgate.models import InternalStatus


def _settings(tmp_path: Path, **overrides) -> TollgateSettings:
    values = {"state_root": tmp_path / "state", "config_path": None, "real_git": None}
    values.update(overrides)
    return TollgateSettings(**values)


def test_defaults(tmp_path: Path) -> None:
    config = Config()

    assert isinstance(config.external, RestIntegration)
    assert config.enforcement.branch_policy is EnforcementMode.WARN
    assert config.enforcement.status_check is EnforcementMode.WARN
    assert config.status_rules.allow_commit_when == ["IN_PROGRESS", "READY"]
    assert config.session_tracking_interval_ms == 300_000
    assert config.immediate_rules.opt_out_flags == ["-nt", "--no-tollgate"]
    assert "rev-parse" in config.immediate_rules.bypass_commands
    assert config.ticket_mapping is None


def test_read_json_config_with_camel_case_keys(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "external": {
                    "type": "rest",
                    "baseUrl": "https://tracker.example",
                    "auth": {"type": "bearer", "token": "secret"},
                    "timeoutMs": 2500,
                },
                "enforcement": {"branchPolicy": "block", "statusCheck": "OFF"},
                "statusRules": {"allowCommitWhen": "IN_PROGRESS"},
                "ticketMapping": {
                    "default": "TODO",
                    "providers": [
                        {"provider": "rest", "rules": [{"to": "DONE", "match": ["Shipped"]}]}
                    ],
                },
                "sessionTrackingIntervalMs": 60000,
                "unknownKey": True,
            }
        ),
        encoding="utf-8",
    )

    config = read_config(path)

    assert isinstance(config.external, RestIntegration)
    assert config.external.base_url == "https://tracker.example"
    assert isinstance(config.external.auth, BearerAuth)
    assert config.external.timeout_ms == 2500
    assert config.enforcement.branch_policy is EnforcementMode.BLOCK
    assert config.enforcement.status_check is EnforcementMode.OFF
    assert config.status_rules.allow_commit_when == ["IN_PROGRESS"]
    assert config.ticket_mapping is not None
    assert config.ticket_mapping.default is InternalStatus.TODO
    assert config.session_tracking_interval_ms == 60000


def test_read_yaml_config(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "external:\n"
        "  type: jiraCli\n"
        "  executable: /opt/jira\n"
        "  environment:\n"
        "    JIRA_API_TOKEN: abc\n"
        "branchPattern: '^(?<task>[A-Z]+-\\d+)-.+$'\n",
        encoding="utf-8",
    )

    config = read_config(path)

    assert isinstance(config.external, JiraCliIntegration)
    assert config.external.executable == "/opt/jira"
    assert config.external.environment == {"JIRA_API_TOKEN": "abc"}
    assert config.branch_pattern.endswith("-.+$")


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "[1, 2]",
        json.dumps({"branchPattern": "(["}),
        json.dumps({"sessionTrackingIntervalMs": 0}),
        json.dumps({"external": {"type": "carrier-pigeon"}}),
    ],
)
def test_read_config_rejects_invalid_files(tmp_path: Path, content: str) -> None:
    path = tmp_path / "config.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigLoadError):
        read_config(path)


def test_read_config_rejects_invalid_utf8(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_bytes(b'{"branchPattern": "\xff"}')

    with pytest.raises(ConfigLoadError):
        read_config(path)


def test_load_config_falls_back_on_undecodable_file(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    path = tmp_path / "config.json"
    path.write_bytes(b'{"branchPattern": "\xff"}')

    config = load_config(path, settings)

    assert config.branch_pattern == Config().branch_pattern


def test_auth_secrets_are_masked_in_dumps() -> None:
    auth = BearerAuth(token="s3cret")

    assert auth.token.get_secret_value() == "s3cret"
    assert "s3cret" not in json.dumps(auth.model_dump(mode="json"))


def test_load_config_prefers_explicit_path(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    settings.state_root.mkdir(parents=True)
    (settings.state_root / "config.json").write_text(
        json.dumps({"trackingEnabled": False}), encoding="utf-8"
    )
    explicit = tmp_path / "explicit.json"
    explicit.write_text(json.dumps({"realGitHint": "/opt/git"}), encoding="utf-8")

    config = load_config(explicit, settings)

    assert config.real_git_hint == "/opt/git"
    assert config.tracking_enabled is True


def test_load_config_skips_broken_file(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    settings = _settings(tmp_path)
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")

    config = load_config(broken, settings)

    assert config.tracking_enabled is True
    assert "Failed to parse config file" in caplog.text


def test_load_config_applies_state_root_override(tmp_path: Path) -> None:
    settings = _settings(tmp_path)
    settings.state_root.mkdir(parents=True)
    (settings.state_root / "config.json").write_text(
        json.dumps({"stateRoot": str(tmp_path / "elsewhere")}), encoding="utf-8"
    )

    config = load_config(settings=settings)

    assert config.state_root == settings.state_root
    assert config.state_root.is_dir()


def test_config_candidates_order(tmp_path: Path) -> None:
    settings = _settings(tmp_path, config_path=tmp_path / "env.json")

    candidates = config_candidates(tmp_path / "cli.json", settings)

    assert candidates[:3] == [
        tmp_path / "cli.json",
        tmp_path / "env.json",
        settings.state_root / "config.json",
    ]


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("REAL_GIT", "/usr/local/bin/git")
    monkeypatch.setenv("TOLLGATE_DEBUG", "yes")
    monkeypatch.setenv("TOLLGATE_STATE_ROOT", str(tmp_path))
    monkeypatch.setenv("TOLLGATE_CONFIG", " ")

    settings = TollgateSettings()

    assert settings.real_git == "/usr/local/bin/git"
    assert settings.debug is True
    assert settings.state_root == tmp_path
    assert settings.config_path is None


def test_settings_reject_unknown_log_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TOLLGATE_LOG_LEVEL", "chatty")

    with pytest.raises(ValueError):
        TollgateSettings()
