"""Configuration management for tollgate."""

from __future__ import annotations

import json
import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

from .git.branches import compile_branch_pattern
from .models import InternalStatus

logger = logging.getLogger(__name__)

DEFAULT_BRANCH_PATTERN = r"^(?<task>[A-Z]+-\d+)/[a-z0-9._-]+$"
DEFAULT_STATE_ROOT = Path("~/.tollgate")
CONFIG_FILENAMES = ("config.json", "config.yaml", "config.yml")


class ConfigLoadError(RuntimeError):
    """Raised when a configuration file cannot be parsed or validated."""


class EnforcementMode(str, Enum):
    """How a policy reacts to a detected violation."""

    WARN = "WARN"
    BLOCK = "BLOCK"
    OFF = "OFF"


class _ConfigModel(BaseModel):
    """Base for file-backed models; keys are camelCase on disk."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class NoAuth(_ConfigModel):
    type: Literal["none"] = "none"


class BearerAuth(_ConfigModel):
    type: Literal["bearer"] = "bearer"
    token: SecretStr


class BasicAuth(_ConfigModel):
    type: Literal["basic"] = "basic"
    username: str
    password: SecretStr


class PersonalAccessTokenAuth(_ConfigModel):
    """Atlassian-style email/token pair, sent as HTTP basic credentials."""

    type: Literal["pat"] = "pat"
    email: str
    token: SecretStr


AuthConfig = Annotated[
    Union[NoAuth, BearerAuth, BasicAuth, PersonalAccessTokenAuth],
    Field(discriminator="type"),
]


class RestIntegration(_ConfigModel):
    """Talks to a task tracker over HTTP."""

    type: Literal["rest"] = "rest"
    base_url: str = "http://localhost:8080"
    auth: AuthConfig = Field(default_factory=NoAuth)
    timeout_ms: int = 10_000
    provider: str = "rest"

    @field_validator("timeout_ms")
    @classmethod
    def _validate_timeout(cls, value: int) -> int:
        if value < 1:
            raise ValueError("timeoutMs must be >= 1")
        return value


class JiraCliIntegration(_ConfigModel):
    """Delegates to the community ``jira`` CLI found on PATH unless overridden."""

    type: Literal["jiraCli"] = "jiraCli"
    executable: str = "jira"
    environment: dict[str, str] = Field(default_factory=dict)
    timeout_seconds: float = 15.0
    provider: str = "jira"


IntegrationConfig = Annotated[
    Union[RestIntegration, JiraCliIntegration],
    Field(discriminator="type"),
]


class Enforcement(_ConfigModel):
    branch_policy: EnforcementMode = EnforcementMode.WARN
    status_check: EnforcementMode = EnforcementMode.WARN

    @field_validator("branch_policy", "status_check", mode="before")
    @classmethod
    def _normalize_mode(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class StatusRules(_ConfigModel):
    """Statuses (internal names or raw tracker names) that permit commit/push."""

    allow_commit_when: list[str] = Field(default_factory=lambda: ["IN_PROGRESS", "READY"])
    allow_push_when: list[str] = Field(default_factory=lambda: ["READY", "IN_REVIEW", "REVIEW"])

    @field_validator("allow_commit_when", "allow_push_when", mode="before")
    @classmethod
    def _ensure_list(cls, value: Any):
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, (list, tuple, set, frozenset)):
            return list(value)
        raise TypeError("Status allow-lists must be sequences of strings")


class MappingRule(_ConfigModel):
    to: InternalStatus
    match: list[str] = Field(default_factory=list)
    regex: bool = False
    case_insensitive: bool = True


class ProviderMapping(_ConfigModel):
    provider: str
    rules: list[MappingRule] = Field(default_factory=list)


class TicketMapping(_ConfigModel):
    """Maps provider specific status strings into the internal status space."""

    default: InternalStatus | None = None
    providers: list[ProviderMapping] = Field(default_factory=list)


class ImmediateRules(_ConfigModel):
    """Controls whether the interceptor pipeline runs for a given invocation."""

    enabled: bool = True
    opt_out_flags: list[str] = Field(default_factory=lambda: ["-nt", "--no-tollgate"])
    opt_out_env_vars: list[str] = Field(default_factory=lambda: ["TOLLGATE_OPTOUT"])
    bypass_commands: list[str] = Field(
        default_factory=lambda: [
            "help",
            "--version",
            "--exec-path",
            "config",
            "rev-parse",
            "for-each-ref",
        ]
    )
    bypass_args_prefixes: list[str] = Field(default_factory=lambda: ["--list-cmds"])


def _default_state_root() -> Path:
    return DEFAULT_STATE_ROOT.expanduser()


class Config(_ConfigModel):
    """Top-level wrapper configuration, usually read from ``config.json``."""

    external: IntegrationConfig = Field(default_factory=RestIntegration)
    branch_pattern: str = DEFAULT_BRANCH_PATTERN
    enforcement: Enforcement = Field(default_factory=Enforcement)
    status_rules: StatusRules = Field(default_factory=StatusRules)
    ticket_mapping: TicketMapping | None = None
    immediate_rules: ImmediateRules = Field(default_factory=ImmediateRules)
    tracking_enabled: bool = True
    real_git_hint: str | None = None
    session_tracking_interval_ms: int = 300_000
    passthrough_timeout_seconds: float = 3600.0
    state_root: Path = Field(default_factory=_default_state_root)

    @field_validator("branch_pattern")
    @classmethod
    def _validate_branch_pattern(cls, value: str) -> str:
        compile_branch_pattern(value)
        return value

    @field_validator("session_tracking_interval_ms")
    @classmethod
    def _validate_interval(cls, value: int) -> int:
        if value < 1:
            raise ValueError("sessionTrackingIntervalMs must be >= 1")
        return value

    @field_validator("state_root", mode="after")
    @classmethod
    def _expand_state_root(cls, value: Path) -> Path:
        return value.expanduser()


class TollgateSettings(BaseSettings):
    """Runtime overrides sourced from environment variables."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    real_git: str | None = Field(default=None, validation_alias="REAL_GIT")
    config_path: Path | None = Field(default=None, validation_alias="TOLLGATE_CONFIG")
    state_root: Path | None = Field(default=None, validation_alias="TOLLGATE_STATE_ROOT")
    debug: bool = Field(default=False, validation_alias="TOLLGATE_DEBUG")
    log_level: str = Field(default="WARNING", validation_alias="TOLLGATE_LOG_LEVEL")

    @field_validator("real_git", "config_path", "state_root", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("debug", mode="before")
    @classmethod
    def _parse_debug(cls, value) -> bool:
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        return str(value).strip().lower() in {"1", "true", "yes", "on"}

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "TOLLGATE_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized


@lru_cache(maxsize=1)
def get_settings() -> TollgateSettings:
    """Return cached settings instance."""

    settings = TollgateSettings()
    if settings.config_path is not None:
        settings.config_path = settings.config_path.expanduser().resolve()
    if settings.state_root is not None:
        settings.state_root = settings.state_root.expanduser().resolve()
    return settings


def read_config(path: Path) -> Config:
    """Parse a single JSON or YAML configuration file."""

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigLoadError(f"Failed to read config file {path}: {exc}") from exc

    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            document = yaml.safe_load(text)
        else:
            document = json.loads(text) if text.strip() else None
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigLoadError(f"Failed to parse config file {path}: {exc}") from exc

    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise ConfigLoadError(f"Config file {path} must contain an object at the top level")

    try:
        return Config.model_validate(document)
    except ValidationError as exc:
        raise ConfigLoadError(f"Config validation error in {path}: {exc}") from exc


def config_candidates(
    explicit_path: Path | None = None,
    settings: TollgateSettings | None = None,
) -> list[Path]:
    """Return config file locations in lookup order."""

    settings = settings or get_settings()
    candidates: list[Path] = []
    if explicit_path is not None:
        candidates.append(Path(explicit_path).expanduser())
    if settings.config_path is not None:
        candidates.append(settings.config_path)
    state_root = settings.state_root or _default_state_root()
    candidates.extend(state_root / name for name in CONFIG_FILENAMES)
    return candidates


def load_config(
    explicit_path: Path | None = None,
    settings: TollgateSettings | None = None,
) -> Config:
    """Load configuration from the first readable candidate, else defaults.

    A broken config file never stops git from running: it is reported and the
    next candidate (ultimately the built-in defaults) is used instead.
    """

    settings = settings or get_settings()
    config: Config | None = None
    for candidate in config_candidates(explicit_path, settings):
        if not candidate.is_file():
            continue
        try:
            config = read_config(candidate)
        except ConfigLoadError as exc:
            logger.warning("%s", exc)
            continue
        logger.debug("Loaded config from %s", candidate)
        break

    if config is None:
        config = Config()
    if settings.state_root is not None:
        config = config.model_copy(update={"state_root": settings.state_root})

    try:
        config.state_root.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.debug("Unable to create state root %s: %s", config.state_root, exc)
    return config


__all__ = [
    "AuthConfig",
    "BasicAuth",
    "BearerAuth",
    "Config",
    "ConfigLoadError",
    "DEFAULT_BRANCH_PATTERN",
    "Enforcement",
    "EnforcementMode",
    "ImmediateRules",
    "IntegrationConfig",
    "JiraCliIntegration",
    "MappingRule",
    "NoAuth",
    "PersonalAccessTokenAuth",
    "ProviderMapping",
    "RestIntegration",
    "StatusRules",
    "TicketMapping",
    "TollgateSettings",
    "config_candidates",
    "get_settings",
    "load_config",
    "read_config",
]
