"""Entry point installed as the ``git`` shim."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from pydantic import ValidationError

from . import console
from .config import (
    Config,
    JiraCliIntegration,
    RestIntegration,
    TollgateSettings,
    get_settings,
    load_config,
)
from .git.resolver import GitNotFoundError, RealGitResolver
from .interceptors import InterceptorPipeline
from .invocation import Invocation
from .storage.session_store import SessionStore
from .trackers import create_tracker
from .workflow import HELP_TEXT, Workflow, is_workflow_command

logger = logging.getLogger(__name__)

GIT_NOT_FOUND_EXIT_CODE = 127
CONFIG_FLAG = "--tollgate-config"

_LOG_FORMAT = "[tollgate] [%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def configure_logging(settings: TollgateSettings, tracking_log: Path | None = None) -> None:
    """Configure the ``tollgate`` logger; debug mode also appends to ``tracking_log``."""

    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level, logging.WARNING)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.debug and tracking_log is not None:
        try:
            handlers.append(logging.FileHandler(tracking_log, encoding="utf-8"))
        except OSError as exc:
            console.warn(f"cannot open {tracking_log}: {exc}")

    formatter = logging.Formatter(_LOG_FORMAT)
    package_logger = logging.getLogger("tollgate")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)
    package_logger.setLevel(level)


def extract_config_path(args: Sequence[str]) -> tuple[Path | None, list[str]]:
    """Pull ``--tollgate-config PATH`` (or ``--tollgate-config=PATH``) out of ``args``."""

    remaining: list[str] = []
    config_path: Path | None = None
    index = 0
    while index < len(args):
        token = args[index]
        if token == CONFIG_FLAG and index + 1 < len(args):
            config_path = Path(args[index + 1])
            index += 2
            continue
        if token.startswith(f"{CONFIG_FLAG}="):
            config_path = Path(token[len(CONFIG_FLAG) + 1 :])
            index += 1
            continue
        remaining.append(token)
        index += 1
    return config_path, remaining


@dataclass(frozen=True, slots=True)
class ImmediateRulesEvaluation:
    args: list[str]
    bypass: bool
    opted_out: bool


def _is_bypass(args: Sequence[str], config: Config) -> bool:
    if not args:
        return False
    rules = config.immediate_rules
    if any(arg.startswith(prefix) for prefix in rules.bypass_args_prefixes for arg in args):
        return True
    first = args[0].casefold()
    return any(command.casefold() == first for command in rules.bypass_commands)


def evaluate_immediate_rules(
    args: Sequence[str],
    config: Config,
    env: Mapping[str, str],
) -> ImmediateRulesEvaluation:
    """Strip opt-out flags and decide whether the pipeline is skipped."""

    opt_out_flags = set(config.immediate_rules.opt_out_flags)
    cleaned = [arg for arg in args if arg not in opt_out_flags]
    opted_out_by_flag = len(cleaned) != len(args)
    opted_out_by_env = any(
        (env.get(name) or "").strip() for name in config.immediate_rules.opt_out_env_vars
    )
    return ImmediateRulesEvaluation(
        args=cleaned,
        bypass=_is_bypass(cleaned, config),
        opted_out=opted_out_by_flag or opted_out_by_env,
    )


def describe_integration(config: Config) -> str:
    integration = config.external
    if isinstance(integration, JiraCliIntegration):
        return f"jira-cli ({integration.executable})"
    if isinstance(integration, RestIntegration):
        return f"REST API ({integration.base_url})"
    return type(integration).__name__


def status_epilogue(config: Config, real_git: Path) -> str:
    lines = [
        "",
        "tollgate:",
        f"  real git: {real_git}",
        f"  external integration: {describe_integration(config)}",
        f"  tracking enabled: {str(config.tracking_enabled).lower()}",
    ]
    session = SessionStore(config.state_root).load()
    if session is not None:
        lines.append(f"  active session: {session.branch} since {session.start_time.isoformat()}")
    return "\n".join(lines)


def _is_help(args: Sequence[str]) -> bool:
    if not args:
        return False
    return args[0].lower() in ("help", "--help") or "--help" in args


def environment_settings() -> TollgateSettings:
    """Read settings from the environment, resetting invalid variables to defaults."""

    try:
        return get_settings()
    except ValidationError as exc:
        invalid = {str(error["loc"][0]) for error in exc.errors() if error["loc"]}
        console.warn(f"ignoring invalid environment settings: {', '.join(sorted(invalid))}")
        overrides = {
            field.validation_alias: field.default
            for name, field in TollgateSettings.model_fields.items()
            if name in invalid or field.validation_alias in invalid
        }
        try:
            return TollgateSettings(**overrides)
        except ValidationError:
            return TollgateSettings.model_construct()


def main(argv: Sequence[str] | None = None, settings: TollgateSettings | None = None) -> int:
    """Run one wrapped git invocation and return its exit code."""

    raw_args = list(sys.argv[1:] if argv is None else argv)
    settings = settings or environment_settings()
    config_path, args = extract_config_path(raw_args)
    config = load_config(config_path, settings)
    configure_logging(settings, SessionStore(config.state_root).log_path)

    try:
        real_git = RealGitResolver(env_override=settings.real_git).resolve(config.real_git_hint)
    except GitNotFoundError as exc:
        console.error(str(exc))
        return GIT_NOT_FOUND_EXIT_CODE

    env = dict(os.environ)
    evaluation = evaluate_immediate_rules(args, config, env)
    args = evaluation.args
    invocation = Invocation(
        args,
        real_git,
        Path.cwd(),
        env,
        passthrough_timeout=config.passthrough_timeout_seconds,
    )
    logger.debug(
        "Invocation %s",
        args,
        extra={"bypass": evaluation.bypass, "opted_out": evaluation.opted_out},
    )

    if is_workflow_command(invocation.command):
        with create_tracker(config) as tracker:
            return Workflow(invocation, config, tracker).run()

    if _is_help(args):
        exit_code = invocation.passthrough_git(*args)
        print()
        print(HELP_TEXT)
        return exit_code

    exit_code = _execute(invocation, config, evaluation)
    if invocation.command == "status":
        print(status_epilogue(config, real_git))
    return exit_code


def _execute(invocation: Invocation, config: Config, evaluation: ImmediateRulesEvaluation) -> int:
    if evaluation.bypass or evaluation.opted_out or not config.immediate_rules.enabled:
        return invocation.passthrough_git(*invocation.args)
    with create_tracker(config) as tracker:
        return InterceptorPipeline().run(invocation, config, tracker)


def run() -> None:
    """Console script entry point."""

    raise SystemExit(main())


__all__ = [
    "CONFIG_FLAG",
    "GIT_NOT_FOUND_EXIT_CODE",
    "ImmediateRulesEvaluation",
    "configure_logging",
    "environment_settings",
    "evaluate_immediate_rules",
    "extract_config_path",
    "main",
    "run",
    "status_epilogue",
]
