"""tollgate diagnostics CLI."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from tollgate.config import ConfigLoadError, TollgateSettings, config_candidates, load_config, read_config
from tollgate.git.resolver import GitNotFoundError, RealGitResolver
from tollgate.storage import SessionStore
from tollgate.trackers import create_tracker
from tollgate.models import TaskFound, TaskNotFound

REDACTED = "**********"


def cmd_resolve(args: argparse.Namespace) -> None:
    settings = TollgateSettings()
    config = load_config(args.config, settings)
    resolver = RealGitResolver(env_override=settings.real_git)
    if args.candidates:
        for candidate in resolver.candidates(config.real_git_hint):
            print(candidate)
        return
    try:
        print(resolver.resolve(config.real_git_hint))
    except GitNotFoundError as exc:
        print(f"git unavailable: {exc}")
        raise SystemExit(127)


def cmd_config(args: argparse.Namespace) -> None:
    settings = TollgateSettings()
    if args.check:
        failures = 0
        for candidate in config_candidates(args.config, settings):
            if not candidate.is_file():
                continue
            try:
                read_config(candidate)
            except ConfigLoadError as exc:
                failures += 1
                print(f"invalid: {exc}")
            else:
                print(f"ok: {candidate}")
        if failures:
            raise SystemExit(1)
        return
    config = load_config(args.config, settings)
    document = config.model_dump(mode="json", by_alias=True)
    # SecretStr fields dump masked; jira CLI environment values usually hold API tokens.
    environment = document["external"].get("environment")
    if environment:
        document["external"]["environment"] = {name: REDACTED for name in environment}
    print(json.dumps(document, indent=2))


def cmd_session(args: argparse.Namespace) -> None:
    settings = TollgateSettings()
    config = load_config(args.config, settings)
    store = SessionStore(config.state_root)
    if args.clear:
        store.clear()
        print(f"cleared {store.session_path}")
        return
    session = store.load()
    if session is None:
        print("no active session")
        return
    print(session.model_dump_json(by_alias=True, indent=2))


def cmd_lookup(args: argparse.Namespace) -> None:
    settings = TollgateSettings()
    config = load_config(args.config, settings)
    with create_tracker(config) as tracker:
        result = tracker.get_task_status(args.task_id)
    if isinstance(result, TaskFound):
        status = result.status
        internal = status.internal.value if status.internal is not None else None
        print(json.dumps({"key": status.key, "raw": status.raw, "internal": internal}, indent=2))
    elif isinstance(result, TaskNotFound):
        print(f"{args.task_id} not found")
        raise SystemExit(1)
    else:
        print(f"lookup failed: {result.message}")
        raise SystemExit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="tollgate diagnostics")
    parser.add_argument("--config", type=Path, default=None, help="Explicit config file")
    sub = parser.add_subparsers(dest="cmd")

    p_resolve = sub.add_parser("resolve", help="Show which git binary would be used")
    p_resolve.add_argument(
        "--candidates",
        action="store_true",
        help="List every candidate in lookup order instead",
    )
    p_resolve.set_defaults(func=cmd_resolve)

    p_config = sub.add_parser("config", help="Print the effective configuration")
    p_config.add_argument("--check", action="store_true", help="Validate config files only")
    p_config.set_defaults(func=cmd_config)

    p_session = sub.add_parser("session", help="Show the active tracking session")
    p_session.add_argument("--clear", action="store_true", help="Delete the stored session")
    p_session.set_defaults(func=cmd_session)

    p_lookup = sub.add_parser("lookup", help="Query the tracker for a task status")
    p_lookup.add_argument("task_id")
    p_lookup.set_defaults(func=cmd_lookup)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
