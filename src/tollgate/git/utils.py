"""Utility helpers for spawning git and tracker processes."""

from __future__ import annotations

import os
from typing import Mapping


def merge_environment(overrides: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return the inherited environment with ``overrides`` layered on top."""

    env = dict(os.environ)
    if overrides:
        env.update(overrides)
    return env


def decode_output(data: bytes | str | None) -> str:
    if data is None:
        return ""
    if isinstance(data, str):
        return data
    return data.decode("utf-8", errors="replace")
