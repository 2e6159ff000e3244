"""Maps tracker specific status strings onto :class:`InternalStatus`."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .models import InternalStatus, TaskStatus

if TYPE_CHECKING:
    from .config import MappingRule, TicketMapping

_WHITESPACE = re.compile(r"[\s\-]+")

# Checked in order; the first keyword found in the canonical text wins.
_KEYWORD_HEURISTICS: tuple[tuple[tuple[str, ...], InternalStatus], ...] = (
    (("BLOCK",), InternalStatus.BLOCKED),
    (("REVIEW",), InternalStatus.REVIEW),
    (("PROGRESS",), InternalStatus.IN_PROGRESS),
    (("READY", "TODO", "OPEN"), InternalStatus.TODO),
    (("DONE", "CLOSE", "RESOLVED"), InternalStatus.DONE),
)


def canonical_status(raw: str | None) -> str:
    """``"In Progress"`` -> ``"IN_PROGRESS"``."""

    if not raw:
        return ""
    return _WHITESPACE.sub("_", raw.strip()).upper()


def infer_from_raw(raw: str | None) -> InternalStatus | None:
    canonical = canonical_status(raw)
    if not canonical:
        return None
    for keywords, status in _KEYWORD_HEURISTICS:
        if any(keyword in canonical for keyword in keywords):
            return status
    return None


def _rule_matches(candidate: str, raw: str, *, regex: bool, case_insensitive: bool) -> bool:
    if not regex:
        if case_insensitive:
            return candidate.casefold() == raw.casefold()
        return candidate == raw
    flags = re.IGNORECASE if case_insensitive else 0
    try:
        return re.fullmatch(candidate, raw, flags) is not None
    except re.error:
        return False


class StatusNormalizer:
    """Pure rule engine; ``to_internal`` never mutates its input."""

    def __init__(self, mapping: "TicketMapping | None" = None) -> None:
        self._mapping = mapping

    @classmethod
    def identity(cls) -> "StatusNormalizer":
        return cls(None)

    def _rules_for(self, provider: str) -> list["MappingRule"]:
        if self._mapping is None:
            return []
        for provider_mapping in self._mapping.providers:
            if provider_mapping.provider.casefold() == provider.casefold():
                return list(provider_mapping.rules)
        return []

    def _match_rules(self, status: TaskStatus) -> InternalStatus | None:
        raw = status.raw or ""
        for rule in self._rules_for(status.provider):
            if any(
                _rule_matches(candidate, raw, regex=rule.regex, case_insensitive=rule.case_insensitive)
                for candidate in rule.match
            ):
                return rule.to
        return None

    def to_internal(self, status: TaskStatus) -> TaskStatus:
        """Return a copy of ``status`` with ``internal`` populated when possible.

        Resolution order: the provider's rules in declaration order, an
        already-set internal value, the mapping default, then keyword
        inference on the raw text. The result may still be ``None``; callers
        must treat that as "not allowed".
        """

        resolved = self._match_rules(status)
        if resolved is None:
            resolved = status.internal
        if resolved is None and self._mapping is not None:
            resolved = self._mapping.default
        if resolved is None:
            resolved = infer_from_raw(status.raw)
        return status.with_internal(resolved)


__all__ = ["StatusNormalizer", "canonical_status", "infer_from_raw"]
