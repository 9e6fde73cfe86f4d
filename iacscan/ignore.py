"""Ignore rules from a .snyk policy file, matched against vulnerabilities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

import yaml


def _as_utc(value: datetime | date | None) -> datetime | None:
    if value is None:
        return None
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _parse_pattern(pattern: str) -> tuple[str, ...]:
    if not pattern:
        raise ValueError("empty pattern")
    return tuple(part.strip() for part in pattern.split(" > "))


def _match_path(pattern: tuple[str, ...], parts: tuple[str, ...]) -> bool:
    last = len(pattern) - 1
    for i, part in enumerate(pattern):
        if i >= len(parts):
            return False
        if part == "*":
            if i == last:
                return True
            continue
        if part != parts[i]:
            return False
    return len(parts) == len(pattern)


@dataclass(frozen=True)
class _ExpiringPattern:
    expires: datetime | None
    parts: tuple[str, ...]

    def matches(self, now: datetime, parts: tuple[str, ...]) -> bool:
        if self.expires is not None and not now < self.expires:
            return False
        return _match_path(self.parts, parts)


class Matcher:
    """Collects ignore rules and matches them to a vulnerability, a time and a path."""

    def __init__(self) -> None:
        self._ignores: dict[str, list[_ExpiringPattern]] = {}

    def add_ignore(self, id: str, expires: datetime | date | None, pattern: str) -> None:
        """Add an ignore; ``expires`` of None means it never expires.

        Raises ValueError if the vulnerability ID or the pattern is empty.
        """
        if not id:
            raise ValueError("empty vulnerability ID")
        entry = _ExpiringPattern(_as_utc(expires), _parse_pattern(pattern))
        self._ignores.setdefault(id, []).append(entry)

    def match(self, id: str, now: datetime, *args: str) -> bool:
        """Return True if any ignore for ``id`` matches the path components at ``now``."""
        current = _as_utc(now)
        return any(entry.matches(current, args) for entry in self._ignores.get(id, ()))


def _policy_error(message: str) -> ValueError:
    return ValueError(f"unmarshal policy: {message}")


def _expiry(value: Any) -> datetime | date | None:
    if value is None or isinstance(value, (datetime, date)):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise _policy_error(f"invalid expiry {value!r}") from exc
    raise _policy_error(f"invalid expiry {value!r}")


def matcher_from_policy(config: bytes | str) -> Matcher:
    """Build a Matcher from the contents of a .snyk policy file.

    An empty file, or one without rules, yields an empty Matcher.
    Raises ValueError if the file or one of its rules is invalid.
    """
    try:
        document = yaml.safe_load(config)
    except yaml.YAMLError as exc:
        raise _policy_error(str(exc)) from exc

    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise _policy_error("policy is not a mapping")

    ignores = document.get("ignore") or {}
    if not isinstance(ignores, dict):
        raise _policy_error("'ignore' is not a mapping")

    matcher = Matcher()
    for policy_id, rules in ignores.items():
        if rules is None:
            continue
        if not isinstance(rules, list):
            raise _policy_error(f"rules for {policy_id!r} are not a list")
        for rule in rules:
            if rule is None:
                continue
            if not isinstance(rule, dict):
                raise _policy_error(f"rule for {policy_id!r} is not a mapping")
            for pattern, meta in rule.items():
                if meta is None:
                    meta = {}
                if not isinstance(meta, dict):
                    raise _policy_error(f"metadata for {pattern!r} is not a mapping")
                expires = _expiry(meta.get("expires"))
                try:
                    matcher.add_ignore(
                        "" if policy_id is None else str(policy_id),
                        expires,
                        "" if pattern is None else str(pattern),
                    )
                except ValueError as exc:
                    raise ValueError(f"add policy rule: {exc}") from exc
    return matcher