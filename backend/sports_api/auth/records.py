"""
Authorization-side view of an API key.

ApiKeyRecord is a frozen snapshot handed from storage to the gate; it is
safe to cache and share between requests. The ORM row never leaves the
storage layer.

Sport scope is a tagged variant rather than a list with a magic "*":
  • Wildcard()           — every sport
  • Tags({"soccer"})     — exactly the listed sports
The stored JSON form keeps the legacy shape (["*"] or ["soccer", ...]).
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass

WILDCARD_TAG = "*"


@dataclass(frozen=True, slots=True)
class Wildcard:
    """Scope that allows every sport."""

    def allows(self, sport: str) -> bool:
        return True

    def to_stored(self) -> list[str]:
        return [WILDCARD_TAG]


@dataclass(frozen=True, slots=True)
class Tags:
    """Scope limited to an explicit, non-empty set of sport tags."""

    sports: frozenset[str]

    def __post_init__(self) -> None:
        if not self.sports:
            raise ValueError("sport scope must contain at least one sport")
        if WILDCARD_TAG in self.sports:
            raise ValueError("use Wildcard() instead of a '*' tag")

    def allows(self, sport: str) -> bool:
        return sport in self.sports

    def to_stored(self) -> list[str]:
        return sorted(self.sports)


SportScope = Wildcard | Tags


def scope_from_stored(stored: object) -> SportScope:
    """
    Build a SportScope from the persisted JSON list.

    A "*" anywhere in the list grants every sport. Blank entries are
    ignored; a list with nothing left, or anything other than a list of
    strings, raises ValueError.
    """
    if not isinstance(stored, list) or not all(isinstance(s, str) for s in stored):
        raise ValueError(f"stored sports must be a list of strings, got {stored!r}")
    tags = {s.strip() for s in stored}
    tags.discard("")
    if WILDCARD_TAG in tags:
        return Wildcard()
    return Tags(frozenset(tags))


def as_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    """Treat naive timestamps as UTC (drivers without tz support return them)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=datetime.timezone.utc)


@dataclass(frozen=True, slots=True)
class ApiKeyRecord:
    """Immutable snapshot of one `api_keys` row."""

    id: int
    key_hash: str
    key_prefix: str
    name: str
    allowed_sports: SportScope
    rate_limit_per_minute: int
    is_active: bool
    created_at: datetime.datetime
    last_used_at: datetime.datetime | None = None
    expires_at: datetime.datetime | None = None

    def __post_init__(self) -> None:
        if self.rate_limit_per_minute <= 0:
            raise ValueError(
                f"rate_limit_per_minute must be positive, got {self.rate_limit_per_minute}"
            )
        if not isinstance(self.allowed_sports, (Wildcard, Tags)):
            raise ValueError("allowed_sports must be Wildcard() or Tags(...)")
        object.__setattr__(self, "created_at", as_utc(self.created_at))
        object.__setattr__(self, "last_used_at", as_utc(self.last_used_at))
        object.__setattr__(self, "expires_at", as_utc(self.expires_at))

    def is_expired(self, now: datetime.datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def __repr__(self) -> str:
        return (
            f"<ApiKeyRecord id={self.id} prefix={self.key_prefix!r} "
            f"active={self.is_active}>"
        )
