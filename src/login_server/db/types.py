"""Shared DB-layer dataclasses for repository contracts."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime


def to_db_timestamp(value: datetime | None) -> str | None:
    """Serialize a datetime as an ISO-8601 UTC string (naive values are UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def from_db_timestamp(value: str | None) -> datetime | None:
    """Parse a stored timestamp back into an aware UTC datetime."""
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


@dataclass(slots=True)
class Account:
    """
    One row of the ``account`` table.

    Attributes:
        id: Primary key.
        username: Exact-match login name.
        password_hash: bcrypt hash of the (normalized) password.
        logged_in: Owning world node id, ``0`` when no node owns the account.
        login_time: When the current owner claimed it; ``None`` when unowned.
        banned_until: Login is refused while this lies in the future.
        muted_until: Forwarded to world nodes on successful login.
        staff_level: Moderation level forwarded to world nodes.
    """

    id: int
    username: str
    password_hash: str
    logged_in: int
    login_time: datetime | None
    banned_until: datetime | None
    muted_until: datetime | None
    staff_level: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Account:
        return cls(
            id=int(row["id"]),
            username=row["username"],
            password_hash=row["password_hash"],
            logged_in=int(row["logged_in"]),
            login_time=from_db_timestamp(row["login_time"]),
            banned_until=from_db_timestamp(row["banned_until"]),
            muted_until=from_db_timestamp(row["muted_until"]),
            staff_level=int(row["staff_level"]),
        )

    def is_banned(self, now: datetime) -> bool:
        return self.banned_until is not None and self.banned_until > now


@dataclass(slots=True)
class SessionRecord:
    """One appended row of the ``session`` log."""

    uuid: str
    account_id: int
    profile: str
    world: int
    timestamp: datetime
    uid: int
    ip: str | None
