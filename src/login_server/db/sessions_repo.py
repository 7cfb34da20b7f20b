"""Session log repository.

The ``session`` table is append-only: one row per login that passed the
credential and ban checks. Nothing in this package updates or deletes rows.
"""

from __future__ import annotations

from login_server.db.connection import connection_scope
from login_server.db.errors import raise_read_error, raise_write_error
from login_server.db.types import SessionRecord, from_db_timestamp, to_db_timestamp


def record_session(record: SessionRecord) -> int:
    """Append one session row and return its id."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO session (uuid, account_id, profile, world, timestamp, uid, ip)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.uuid,
                    record.account_id,
                    record.profile,
                    record.world,
                    to_db_timestamp(record.timestamp),
                    record.uid,
                    record.ip,
                ),
            )
            return int(cursor.lastrowid or 0)
    except Exception as exc:
        raise_write_error(
            "sessions.record_session",
            exc,
            details=f"account_id={record.account_id}, uuid={record.uuid!r}",
        )


def get_sessions_for_account(account_id: int) -> list[SessionRecord]:
    """Return all logged sessions for ``account_id`` in insertion order."""
    try:
        with connection_scope() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT uuid, account_id, profile, world, timestamp, uid, ip
                FROM session
                WHERE account_id = ?
                ORDER BY id
                """,
                (account_id,),
            )
            rows = cursor.fetchall()
    except Exception as exc:
        raise_read_error("sessions.get_sessions_for_account", exc, details=f"id={account_id}")

    return [
        SessionRecord(
            uuid=row["uuid"],
            account_id=int(row["account_id"]),
            profile=row["profile"],
            world=int(row["world"]),
            timestamp=from_db_timestamp(row["timestamp"]),  # type: ignore[arg-type]
            uid=int(row["uid"]),
            ip=row["ip"],
        )
        for row in rows
    ]


def count_sessions() -> int:
    """Return the total number of logged sessions."""
    try:
        with connection_scope() as conn:
            row = conn.execute("SELECT COUNT(*) FROM session").fetchone()
        return int(row[0])
    except Exception as exc:
        raise_read_error("sessions.count_sessions", exc)
