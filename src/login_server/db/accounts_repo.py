"""Account repository: the credential store.

Every ownership mutation lives here so the ``logged_in``/``login_time`` pair is
always written together. Ownership is claimed with a conditional update so two
world nodes racing to log the same player in cannot both win.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime

from login_server.db.connection import connection_scope
from login_server.db.errors import raise_read_error, raise_write_error
from login_server.db.types import Account, to_db_timestamp

_ACCOUNT_COLUMNS = """
    id, username, password_hash, logged_in, login_time,
    banned_until, muted_until, staff_level
"""


def get_account_by_username(username: str) -> Account | None:
    """Return the account with exactly ``username`` or ``None``."""
    try:
        with connection_scope() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_ACCOUNT_COLUMNS} FROM account WHERE username = ?",  # nosec B608
                (username,),
            )
            row = cursor.fetchone()
    except Exception as exc:
        raise_read_error("accounts.get_account_by_username", exc, details=f"username={username!r}")
    return Account.from_row(row) if row else None


def get_account_by_id(account_id: int) -> Account | None:
    """Return the account with primary key ``account_id`` or ``None``."""
    try:
        with connection_scope() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_ACCOUNT_COLUMNS} FROM account WHERE id = ?",  # nosec B608
                (account_id,),
            )
            row = cursor.fetchone()
    except Exception as exc:
        raise_read_error("accounts.get_account_by_id", exc, details=f"id={account_id}")
    return Account.from_row(row) if row else None


def create_account(
    username: str,
    password: str,
    *,
    staff_level: int = 0,
    registration_ip: str | None = None,
) -> bool:
    """Create an account, hashing ``password`` before it is stored.

    Returns:
        ``True`` when the row is created, ``False`` when ``username`` is taken.
    """
    from login_server.auth.password import hash_password

    password_hash = hash_password(password)
    try:
        with connection_scope(write=True) as conn:
            conn.execute(
                """
                INSERT INTO account (username, password_hash, staff_level, registration_ip)
                VALUES (?, ?, ?, ?)
                """,
                (username, password_hash, staff_level, registration_ip),
            )
        return True
    except sqlite3.IntegrityError:
        return False
    except Exception as exc:
        raise_write_error("accounts.create_account", exc, details=f"username={username!r}")


def claim_ownership(account_id: int, node_id: int, login_time: datetime) -> bool:
    """Mark ``node_id`` as owner if and only if nobody owns the account.

    Returns:
        ``True`` when this call took ownership, ``False`` when another claim
        (from any node) already holds it.
    """
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.execute(
                """
                UPDATE account
                SET logged_in = ?, login_time = ?
                WHERE id = ? AND logged_in = 0
                """,
                (node_id, to_db_timestamp(login_time), account_id),
            )
            return int(cursor.rowcount or 0) > 0
    except Exception as exc:
        raise_write_error(
            "accounts.claim_ownership",
            exc,
            details=f"account_id={account_id}, node_id={node_id}",
        )


def release_ownership(username: str) -> bool:
    """Clear ownership for ``username``. Returns ``False`` if no such account."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.execute(
                "UPDATE account SET logged_in = 0, login_time = NULL WHERE username = ?",
                (username,),
            )
            return int(cursor.rowcount or 0) > 0
    except Exception as exc:
        raise_write_error("accounts.release_ownership", exc, details=f"username={username!r}")


def force_logout(username: str) -> bool:
    """Administrative ownership reset; same effect as :func:`release_ownership`."""
    return release_ownership(username)


def release_node_accounts(node_id: int) -> int:
    """Clear ownership on every account owned by ``node_id``.

    Returns:
        Number of accounts released.
    """
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.execute(
                "UPDATE account SET logged_in = 0, login_time = NULL WHERE logged_in = ?",
                (node_id,),
            )
            return int(cursor.rowcount or 0)
    except Exception as exc:
        raise_write_error("accounts.release_node_accounts", exc, details=f"node_id={node_id}")


def set_banned_until(username: str, until: datetime | None) -> bool:
    """Set or clear the ban expiry. Returns ``False`` if no such account."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.execute(
                "UPDATE account SET banned_until = ? WHERE username = ?",
                (to_db_timestamp(until), username),
            )
            return int(cursor.rowcount or 0) > 0
    except Exception as exc:
        raise_write_error("accounts.set_banned_until", exc, details=f"username={username!r}")


def set_muted_until(username: str, until: datetime | None) -> bool:
    """Set or clear the mute expiry. Returns ``False`` if no such account."""
    try:
        with connection_scope(write=True) as conn:
            cursor = conn.execute(
                "UPDATE account SET muted_until = ? WHERE username = ?",
                (to_db_timestamp(until), username),
            )
            return int(cursor.rowcount or 0) > 0
    except Exception as exc:
        raise_write_error("accounts.set_muted_until", exc, details=f"username={username!r}")
