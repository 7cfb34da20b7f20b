"""SQLite access for the credential store and session log.

Connections are opened in autocommit mode and transactions are explicit. A
write scope starts with ``BEGIN IMMEDIATE`` so it holds the database writer
lock from its first statement; an ownership claim and the checks around it
then see a stable row even when several world nodes log players in at once.
Read scopes run each statement on its own.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

# Milliseconds a connection waits for another writer before failing.
BUSY_TIMEOUT_MS = 5000


def get_db_path() -> Path:
    """Return the configured database file as an absolute path."""
    from login_server.config import config

    return config.database.absolute_path


def configure_connection(connection: sqlite3.Connection) -> sqlite3.Connection:
    """Enable foreign keys, set the lock wait and return rows by column name."""
    connection.execute("PRAGMA foreign_keys = ON")
    connection.execute(f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}")
    connection.row_factory = sqlite3.Row
    return connection


def get_connection() -> sqlite3.Connection:
    """Open an autocommit connection, creating the data directory on first use."""
    path = get_db_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    return configure_connection(sqlite3.connect(str(path), isolation_level=None))


def _rollback_quietly(connection: sqlite3.Connection) -> None:
    if not connection.in_transaction:
        return
    try:
        connection.execute("ROLLBACK")
    except sqlite3.Error:
        # The caller's exception is the one worth reporting.
        pass


@contextmanager
def connection_scope(*, write: bool = False) -> Iterator[sqlite3.Connection]:
    """Yield a connection and close it when the block ends.

    Args:
        write: Run the block as one ``BEGIN IMMEDIATE`` transaction that
            commits on success and rolls back if the block raises.
    """
    connection = get_connection()
    try:
        if write:
            connection.execute("BEGIN IMMEDIATE")
        yield connection
        if write:
            connection.execute("COMMIT")
    except Exception:
        if write:
            _rollback_quietly(connection)
        raise
    finally:
        connection.close()
