"""Schema creation for the login server SQLite backend.

The schema layer is isolated from query code so schema changes are reviewable
without wading through repository logic.
"""

from __future__ import annotations

import logging

from login_server.db.connection import connection_scope

logger = logging.getLogger(__name__)

# Hot-path index rationale:
# 1. world_startup releases every account owned by one node.
# 2. session rows are looked up per account for moderation tooling.
HOT_PATH_INDEX_STATEMENTS = (
    "CREATE INDEX IF NOT EXISTS idx_account_logged_in ON account(logged_in)",
    "CREATE INDEX IF NOT EXISTS idx_session_account_id ON session(account_id)",
)


def init_database() -> None:
    """Initialize the SQLite database schema.

    Behavior:
    - Creates the ``account`` and ``session`` tables if missing.
    - Creates hot-path indexes.
    - Installs a trigger keeping ``login_time`` NULL whenever ``logged_in``
      is reset to 0, for both Python helper paths and direct SQL writes.
    """
    with connection_scope(write=True) as conn:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS account (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT UNIQUE NOT NULL,
                password_hash TEXT NOT NULL,
                logged_in INTEGER NOT NULL DEFAULT 0,
                login_time TIMESTAMP,
                banned_until TIMESTAMP,
                muted_until TIMESTAMP,
                staff_level INTEGER NOT NULL DEFAULT 0,
                registration_ip TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS session (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                uuid TEXT NOT NULL,
                account_id INTEGER NOT NULL REFERENCES account(id),
                profile TEXT NOT NULL,
                world INTEGER NOT NULL,
                timestamp TIMESTAMP NOT NULL,
                uid INTEGER NOT NULL,
                ip TEXT
            )
        """)

        for statement in HOT_PATH_INDEX_STATEMENTS:
            cursor.execute(statement)

        cursor.execute("DROP TRIGGER IF EXISTS clear_login_time_on_release")
        cursor.execute("""
            CREATE TRIGGER clear_login_time_on_release
            AFTER UPDATE OF logged_in ON account
            WHEN NEW.logged_in = 0 AND NEW.login_time IS NOT NULL
            BEGIN
                UPDATE account SET login_time = NULL WHERE id = NEW.id;
            END;
        """)

    logger.debug("Database schema ensured")
