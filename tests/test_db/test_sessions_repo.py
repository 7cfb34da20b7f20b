"""Focused tests for ``login_server.db.sessions_repo``."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import patch

import pytest

from login_server.db import connection as db_connection
from login_server.db import sessions_repo
from login_server.db.errors import (
    DatabaseOperationContext,
    DatabaseReadError,
    DatabaseWriteError,
    raise_read_error,
    raise_write_error,
)
from login_server.db.types import SessionRecord
from tests.constants import NODE_A, PROFILE


def _record(account_id: int, uuid: str = "conn-1") -> SessionRecord:
    return SessionRecord(
        uuid=uuid,
        account_id=account_id,
        profile=PROFILE,
        world=NODE_A,
        timestamp=datetime(2026, 10, 1, 8, 30, tzinfo=UTC),
        uid=42,
        ip="203.0.113.5",
    )


@pytest.mark.db
def test_record_session_appends_rows(make_account):
    account = make_account("alice")

    first = sessions_repo.record_session(_record(account.id, "conn-1"))
    second = sessions_repo.record_session(_record(account.id, "conn-2"))

    assert second > first
    rows = sessions_repo.get_sessions_for_account(account.id)
    assert [row.uuid for row in rows] == ["conn-1", "conn-2"]
    assert rows[0] == _record(account.id, "conn-1")
    assert sessions_repo.count_sessions() == 2


@pytest.mark.db
def test_record_session_requires_existing_account(test_db):
    with pytest.raises(DatabaseWriteError) as info:
        sessions_repo.record_session(_record(999999))

    assert info.value.context.operation == "sessions.record_session"


@pytest.mark.unit
def test_sessions_repo_raises_typed_errors_on_connection_failure():
    with patch.object(db_connection, "get_connection", side_effect=Exception("db boom")):
        with pytest.raises(DatabaseWriteError):
            sessions_repo.record_session(_record(1))

        with pytest.raises(DatabaseReadError):
            sessions_repo.get_sessions_for_account(1)

        with pytest.raises(DatabaseReadError):
            sessions_repo.count_sessions()


@pytest.mark.unit
def test_error_helpers_re_raise_database_errors():
    """Helper guards should preserve pre-typed DatabaseError instances."""
    read_exc = DatabaseReadError(context=DatabaseOperationContext(operation="sessions.read"))
    with pytest.raises(DatabaseReadError) as read_info:
        raise_read_error("sessions.read", read_exc)
    assert read_info.value is read_exc

    write_exc = DatabaseWriteError(context=DatabaseOperationContext(operation="sessions.write"))
    with pytest.raises(DatabaseWriteError) as write_info:
        raise_write_error("sessions.write", write_exc)
    assert write_info.value is write_exc


@pytest.mark.unit
def test_error_helpers_wrap_foreign_exceptions():
    cause = ValueError("bad")
    with pytest.raises(DatabaseWriteError) as info:
        raise_write_error("accounts.x", cause, details="username='a'")

    assert info.value.cause is cause
    assert info.value.__cause__ is cause
    assert str(info.value) == "accounts.x: username='a'"
