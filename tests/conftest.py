"""
Shared pytest fixtures for the login server test suite.

This module provides fixtures that are automatically available to all test files:
- Temporary SQLite database and save root
- Fast bcrypt cost for password hashing
- Account factory and a ready-made SessionCoordinator
- Event builders for the world-node protocol

Fixtures are function scoped so every test starts from an empty database.
"""

import shutil
import tempfile
from collections.abc import Callable, Generator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from login_server.config import config, use_test_database, use_test_saves_root
from login_server.core.coordinator import SessionCoordinator
from login_server.db import accounts_repo
from login_server.db.schema import init_database
from login_server.db.types import Account
from login_server.protocol.messages import PlayerLogin, PlayerLogout
from login_server.saves.repository import FilesystemSaveRepository
from login_server.saves.verify import seal_save

# Import shared test constants
from tests.constants import NODE_A, PROFILE, TEST_PASSWORD

# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch: pytest.MonkeyPatch) -> None:
    """Use the minimum bcrypt cost so hashing does not dominate test time."""
    monkeypatch.setattr(config.security, "bcrypt_rounds", 4)


@pytest.fixture
def self_registration(monkeypatch: pytest.MonkeyPatch) -> None:
    """Enable auto-registration of unknown usernames."""
    monkeypatch.setattr(config.registration, "website_registration", False)


@pytest.fixture
def website_registration(monkeypatch: pytest.MonkeyPatch) -> None:
    """Disable auto-registration; unknown usernames are rejected."""
    monkeypatch.setattr(config.registration, "website_registration", True)


# ============================================================================
# DATABASE AND STORAGE FIXTURES
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """
    Create a temporary database file for testing.

    Uses the config system's use_test_database context manager so every
    repository call in the test hits the temporary file.

    Yields:
        Path to temporary database file
    """
    temp_dir = tempfile.mkdtemp()
    temp_db = Path(temp_dir) / "test_login.db"

    with use_test_database(temp_db):
        yield temp_db

    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(scope="function")
def test_db(temp_db_path: Path) -> Generator[None, None, None]:
    """Initialize the schema in the temporary database."""
    init_database()
    yield


@pytest.fixture(scope="function")
def saves_root(tmp_path: Path) -> Generator[Path, None, None]:
    """Point the configured save root at a temporary directory."""
    root = tmp_path / "players"
    with use_test_saves_root(root):
        yield root


@pytest.fixture
def save_repo(saves_root: Path) -> FilesystemSaveRepository:
    return FilesystemSaveRepository(saves_root)


@pytest.fixture
def valid_save() -> bytes:
    """A structurally valid save blob."""
    return seal_save(1, b"inventory:bronze-axe;x=3222;z=3218")


@pytest.fixture
def coordinator(test_db, save_repo: FilesystemSaveRepository) -> SessionCoordinator:
    return SessionCoordinator(saves=save_repo)


# ============================================================================
# ACCOUNT FACTORY
# ============================================================================


@pytest.fixture
def make_account(test_db) -> Callable[..., Account]:
    """
    Return a factory that creates an account and returns its row.

    Example:
        def test_x(make_account):
            account = make_account("bob", logged_in=7)
    """

    def _make(
        username: str,
        password: str = TEST_PASSWORD,
        *,
        logged_in: int = 0,
        staff_level: int = 0,
        banned_until: datetime | None = None,
        muted_until: datetime | None = None,
    ) -> Account:
        assert accounts_repo.create_account(username, password, staff_level=staff_level)
        account = accounts_repo.get_account_by_username(username)
        assert account is not None
        if logged_in:
            assert accounts_repo.claim_ownership(account.id, logged_in, datetime.now(UTC))
        if banned_until is not None:
            accounts_repo.set_banned_until(username, banned_until)
        if muted_until is not None:
            accounts_repo.set_muted_until(username, muted_until)
        refreshed = accounts_repo.get_account_by_username(username)
        assert refreshed is not None
        return refreshed

    return _make


# ============================================================================
# EVENT BUILDERS
# ============================================================================


@pytest.fixture
def login_event() -> Callable[..., PlayerLogin]:
    """Return a builder for ``player_login`` events with sensible defaults."""

    def _build(
        username: str,
        password: str = TEST_PASSWORD,
        *,
        node_id: int = NODE_A,
        profile: str = PROFILE,
        reply_to: int = 1,
        socket: str = "conn-1",
    ) -> PlayerLogin:
        return PlayerLogin(
            reply_to=reply_to,
            username=username,
            password=password,
            uid=1234,
            profile=profile,
            socket=socket,
            remote_address="203.0.113.5",
            node_id=node_id,
            node_time=datetime.now(UTC),
        )

    return _build


@pytest.fixture
def logout_event() -> Callable[..., PlayerLogout]:
    """Return a builder for ``player_logout`` events carrying raw save bytes."""
    import base64

    def _build(username: str, save: bytes, *, profile: str = PROFILE) -> PlayerLogout:
        return PlayerLogout(
            reply_to=2,
            username=username,
            save=base64.b64encode(save).decode("ascii"),
            profile=profile,
        )

    return _build
