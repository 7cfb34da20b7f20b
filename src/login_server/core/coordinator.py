"""
Session coordinator: the login state machine shared by every world node.

World nodes never authenticate players themselves. They relay events here and
trust the reply. The coordinator owns three decisions:

1. Who may log in (credentials, bans, optional self-registration).
2. Which world node owns a logged-in player (``account.logged_in``).
3. Whether a save handed back by a node may replace the stored one.

Ownership rules
---------------
- A node that restarts sends ``world_startup``; every account it owned is
  released because the node lost its in-memory sessions.
- A login from the node that already owns the account is a reconnect (code 2)
  and leaves ``login_time`` alone.
- A login while another node owns the account is refused (code 3).
- An unowned account is claimed with a conditional update, so two nodes racing
  for the same player cannot both succeed; the loser sees code 2 or 3.
- Logout always releases ownership, even when the save it carries is rejected.

Usage::

    coordinator = SessionCoordinator()
    reply = coordinator.handle(decode_event(frame))
    if reply is not None:
        send(reply.to_wire())
"""

from __future__ import annotations

import base64
import binascii
import logging
from collections.abc import Callable
from datetime import UTC, datetime

from login_server.auth.password import burn_verification_time, verify_password
from login_server.db import accounts_repo, sessions_repo
from login_server.db.types import Account, SessionRecord
from login_server.protocol.messages import (
    InboundEvent,
    PlayerAutosave,
    PlayerBan,
    PlayerForceLogout,
    PlayerLogin,
    PlayerLogout,
    PlayerMute,
    Reply,
    ResponseCode,
    WorldStartup,
)
from login_server.saves.repository import FilesystemSaveRepository, SaveRepository, SaveStorageError
from login_server.saves.verify import SaveVerifier, verify_save

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class SessionCoordinator:
    """Apply inbound world-node events to accounts, the session log and saves.

    Args:
        saves: Save storage backend. Defaults to the configured filesystem root.
        verifier: Structural save check. Defaults to :func:`verify_save`.
        clock: Source of "now" for ban checks and ownership timestamps.
    """

    def __init__(
        self,
        saves: SaveRepository | None = None,
        verifier: SaveVerifier | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.saves: SaveRepository = saves if saves is not None else FilesystemSaveRepository()
        self.verifier: SaveVerifier = verifier if verifier is not None else verify_save
        self.clock = clock

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, event: InboundEvent) -> Reply | None:
        """Apply one event. Returns the reply to send, or ``None`` for
        fire-and-forget events."""
        match event:
            case WorldStartup():
                self.world_startup(event)
                return None
            case PlayerLogin():
                return self.player_login(event)
            case PlayerLogout():
                return self.player_logout(event)
            case PlayerAutosave():
                self.player_autosave(event)
                return None
            case PlayerForceLogout():
                self.player_force_logout(event)
                return None
            case PlayerBan():
                self.player_ban(event)
                return None
            case PlayerMute():
                self.player_mute(event)
                return None
            case _:
                raise TypeError(f"Unhandled event type: {type(event).__name__}")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def world_startup(self, event: WorldStartup) -> int:
        """Release every account owned by the restarted node."""
        released = accounts_repo.release_node_accounts(event.node_id)
        logger.info("World %d started; released %d account(s)", event.node_id, released)
        return released

    def player_login(self, event: PlayerLogin) -> Reply:
        """Authenticate and, when allowed, hand ownership to the requesting node."""
        from login_server.config import config

        if not self.saves.valid_key(event.profile, event.username):
            logger.warning(
                "Refused login for %r: not usable as a save key in profile %r",
                event.username,
                event.profile,
            )
            burn_verification_time(event.password)
            return self._reply(event, ResponseCode.INVALID_CREDENTIALS)

        account = accounts_repo.get_account_by_username(event.username)

        if account is None and config.registration.self_registration_enabled:
            created = accounts_repo.create_account(
                event.username,
                event.password,
                registration_ip=event.remote_address,
            )
            if created:
                logger.info(
                    "Registered account %r from world %d", event.username, event.node_id
                )
                return self._reply(event, ResponseCode.SUCCESS_NO_SAVE, staff_level=0)
            # Another node registered the same name first.
            account = accounts_repo.get_account_by_username(event.username)

        if account is None:
            burn_verification_time(event.password)
            return self._reply(event, ResponseCode.INVALID_CREDENTIALS)

        if not verify_password(event.password, account.password_hash):
            logger.info("Invalid password for %r from world %d", event.username, event.node_id)
            return self._reply(event, ResponseCode.INVALID_CREDENTIALS)

        now = self.clock()
        if account.is_banned(now):
            logger.info("Refused banned account %r", event.username)
            return self._reply(event, ResponseCode.BANNED)

        sessions_repo.record_session(
            SessionRecord(
                uuid=event.socket,
                account_id=account.id,
                profile=event.profile,
                world=event.node_id,
                timestamp=event.node_time,
                uid=event.uid,
                ip=event.remote_address,
            )
        )

        ownership = self._claim(account, event.node_id, now)
        if ownership is not None:
            return self._reply(event, ownership)

        try:
            save = self.saves.read(event.profile, event.username)
        except SaveStorageError:
            # Hand the claim back so another node can retry the login.
            accounts_repo.release_ownership(event.username)
            raise
        if save is None:
            return self._reply(
                event,
                ResponseCode.SUCCESS_NO_SAVE,
                staff_level=account.staff_level,
                muted_until=account.muted_until,
            )

        return self._reply(
            event,
            ResponseCode.SUCCESS,
            staff_level=account.staff_level,
            save=base64.b64encode(save).decode("ascii"),
            muted_until=account.muted_until,
        )

    def player_logout(self, event: PlayerLogout) -> Reply:
        """Store the final save if it verifies, then always release ownership."""
        self._store_save(event.username, event.profile, event.save)
        accounts_repo.release_ownership(event.username)
        logger.debug("Released %r on logout", event.username)
        return self._reply(event, ResponseCode.SUCCESS)

    def player_autosave(self, event: PlayerAutosave) -> bool:
        """Store a periodic save if it verifies. Ownership is untouched."""
        return self._store_save(event.username, event.profile, event.save)

    def player_force_logout(self, event: PlayerForceLogout) -> None:
        if not accounts_repo.force_logout(event.username):
            logger.warning("Force logout for unknown account %r", event.username)
            return
        logger.info("Force logout of %r", event.username)

    def player_ban(self, event: PlayerBan) -> None:
        if not accounts_repo.set_banned_until(event.username, event.until):
            logger.warning("Ban for unknown account %r", event.username)
            return
        logger.info(
            "Ban: %r until %s (staff=%s)",
            event.username,
            event.until.isoformat() if event.until else "lifted",
            event.staff or "unknown",
        )

    def player_mute(self, event: PlayerMute) -> None:
        if not accounts_repo.set_muted_until(event.username, event.until):
            logger.warning("Mute for unknown account %r", event.username)
            return
        logger.info(
            "Mute: %r until %s (staff=%s)",
            event.username,
            event.until.isoformat() if event.until else "lifted",
            event.staff or "unknown",
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _claim(self, account: Account, node_id: int, now: datetime) -> ResponseCode | None:
        """Decide ownership for a verified login.

        Returns ``None`` when ``node_id`` now owns the account, otherwise the
        refusal code to send.
        """
        if account.logged_in == node_id:
            return ResponseCode.RECONNECT
        if account.logged_in != 0:
            return ResponseCode.ALREADY_LOGGED_IN

        if accounts_repo.claim_ownership(account.id, node_id, now):
            return None

        # Lost a race with a concurrent claim; report whoever holds it now.
        current = accounts_repo.get_account_by_id(account.id)
        if current is not None and current.logged_in == node_id:
            return ResponseCode.RECONNECT
        logger.info("Ownership race on %r lost by world %d", account.username, node_id)
        return ResponseCode.ALREADY_LOGGED_IN

    def _store_save(self, username: str, profile: str, encoded: str) -> bool:
        """Decode, verify and write a save. Returns ``True`` if it was stored.

        Rejected or unwritable saves are logged and skipped; the previous save
        stays in place.
        """
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            logger.warning("%s: save is not valid base64; keeping previous save", username)
            return False

        if not self.verifier(raw):
            logger.warning("%s: invalid save file; keeping previous save", username)
            return False

        try:
            self.saves.write(profile, username, raw)
        except SaveStorageError:
            logger.exception("%s: failed to store save for profile %r", username, profile)
            return False
        return True

    @staticmethod
    def _reply(
        event: PlayerLogin | PlayerLogout,
        code: ResponseCode,
        **fields: object,
    ) -> Reply:
        return Reply(type=event.type, reply_to=event.reply_to, code=code, **fields)
