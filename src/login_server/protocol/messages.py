"""
Pydantic models for the world-node channel.

Every inbound frame is one JSON object tagged by ``type``. The tag selects one
variant of the closed :data:`InboundEvent` union; unknown tags and missing
fields fail decoding with :class:`ProtocolError`. Field names on the wire are
camelCase (``replyTo``, ``nodeId``); the models expose snake_case attributes.

Models are organized into two categories:
1. Inbound events: world node -> coordinator
2. Replies: coordinator -> world node (only for events carrying ``replyTo``)
"""

from __future__ import annotations

from datetime import datetime
from enum import IntEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

ReplyTo = int | str


class ResponseCode(IntEnum):
    """Outcome codes carried in every reply's ``code`` field."""

    SUCCESS = 0  # logged in, save attached
    INVALID_CREDENTIALS = 1
    RECONNECT = 2  # already owned by the requesting node
    ALREADY_LOGGED_IN = 3  # owned by another node
    SUCCESS_NO_SAVE = 4  # logged in (or just registered), no save yet
    BANNED = 5


class ProtocolError(ValueError):
    """Raised when an inbound frame cannot be decoded into an event."""


class _Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")


# ============================================================================
# INBOUND EVENTS (World node -> Coordinator)
# ============================================================================


class WorldStartup(_Event):
    """Sent once by a world process on boot; releases everything it owned."""

    type: Literal["world_startup"] = "world_startup"
    node_id: int = Field(alias="nodeId")
    node_time: datetime | None = Field(default=None, alias="nodeTime")


class PlayerLogin(_Event):
    """
    Login attempt relayed by a world node.

    Attributes:
        reply_to: Correlation id echoed in the reply.
        username: Exact-match account name.
        password: Plain text password as typed by the player.
        uid: Client-supplied instance id, logged in the session row.
        profile: Save namespace the world runs under.
        socket: Node-assigned connection id, logged as the session uuid.
        remote_address: Player IP as seen by the world node.
        node_id: Requesting world node.
        node_time: World node clock at the time of the attempt.
    """

    type: Literal["player_login"] = "player_login"
    reply_to: ReplyTo = Field(alias="replyTo")
    username: str
    password: str
    uid: int
    profile: str
    socket: str
    remote_address: str | None = Field(default=None, alias="remoteAddress")
    node_id: int = Field(alias="nodeId")
    node_time: datetime = Field(alias="nodeTime")


class PlayerLogout(_Event):
    """Player left a world; carries the final base64 save."""

    type: Literal["player_logout"] = "player_logout"
    reply_to: ReplyTo = Field(alias="replyTo")
    username: str
    save: str
    profile: str


class PlayerAutosave(_Event):
    """Periodic base64 save snapshot; fire-and-forget."""

    type: Literal["player_autosave"] = "player_autosave"
    username: str
    save: str
    profile: str


class PlayerForceLogout(_Event):
    """Administrative ownership reset; fire-and-forget."""

    type: Literal["player_force_logout"] = "player_force_logout"
    username: str


class PlayerBan(_Event):
    """Set (or with ``until=None`` lift) a ban; fire-and-forget."""

    type: Literal["player_ban"] = "player_ban"
    username: str
    until: datetime | None
    staff: str | None = None


class PlayerMute(_Event):
    """Set (or with ``until=None`` lift) a mute; fire-and-forget."""

    type: Literal["player_mute"] = "player_mute"
    username: str
    until: datetime | None
    staff: str | None = None


InboundEvent = Annotated[
    WorldStartup
    | PlayerLogin
    | PlayerLogout
    | PlayerAutosave
    | PlayerForceLogout
    | PlayerBan
    | PlayerMute,
    Field(discriminator="type"),
]

_EVENT_ADAPTER: TypeAdapter[Any] = TypeAdapter(InboundEvent)


def decode_event(frame: str | bytes) -> InboundEvent:
    """Decode one JSON frame into its event variant.

    Raises:
        ProtocolError: Invalid JSON, unknown ``type`` or missing/invalid fields.
    """
    try:
        return _EVENT_ADAPTER.validate_json(frame)
    except ValidationError as exc:
        raise ProtocolError(f"Undecodable event: {exc.error_count()} error(s): {exc}") from exc


# ============================================================================
# REPLIES (Coordinator -> World node)
# ============================================================================


class Reply(BaseModel):
    """
    Reply envelope for events that carry ``replyTo``.

    Only fields passed at construction are serialized, so a reply with
    ``muted_until=None`` sends an explicit ``null`` while a reply that never
    set it omits the key.
    """

    model_config = ConfigDict(populate_by_name=True)

    type: str
    reply_to: ReplyTo | None = Field(alias="replyTo")
    code: ResponseCode
    staff_level: int | None = None
    save: str | None = None
    muted_until: datetime | None = None

    def to_wire(self) -> dict[str, Any]:
        """Return the JSON-ready dict sent to the world node."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)
