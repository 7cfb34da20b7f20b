"""Wire protocol between world nodes and the login coordinator."""

from login_server.protocol.messages import (
    InboundEvent,
    PlayerAutosave,
    PlayerBan,
    PlayerForceLogout,
    PlayerLogin,
    PlayerLogout,
    PlayerMute,
    ProtocolError,
    Reply,
    ResponseCode,
    WorldStartup,
    decode_event,
)

__all__ = [
    "InboundEvent",
    "PlayerAutosave",
    "PlayerBan",
    "PlayerForceLogout",
    "PlayerLogin",
    "PlayerLogout",
    "PlayerMute",
    "ProtocolError",
    "Reply",
    "ResponseCode",
    "WorldStartup",
    "decode_event",
]
