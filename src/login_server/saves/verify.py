"""Structural verification of player save blobs.

World nodes hand the coordinator an opaque save on logout and autosave. Before
that blob replaces a stored one it must pass a structural check, so a truncated
or tampered payload can never destroy a previously good save.

Save layout (all integers big-endian)::

    offset 0      u16   magic, always 0x2004
    offset 2      u16   format version, 1..max_version
    offset 4..-4        body, opaque here
    offset -4     u32   CRC-32 of every preceding byte

Only the envelope is inspected; the body stays opaque to this package.
"""

from __future__ import annotations

import logging
import struct
import zlib
from collections.abc import Callable

logger = logging.getLogger(__name__)

SAVE_MAGIC = 0x2004
HEADER_SIZE = 4
TRAILER_SIZE = 4
MIN_SAVE_SIZE = HEADER_SIZE + TRAILER_SIZE

# A verifier takes raw save bytes and answers whether they may be stored.
SaveVerifier = Callable[[bytes], bool]


def compute_checksum(data: bytes) -> int:
    """Return the unsigned CRC-32 used in the save trailer."""
    return zlib.crc32(data) & 0xFFFFFFFF


def seal_save(version: int, body: bytes) -> bytes:
    """Build a well-formed save around ``body``.

    Useful for tooling and tests that need a blob world nodes would produce.
    """
    head = struct.pack(">HH", SAVE_MAGIC, version) + body
    return head + struct.pack(">I", compute_checksum(head))


def verify_save(data: bytes, *, max_version: int | None = None) -> bool:
    """Return ``True`` when ``data`` is a structurally valid save.

    Args:
        data: Raw save bytes.
        max_version: Highest accepted format version. Defaults to
            ``config.saves.max_version``.
    """
    if max_version is None:
        from login_server.config import config

        max_version = config.saves.max_version

    if len(data) < MIN_SAVE_SIZE:
        logger.debug("save rejected: %d bytes is below the minimum", len(data))
        return False

    magic, version = struct.unpack_from(">HH", data, 0)
    if magic != SAVE_MAGIC:
        logger.debug("save rejected: bad magic 0x%04x", magic)
        return False
    if version < 1 or version > max_version:
        logger.debug("save rejected: unsupported version %d", version)
        return False

    (expected,) = struct.unpack_from(">I", data, len(data) - TRAILER_SIZE)
    actual = compute_checksum(data[:-TRAILER_SIZE])
    if expected != actual:
        logger.debug("save rejected: crc 0x%08x != 0x%08x", actual, expected)
        return False

    return True
