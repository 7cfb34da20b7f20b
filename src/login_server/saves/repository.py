"""Save repository: ``(profile, username)`` to raw bytes on durable storage.

The repository is policy-free. It never verifies payloads; the coordinator
decides whether a blob may be written and only then calls :meth:`write`.

Storage layout::

    <root>/<profile>/<username>.sav

Writes land in a temporary sibling and are renamed over the target, so a
crash mid-write leaves either the old save or the new one, never a mix.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

SAVE_SUFFIX = ".sav"


class SaveStorageError(Exception):
    """Raised when a save cannot be read or written, or its key is unsafe."""


class SaveRepository(Protocol):
    """Storage backend contract used by the session coordinator."""

    def valid_key(self, profile: str, username: str) -> bool: ...

    def read(self, profile: str, username: str) -> bytes | None: ...

    def write(self, profile: str, username: str, data: bytes) -> None: ...


def _check_segment(kind: str, value: str) -> str:
    """Reject key segments that would escape the save root."""
    if not value or value in (".", "..") or "/" in value or "\\" in value or "\x00" in value:
        raise SaveStorageError(f"Invalid {kind} for save path: {value!r}")
    return value


class FilesystemSaveRepository:
    """Save repository backed by a directory tree.

    Args:
        root: Save root directory. When ``None`` the root is read from
            ``config.saves.absolute_root`` on every call, so test helpers that
            swap the configured root take effect immediately.
    """

    def __init__(self, root: Path | str | None = None) -> None:
        self._root = Path(root) if root is not None else None

    @property
    def root(self) -> Path:
        if self._root is not None:
            return self._root
        from login_server.config import config

        return config.saves.absolute_root

    def path_for(self, profile: str, username: str) -> Path:
        """Return the file path holding ``username``'s save in ``profile``."""
        _check_segment("profile", profile)
        _check_segment("username", username)
        return self.root / profile / f"{username}{SAVE_SUFFIX}"

    def valid_key(self, profile: str, username: str) -> bool:
        """Return ``True`` when ``(profile, username)`` maps to a path under the root."""
        try:
            self.path_for(profile, username)
        except SaveStorageError:
            return False
        return True

    def read(self, profile: str, username: str) -> bytes | None:
        """Return the stored bytes, or ``None`` when no save exists."""
        path = self.path_for(profile, username)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise SaveStorageError(f"Failed to read save at {path}: {exc}") from exc

    def write(self, profile: str, username: str, data: bytes) -> None:
        """Replace the stored save, creating the profile directory if needed."""
        path = self.path_for(profile, username)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{username}.", suffix=".tmp", dir=path.parent
            )
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise SaveStorageError(f"Failed to write save at {path}: {exc}") from exc

        logger.debug("save: wrote %d bytes to %s", len(data), path)
