"""Player save storage and structural verification."""

from login_server.saves.repository import (
    FilesystemSaveRepository,
    SaveRepository,
    SaveStorageError,
)
from login_server.saves.verify import SaveVerifier, verify_save

__all__ = [
    "FilesystemSaveRepository",
    "SaveRepository",
    "SaveStorageError",
    "SaveVerifier",
    "verify_save",
]
