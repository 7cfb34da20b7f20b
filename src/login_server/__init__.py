"""Login coordinator for multi-node game worlds.

A single authority that authenticates players on behalf of world processes,
decides which world node currently owns a player's session, and stores the
per-player save blobs those nodes hand back on logout and autosave.

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__: str = version("login_server")
except PackageNotFoundError:
    __version__ = "0.1.0"
