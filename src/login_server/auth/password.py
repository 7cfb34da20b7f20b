"""bcrypt password hashing.

The cost factor is read from ``config.security.bcrypt_rounds`` when a hash is
created and embedded in the hash itself, so verification never needs it.
"""

from __future__ import annotations

import bcrypt

# Pre-computed hash used to keep verification timing uniform when the account
# does not exist.
DUMMY_HASH = "$2b$10$CwTycUXWue0Thq9StjUM0uJ8.jN5zMHQ3YzjU5sDkP0f6Zz7Zb5eS"  # nosec B105


def normalize_password(password: str) -> str:
    """Apply the configured case policy before hashing or verifying."""
    from login_server.config import config

    if config.security.case_insensitive_passwords:
        return password.lower()
    return password


def hash_password(password: str, *, rounds: int | None = None) -> str:
    """Hash ``password`` with bcrypt and return the ASCII hash string."""
    from login_server.config import config

    cost = rounds if rounds is not None else config.security.bcrypt_rounds
    salt = bcrypt.gensalt(rounds=cost)
    return bcrypt.hashpw(normalize_password(password).encode("utf-8"), salt).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    """Return ``True`` when ``password`` matches ``password_hash``.

    Malformed hashes verify as ``False`` rather than raising.
    """
    try:
        return bcrypt.checkpw(
            normalize_password(password).encode("utf-8"),
            password_hash.encode("ascii"),
        )
    except ValueError:
        return False


def burn_verification_time(password: str) -> None:
    """Run one verification against :data:`DUMMY_HASH` and discard the result."""
    verify_password(password, DUMMY_HASH)
