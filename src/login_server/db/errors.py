"""Typed database exceptions for the DB package.

Repository modules signal infrastructure failures (SQLite connection or query
errors) with these types instead of collapsing them into boolean results.

Design intent:
    - Domain outcomes like "account not found" or "ownership not claimed"
      stay ``None``/``False``/``0``.
    - Infrastructure failures raise so the listener's per-frame boundary can
      log them with the failing operation name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NoReturn


@dataclass(slots=True)
class DatabaseOperationContext:
    """Structured operation metadata carried by repository exceptions.

    Attributes:
        operation: Stable operation identifier (for example
            ``"accounts.claim_ownership"``).
        details: Optional human-readable context for logs and debugging.
    """

    operation: str
    details: str | None = None


class DatabaseError(RuntimeError):
    """Base exception for DB-layer failures."""


class DatabaseOperationError(DatabaseError):
    """Base exception for repository operation failures.

    Args:
        context: Structured operation metadata.
        cause: Optional underlying exception.
    """

    def __init__(
        self,
        *,
        context: DatabaseOperationContext,
        cause: Exception | None = None,
    ) -> None:
        message = context.operation
        if context.details:
            message = f"{message}: {context.details}"
        super().__init__(message)
        self.context = context
        self.cause = cause


class DatabaseReadError(DatabaseOperationError):
    """Repository read/query failure."""


class DatabaseWriteError(DatabaseOperationError):
    """Repository mutation/transaction failure."""


def raise_read_error(operation: str, exc: Exception, *, details: str | None = None) -> NoReturn:
    """Raise a typed repository read error while preserving chained cause."""
    if isinstance(exc, DatabaseError):
        raise exc
    raise DatabaseReadError(
        context=DatabaseOperationContext(operation=operation, details=details),
        cause=exc,
    ) from exc


def raise_write_error(operation: str, exc: Exception, *, details: str | None = None) -> NoReturn:
    """Raise a typed repository write error while preserving chained cause."""
    if isinstance(exc, DatabaseError):
        raise exc
    raise DatabaseWriteError(
        context=DatabaseOperationContext(operation=operation, details=details),
        cause=exc,
    ) from exc
