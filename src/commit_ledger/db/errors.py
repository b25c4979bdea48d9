"""Typed storage exceptions for the commit store.

Two kinds of failure leave the repository layer:

    - ``DuplicateCommitError``: the signature is already stored. This is the
      one expected, non-fatal outcome of an insert and callers map it to a
      conflict.
    - ``DatabaseOperationError`` (``DatabaseReadError`` /
      ``DatabaseWriteError``): the storage engine failed (I/O, lock timeout,
      corruption). The current operation is aborted and API boundaries map
      it to HTTP 503 with no content fallback.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class DatabaseOperationContext:
    """Structured operation metadata carried by repository exceptions.

    Attributes:
        operation: Stable operation identifier (for example
            ``"commits.insert_commit"``).
        details: Optional human-readable context for logs and debugging.
    """

    operation: str
    details: str | None = None


class DatabaseError(RuntimeError):
    """Base exception for DB-layer failures."""


class DuplicateCommitError(DatabaseError):
    """A commit with the same signature already exists.

    Attributes:
        signature: The colliding signature.
    """

    def __init__(self, signature: str) -> None:
        super().__init__(f"Commit with signature {signature!r} already exists")
        self.signature = signature


class DatabaseOperationError(DatabaseError):
    """Base exception for repository operation failures (storage unavailable).

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
