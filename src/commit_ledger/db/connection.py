"""SQLite connection primitives for the commit store.

This module owns connection creation and low-level SQLite runtime pragmas so
repository code can stay focused on queries and transaction intent.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


def get_db_path() -> Path:
    """Resolve the absolute SQLite database path from runtime configuration."""
    from commit_ledger.config import config

    return config.database.absolute_path


def get_timeout_seconds() -> float:
    """Resolve the lock-wait timeout applied to every connection."""
    from commit_ledger.config import config

    return config.database.timeout_seconds


def configure_connection(connection: sqlite3.Connection, timeout_seconds: float) -> sqlite3.Connection:
    """Apply connection-level SQLite pragmas required by the application.

    Notes:
        - ``busy_timeout`` bounds how long a statement waits on a lock held by
          another connection. Past it SQLite raises ``OperationalError``,
          which repositories surface as a storage failure.
        - WAL journaling lets readers proceed while a sweep or insert holds
          the write lock.
    """
    connection.execute(f"PRAGMA busy_timeout = {int(timeout_seconds * 1000)}")
    connection.execute("PRAGMA journal_mode = WAL")
    return connection


def get_connection() -> sqlite3.Connection:
    """Create and configure a new SQLite connection."""
    db_path = get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    timeout = get_timeout_seconds()
    connection = sqlite3.connect(str(db_path), timeout=timeout)
    return configure_connection(connection, timeout)


@contextmanager
def connection_scope(*, write: bool = False) -> Iterator[sqlite3.Connection]:
    """Yield a configured connection with guaranteed cleanup semantics.

    Args:
        write: When True, commit on success and rollback on exceptions.

    Yields:
        Configured SQLite connection ready for cursor operations.

    Behavior:
        - Always closes the connection in ``finally``.
        - For write scopes, commits at the end of a successful block.
        - For write scopes, attempts rollback before re-raising failures.
    """
    connection = get_connection()
    try:
        yield connection
        if write:
            connection.commit()
    except Exception:
        if write:
            try:
                connection.rollback()
            except sqlite3.Error:
                # Preserve the original exception while best-effort rolling back.
                pass
        raise
    finally:
        connection.close()
