"""Commit repository operations for the SQLite backend.

This module is the only code that reads or writes the ``commits`` table.
Rows are keyed by signature and never updated; the only mutations are
``insert_commit`` and the retention path ``delete_older_than``.

Ordering:
    Every listing is ordered by ``created_at`` descending with ``signature``
    ascending as a tie-break, so equal timestamps page deterministically.

Timestamps:
    Stored as fixed-width ISO-8601 UTC strings with microseconds, which makes
    lexical comparison in SQL equal to chronological comparison.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any, NoReturn

from commit_ledger.core.types import POST_TYPE, Commit, LedgerStats
from commit_ledger.db.connection import connection_scope
from commit_ledger.db.errors import (
    DatabaseError,
    DatabaseOperationContext,
    DatabaseReadError,
    DatabaseWriteError,
    DuplicateCommitError,
)

logger = logging.getLogger(__name__)

_COLUMNS = (
    "signature, public_key, address, type, data, nonce, commit_at, created_at, updated_at"
)

# Public field name -> column, for the retention cutoff.
RETENTION_COLUMNS = {"createdAt": "created_at", "updatedAt": "updated_at"}


def _raise_read_error(operation: str, exc: Exception, *, details: str | None = None) -> NoReturn:
    """Raise a typed repository read error while preserving chained cause."""
    if isinstance(exc, DatabaseError):
        raise exc
    raise DatabaseReadError(
        context=DatabaseOperationContext(operation=operation, details=details),
        cause=exc,
    ) from exc


def _raise_write_error(operation: str, exc: Exception, *, details: str | None = None) -> NoReturn:
    """Raise a typed repository write error while preserving chained cause."""
    if isinstance(exc, DatabaseError):
        raise exc
    raise DatabaseWriteError(
        context=DatabaseOperationContext(operation=operation, details=details),
        cause=exc,
    ) from exc


def format_timestamp(value: datetime) -> str:
    """Serialize a datetime to the stored UTC form (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp back into an aware UTC datetime."""
    return datetime.fromisoformat(value)


def _validate_page(page: int, per_page: int) -> int:
    """Return the row offset for a 1-based page."""
    if page < 1:
        raise ValueError("page must be >= 1")
    if per_page < 1:
        raise ValueError("per_page must be >= 1")
    return (page - 1) * per_page


def _row_to_commit(row: tuple[Any, ...]) -> Commit:
    signature, public_key, address, type_, data, nonce, commit_at, created_at, updated_at = row
    return Commit(
        signature=signature,
        public_key=public_key,
        address=address,
        type=type_,
        data=json.loads(data) if data is not None else None,
        nonce=int(nonce),
        commit_at=commit_at,
        created_at=parse_timestamp(created_at),
        updated_at=parse_timestamp(updated_at),
    )


def _is_signature_collision(exc: sqlite3.IntegrityError) -> bool:
    message = str(exc)
    return "UNIQUE" in message and "commits.signature" in message


# ============================================================================
# WRITES
# ============================================================================


def insert_commit(commit: Commit, *, now: datetime | None = None) -> Commit:
    """Persist an admitted commit and return it with server timestamps set.

    The insert is a single statement against the primary key, so two
    concurrent inserts of one signature yield exactly one success.

    Args:
        commit: Commit produced by the admission pipeline.
        now: Timestamp to assign; defaults to the current UTC time.

    Raises:
        DuplicateCommitError: If the signature is already stored. The
            existing row is left untouched.
        DatabaseWriteError: On any other SQLite failure.
    """
    created_at = now or datetime.now(UTC)
    stamp = format_timestamp(created_at)
    try:
        with connection_scope(write=True) as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO commits (
                        signature,
                        public_key,
                        address,
                        type,
                        data,
                        nonce,
                        commit_at,
                        parent_signature,
                        created_at,
                        updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        commit.signature,
                        commit.public_key,
                        commit.address,
                        commit.type,
                        json.dumps(commit.data) if commit.data is not None else None,
                        commit.nonce,
                        commit.commit_at,
                        commit.parent_signature,
                        stamp,
                        stamp,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                if _is_signature_collision(exc):
                    raise DuplicateCommitError(commit.signature) from exc
                raise
    except Exception as exc:
        _raise_write_error(
            "commits.insert_commit",
            exc,
            details=f"signature={commit.signature!r}",
        )

    stored_at = parse_timestamp(stamp)
    return Commit(
        signature=commit.signature,
        public_key=commit.public_key,
        address=commit.address,
        type=commit.type,
        data=commit.data,
        nonce=commit.nonce,
        commit_at=commit.commit_at,
        created_at=stored_at,
        updated_at=stored_at,
    )


def delete_older_than(cutoff: datetime, on: str = "createdAt") -> int:
    """Delete commits whose ``on`` timestamp is strictly before ``cutoff``.

    Args:
        cutoff: Rows older than this instant are removed.
        on: ``"createdAt"`` or ``"updatedAt"``.

    Returns:
        Number of rows deleted.

    Raises:
        ValueError: If ``on`` names another field.
        DatabaseWriteError: On SQLite failure.
    """
    column = RETENTION_COLUMNS.get(on)
    if column is None:
        raise ValueError(f"on must be one of {sorted(RETENTION_COLUMNS)}, got {on!r}")

    try:
        with connection_scope(write=True) as conn:
            cursor = conn.execute(
                f"DELETE FROM commits WHERE {column} < ?",
                (format_timestamp(cutoff),),
            )
            return cursor.rowcount
    except Exception as exc:
        _raise_write_error(
            "commits.delete_older_than",
            exc,
            details=f"cutoff={cutoff.isoformat()}, on={on}",
        )


# ============================================================================
# READS
# ============================================================================


def get_commit(signature: str) -> Commit | None:
    """Return the commit stored under ``signature``, or None."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM commits WHERE signature = ?",
                (signature,),
            ).fetchone()
        return _row_to_commit(row) if row else None
    except Exception as exc:
        _raise_read_error("commits.get_commit", exc, details=f"signature={signature!r}")


def random_commit() -> Commit | None:
    """Return one stored commit chosen at random, or None when empty."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM commits ORDER BY RANDOM() LIMIT 1"
            ).fetchone()
        return _row_to_commit(row) if row else None
    except Exception as exc:
        _raise_read_error("commits.random_commit", exc)


def list_recent(page: int, per_page: int) -> list[Commit]:
    """Return one page of commits, newest first."""
    offset = _validate_page(page, per_page)
    try:
        with connection_scope() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS}
                FROM commits
                ORDER BY created_at DESC, signature ASC
                LIMIT ? OFFSET ?
                """,
                (per_page, offset),
            ).fetchall()
        return [_row_to_commit(row) for row in rows]
    except Exception as exc:
        _raise_read_error(
            "commits.list_recent", exc, details=f"page={page}, per_page={per_page}"
        )


def list_by_identity(
    identity: str,
    page: int,
    per_page: int,
    *,
    fallback_to_public_key: bool = False,
) -> list[Commit]:
    """Return one page of an identity's commits, newest first.

    The identity is matched against ``address``. When
    ``fallback_to_public_key`` is set and no stored commit carries that
    address at all, the query is retried against ``public_key`` so clients
    still using raw public keys as identities keep working. Addresses are
    ``0x`` plus 40 hex characters and public keys are 64 hex characters, so
    an identity never matches both columns; checking for any address row only
    keeps later empty pages of a known address from switching columns.
    """
    offset = _validate_page(page, per_page)
    query = f"""
        SELECT {_COLUMNS}
        FROM commits
        WHERE {{column}} = ?
        ORDER BY created_at DESC, signature ASC
        LIMIT ? OFFSET ?
    """
    try:
        with connection_scope() as conn:
            rows = conn.execute(
                query.format(column="address"), (identity, per_page, offset)
            ).fetchall()
            if not rows and fallback_to_public_key:
                known = conn.execute(
                    "SELECT 1 FROM commits WHERE address = ? LIMIT 1", (identity,)
                ).fetchone()
                if known is None:
                    rows = conn.execute(
                        query.format(column="public_key"), (identity, per_page, offset)
                    ).fetchall()
        return [_row_to_commit(row) for row in rows]
    except Exception as exc:
        _raise_read_error(
            "commits.list_by_identity",
            exc,
            details=f"identity={identity!r}, page={page}, per_page={per_page}",
        )


def list_by_parent(parent_signature: str) -> list[Commit]:
    """Return every ``post`` commit whose ``data.signature`` equals ``parent_signature``.

    Non-post commits never match, even when their payload carries the same
    field. A parent that does not exist simply yields an empty list.
    """
    try:
        with connection_scope() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS}
                FROM commits
                WHERE type = ? AND parent_signature = ?
                ORDER BY created_at DESC, signature ASC
                """,
                (POST_TYPE, parent_signature),
            ).fetchall()
        return [_row_to_commit(row) for row in rows]
    except Exception as exc:
        _raise_read_error(
            "commits.list_by_parent", exc, details=f"parent_signature={parent_signature!r}"
        )


def distinct_identities() -> set[str]:
    """Return every address that has at least one stored commit."""
    try:
        with connection_scope() as conn:
            rows = conn.execute("SELECT DISTINCT address FROM commits").fetchall()
        return {row[0] for row in rows}
    except Exception as exc:
        _raise_read_error("commits.distinct_identities", exc)


def count_commits() -> int:
    """Total number of stored commits."""
    try:
        with connection_scope() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM commits").fetchone()[0])
    except Exception as exc:
        _raise_read_error("commits.count_commits", exc)


def count_distinct_identities() -> int:
    """Number of distinct addresses across stored commits."""
    try:
        with connection_scope() as conn:
            return int(conn.execute("SELECT COUNT(DISTINCT address) FROM commits").fetchone()[0])
    except Exception as exc:
        _raise_read_error("commits.count_distinct_identities", exc)


def oldest_commit() -> Commit | None:
    """Return the commit with the smallest ``created_at``, or None when empty."""
    try:
        with connection_scope() as conn:
            row = conn.execute(
                f"""
                SELECT {_COLUMNS}
                FROM commits
                ORDER BY created_at ASC, signature ASC
                LIMIT 1
                """
            ).fetchone()
        return _row_to_commit(row) if row else None
    except Exception as exc:
        _raise_read_error("commits.oldest_commit", exc)


def ledger_stats(difficulty: int, *, now: datetime | None = None) -> LedgerStats:
    """Compose the server statistics read.

    ``difficulty`` is supplied by the caller because the store has no notion
    of admission policy.
    """
    total = count_commits()
    identities = count_distinct_identities()
    oldest = oldest_commit()
    return LedgerStats(
        difficulty=difficulty,
        current_time=now or datetime.now(UTC),
        total_entries=total,
        total_identities=identities,
        oldest_entry_date=oldest.created_at if oldest else None,
    )
