"""Schema creation for the SQLite commit store.

The schema layer is isolated from query code so schema changes are reviewable
without wading through repository logic.
"""

from __future__ import annotations

from commit_ledger.db.connection import connection_scope

# Index rationale:
# 1. identity queries filter on address, with a legacy retry on public_key.
# 2. recency listing, oldest-entry lookup and retention all range over
#    created_at; retention can also run on updated_at.
# 3. reply lookup is an exact match on the derived parent column for posts.
INDEX_STATEMENTS = (
    "CREATE INDEX IF NOT EXISTS idx_commits_address_created_at ON commits(address, created_at)",
    (
        "CREATE INDEX IF NOT EXISTS idx_commits_public_key_created_at "
        "ON commits(public_key, created_at)"
    ),
    "CREATE INDEX IF NOT EXISTS idx_commits_created_at ON commits(created_at)",
    "CREATE INDEX IF NOT EXISTS idx_commits_updated_at ON commits(updated_at)",
    "CREATE INDEX IF NOT EXISTS idx_commits_type_parent ON commits(type, parent_signature)",
)


def init_database() -> None:
    """Create the ``commits`` table and its indexes if missing.

    Safe to call repeatedly; existing rows are never touched.
    """
    with connection_scope(write=True) as conn:
        cursor = conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS commits (
                signature TEXT PRIMARY KEY NOT NULL,
                public_key TEXT NOT NULL,
                address TEXT NOT NULL,
                type TEXT NOT NULL CHECK (length(type) > 0),
                data TEXT,
                nonce INTEGER NOT NULL,
                commit_at TEXT,
                parent_signature TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        for statement in INDEX_STATEMENTS:
            cursor.execute(statement)
