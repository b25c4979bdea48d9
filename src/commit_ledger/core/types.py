"""Commit record types shared by admission, storage and the API layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

POST_TYPE = "post"


@dataclass(frozen=True, slots=True)
class CommitCandidate:
    """
    A commit as submitted by a client, before admission.

    Fields are kept loosely typed on purpose: the admission shape check is
    the single place that decides whether a candidate is well formed.

    Attributes:
        data: Opaque JSON payload (may be None).
        type: Application-level record kind, e.g. ``"post"``.
        nonce: Proof-of-work counter chosen by the client.
        public_key: Hex-encoded Ed25519 public key of the submitter.
        signature: Hex-encoded Ed25519 signature over the canonical payload.
        commit_at: Client-declared creation time (only signed when the
            deployment includes it).
    """

    data: Any
    type: Any
    nonce: Any
    public_key: Any
    signature: Any
    commit_at: Any = None


@dataclass(frozen=True, slots=True)
class Commit:
    """
    An admitted, immutable commit.

    ``created_at``/``updated_at`` are None until the store assigns them on
    insert.
    """

    signature: str
    public_key: str
    address: str
    type: str
    data: Any
    nonce: int
    commit_at: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def parent_signature(self) -> str | None:
        """Signature this post replies to, or None.

        Only ``post`` commits take part in the reply relation. The reference
        is not checked against stored commits.
        """
        if self.type != POST_TYPE or not isinstance(self.data, dict):
            return None
        parent = self.data.get("signature")
        return parent if isinstance(parent, str) else None


@dataclass(frozen=True, slots=True)
class LedgerStats:
    """Ledger statistics returned by the server-info read."""

    difficulty: int
    current_time: datetime
    total_entries: int
    total_identities: int
    oldest_entry_date: datetime | None
