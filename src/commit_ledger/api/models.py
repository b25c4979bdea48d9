"""
Pydantic models for API requests and responses.

Wire field names are camelCase (``publicKey``, ``createdAt``, ...) because
they are part of the public contract with existing clients. Python attribute
names stay snake_case; the alias generator maps between the two and FastAPI
serializes responses by alias.

Models are organized into two categories:
1. Request models: Data sent FROM the client TO the server
2. Response models: Data sent FROM the server TO the client
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from commit_ledger.core.types import Commit, CommitCandidate, LedgerStats


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# REQUEST MODELS (Client → Server)
# ============================================================================


class CreateCommitRequest(CamelModel):
    """
    Candidate commit submitted for admission.

    Only basic JSON typing happens here; emptiness, key encoding, signature
    and proof-of-work are judged by the admission pipeline so that every
    rejection reports a typed error kind.

    Attributes:
        data: Opaque JSON payload. For ``type == "post"`` a ``signature``
            field inside it names the parent commit.
        type: Application-level record kind.
        nonce: Proof-of-work counter.
        public_key: Hex Ed25519 public key (``publicKey`` on the wire).
        signature: Hex Ed25519 signature over the canonical payload.
        commit_at: Optional client-declared creation time (``commitAt``).
    """

    data: Any = None
    type: str
    nonce: int
    public_key: str
    signature: str
    commit_at: str | None = None

    def to_candidate(self) -> CommitCandidate:
        return CommitCandidate(
            data=self.data,
            type=self.type,
            nonce=self.nonce,
            public_key=self.public_key,
            signature=self.signature,
            commit_at=self.commit_at,
        )


# ============================================================================
# RESPONSE MODELS (Server → Client)
# ============================================================================


class CommitResponse(CamelModel):
    """A stored commit as returned to clients."""

    signature: str
    public_key: str
    address: str
    type: str
    data: Any = None
    nonce: int
    commit_at: str | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_commit(cls, commit: Commit) -> "CommitResponse":
        return cls(
            signature=commit.signature,
            public_key=commit.public_key,
            address=commit.address,
            type=commit.type,
            data=commit.data,
            nonce=commit.nonce,
            commit_at=commit.commit_at,
            created_at=commit.created_at,
            updated_at=commit.updated_at,
        )


class ServerInfoResponse(CamelModel):
    """
    Ledger statistics.

    Attributes:
        difficulty: Difficulty currently enforced on admission.
        current_time: Server wall-clock time.
        total_entries: Number of stored commits.
        total_users: Number of distinct addresses.
        oldest_entry_date: ``createdAt`` of the oldest commit, null when empty.
    """

    difficulty: int
    current_time: datetime
    total_entries: int
    total_users: int
    oldest_entry_date: datetime | None = None

    @classmethod
    def from_stats(cls, stats: LedgerStats) -> "ServerInfoResponse":
        return cls(
            difficulty=stats.difficulty,
            current_time=stats.current_time,
            total_entries=stats.total_entries,
            total_users=stats.total_identities,
            oldest_entry_date=stats.oldest_entry_date,
        )


class ErrorDetail(BaseModel):
    """Body of every 4xx/5xx raised by the commit routes (under ``detail``)."""

    error: str
    message: str
    difficulty: int | None = None
