"""Commit admission pipeline.

A candidate becomes a ``Commit`` only after passing four gates, in order:

1. Shape check        -> ``MalformedCandidateError``
2. Address derivation -> ``InvalidPublicKeyError``
3. Signature check    -> ``InvalidSignatureError``
4. Proof-of-work      -> ``DifficultyNotMetError(current_difficulty)``

The first failing gate ends the attempt. The pipeline itself holds no state
beyond its construction-time policy, so one instance can serve concurrent
requests. Only ``submit_commit`` touches storage, and only after every gate
has passed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from commit_ledger import crypto
from commit_ledger.core.errors import (
    AdmissionError,
    DifficultyNotMetError,
    InvalidSignatureError,
    MalformedCandidateError,
)
from commit_ledger.core.types import Commit, CommitCandidate
from commit_ledger.db import commits_repo
from commit_ledger.db.errors import DuplicateCommitError

logger = logging.getLogger(__name__)

# Largest value the SQLite INTEGER nonce column can hold.
MAX_NONCE = 2**63 - 1


def _require_text(name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise MalformedCandidateError(f"{name} must be a non-empty string")
    return value


class CommitAdmission:
    """
    Validates commit candidates against a fixed admission policy.

    Attributes:
        difficulty: Leading zero hex characters required of the work hash.
        include_commit_at: Whether ``commitAt`` is part of the signed payload.
    """

    def __init__(self, difficulty: int, *, include_commit_at: bool = False) -> None:
        if difficulty < 0:
            raise ValueError("difficulty must be >= 0")
        self.difficulty = difficulty
        self.include_commit_at = include_commit_at

    def _check_shape(self, candidate: CommitCandidate) -> None:
        _require_text("type", candidate.type)
        _require_text("publicKey", candidate.public_key)
        _require_text("signature", candidate.signature)
        nonce = candidate.nonce
        if isinstance(nonce, bool) or not isinstance(nonce, int) or nonce < 0:
            raise MalformedCandidateError("nonce must be a non-negative integer")
        if nonce > MAX_NONCE:
            raise MalformedCandidateError(f"nonce must not exceed {MAX_NONCE}")
        if candidate.commit_at is not None and not isinstance(candidate.commit_at, str):
            raise MalformedCandidateError("commitAt must be a string when present")
        if self.include_commit_at and candidate.commit_at is None:
            raise MalformedCandidateError("commitAt is required")

    def _payload(self, candidate: CommitCandidate) -> bytes:
        commit_at = candidate.commit_at if self.include_commit_at else None
        try:
            return crypto.canonical_payload(
                candidate.data,
                candidate.type,
                candidate.nonce,
                candidate.public_key,
                commit_at,
            )
        except (TypeError, ValueError) as exc:
            raise MalformedCandidateError("data must be a JSON value") from exc

    def admit(self, candidate: CommitCandidate) -> Commit:
        """Run every admission gate and build the immutable commit.

        Returns:
            The admitted commit, with timestamps left for the store to assign.

        Raises:
            MalformedCandidateError, InvalidPublicKeyError,
            InvalidSignatureError, DifficultyNotMetError: The first failing gate.
        """
        self._check_shape(candidate)
        payload = self._payload(candidate)

        address = crypto.derive_address(candidate.public_key)

        if not crypto.verify_signature(payload, candidate.signature, candidate.public_key):
            raise InvalidSignatureError("Signature does not match commit contents")

        if not crypto.meets_difficulty(crypto.work_hash(payload), self.difficulty):
            raise DifficultyNotMetError(self.difficulty)

        return Commit(
            signature=candidate.signature,
            public_key=candidate.public_key,
            address=address,
            type=candidate.type,
            data=candidate.data,
            nonce=candidate.nonce,
            commit_at=candidate.commit_at,
        )


def submit_commit(
    admission: CommitAdmission,
    candidate: CommitCandidate,
    *,
    now: datetime | None = None,
) -> Commit:
    """Admit a candidate and persist it.

    Raises:
        AdmissionError: Candidate rejected; nothing was written.
        DuplicateCommitError: Signature already stored.
        DatabaseWriteError: Storage failure.
    """
    try:
        commit = admission.admit(candidate)
    except AdmissionError as exc:
        logger.info(f"Rejected commit ({exc.kind}): {exc.message}")
        raise

    try:
        stored = commits_repo.insert_commit(commit, now=now)
    except DuplicateCommitError:
        logger.info(f"Rejected commit (duplicate): {commit.signature[:16]}...")
        raise
    logger.info(f"Admitted {stored.type} commit {stored.signature[:16]}... from {stored.address}")
    return stored
