"""Ledger service: the object route handlers talk to.

It bundles the admission pipeline, the retention sweeper and the query
policy built from one ``ServerConfig``, and exposes the read/write
operations of the commit store one-to-one. Nothing here reads the global
config singleton, so several services with different policies can coexist
in one process (tests do this).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from commit_ledger.config import ServerConfig
from commit_ledger.core.admission import CommitAdmission, submit_commit
from commit_ledger.core.retention import RetentionSweeper
from commit_ledger.core.types import Commit, CommitCandidate, LedgerStats
from commit_ledger.db import commits_repo


@dataclass
class LedgerService:
    """
    Admission, storage access and retention for one ledger deployment.

    Attributes:
        admission: Pipeline enforcing the configured difficulty.
        sweeper: Retention job, or None when retention is disabled.
        public_key_fallback: Identity queries retry on ``publicKey``.
        max_per_page: Largest accepted page size; 0 means unbounded.
    """

    admission: CommitAdmission
    sweeper: RetentionSweeper | None = None
    public_key_fallback: bool = False
    max_per_page: int = 0

    @classmethod
    def from_config(cls, cfg: ServerConfig) -> "LedgerService":
        """Build a service from explicit configuration."""
        sweeper = None
        if cfg.retention.enabled:
            sweeper = RetentionSweeper(
                cfg.retention.window,
                cfg.retention.interval,
                column=cfg.retention.column,
            )
        return cls(
            admission=CommitAdmission(
                cfg.ledger.difficulty,
                include_commit_at=cfg.ledger.include_commit_at,
            ),
            sweeper=sweeper,
            public_key_fallback=cfg.ledger.public_key_fallback,
            max_per_page=cfg.ledger.max_per_page,
        )

    @property
    def difficulty(self) -> int:
        return self.admission.difficulty

    # Writes

    def submit(self, candidate: CommitCandidate, *, now: datetime | None = None) -> Commit:
        return submit_commit(self.admission, candidate, now=now)

    # Reads

    def get(self, signature: str) -> Commit | None:
        return commits_repo.get_commit(signature)

    def random(self) -> Commit | None:
        return commits_repo.random_commit()

    def recent(self, page: int, per_page: int) -> list[Commit]:
        return commits_repo.list_recent(page, per_page)

    def by_identity(self, identity: str, page: int, per_page: int) -> list[Commit]:
        return commits_repo.list_by_identity(
            identity,
            page,
            per_page,
            fallback_to_public_key=self.public_key_fallback,
        )

    def replies(self, parent_signature: str) -> list[Commit]:
        return commits_repo.list_by_parent(parent_signature)

    def identities(self) -> list[str]:
        """Distinct addresses, sorted for stable output."""
        return sorted(commits_repo.distinct_identities())

    def stats(self, *, now: datetime | None = None) -> LedgerStats:
        return commits_repo.ledger_stats(self.difficulty, now=now)
