"""Commit endpoints (submission, lookup, listing, replies).

Handlers are plain ``def`` functions: FastAPI runs them in its worker
thread pool, so signature checks and SQLite round-trips of one request do
not hold up others.
"""

from fastapi import APIRouter, HTTPException, Query

from commit_ledger.api.models import CommitResponse, CreateCommitRequest
from commit_ledger.api.routes.utils import check_page_size, error_detail, http_error
from commit_ledger.core.errors import AdmissionError
from commit_ledger.core.service import LedgerService
from commit_ledger.db.errors import DatabaseError


def router(service: LedgerService) -> APIRouter:
    """Build the commit router bound to a ledger service."""
    api = APIRouter(prefix="/commits", tags=["commits"])

    @api.post("", response_model=CommitResponse, status_code=201)
    def create_commit(request: CreateCommitRequest):
        """
        Submit a candidate commit.

        The candidate is admitted only if its signature verifies and its
        nonce meets the current difficulty; on success the stored commit is
        returned with server-assigned ``createdAt``/``updatedAt``.
        """
        try:
            commit = service.submit(request.to_candidate())
        except (AdmissionError, DatabaseError) as exc:
            raise http_error(exc) from exc
        return CommitResponse.from_commit(commit)

    @api.get("", response_model=list[CommitResponse])
    def get_commits(
        page: int = Query(1, ge=1),
        per_page: int = Query(10, ge=1, alias="perPage"),
    ):
        """List commits, newest first."""
        check_page_size(service, per_page)
        try:
            commits = service.recent(page, per_page)
        except DatabaseError as exc:
            raise http_error(exc) from exc
        return [CommitResponse.from_commit(c) for c in commits]

    @api.get("/random", response_model=CommitResponse | None)
    def get_random_commit():
        """Return one commit picked at random, or null when the ledger is empty."""
        try:
            commit = service.random()
        except DatabaseError as exc:
            raise http_error(exc) from exc
        return CommitResponse.from_commit(commit) if commit else None

    @api.get("/{signature}", response_model=CommitResponse)
    def get_commit(signature: str):
        """Fetch a single commit by signature."""
        try:
            commit = service.get(signature)
        except DatabaseError as exc:
            raise http_error(exc) from exc
        if commit is None:
            raise HTTPException(
                status_code=404,
                detail=error_detail("not_found", "Commit not found"),
            )
        return CommitResponse.from_commit(commit)

    @api.get("/{signature}/replies", response_model=list[CommitResponse])
    def get_commits_by_parent(signature: str):
        """List posts replying to ``signature`` (empty when none or unknown)."""
        try:
            commits = service.replies(signature)
        except DatabaseError as exc:
            raise http_error(exc) from exc
        return [CommitResponse.from_commit(c) for c in commits]

    return api
