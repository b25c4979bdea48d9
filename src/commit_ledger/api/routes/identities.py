"""Identity endpoints (known addresses, per-identity history)."""

from fastapi import APIRouter, Query

from commit_ledger.api.models import CommitResponse
from commit_ledger.api.routes.utils import check_page_size, http_error
from commit_ledger.core.service import LedgerService
from commit_ledger.db.errors import DatabaseError


def router(service: LedgerService) -> APIRouter:
    """Build the identity router bound to a ledger service."""
    api = APIRouter(prefix="/identities", tags=["identities"])

    @api.get("", response_model=list[str])
    def get_users():
        """Every address with at least one stored commit."""
        try:
            return service.identities()
        except DatabaseError as exc:
            raise http_error(exc) from exc

    @api.get("/{identity}/commits", response_model=list[CommitResponse])
    def get_commits_by_user(
        identity: str,
        page: int = Query(1, ge=1),
        per_page: int = Query(10, ge=1, alias="perPage"),
    ):
        """
        List one identity's commits, newest first.

        ``identity`` is an address. Depending on the configured identity
        scheme, a raw public key is also accepted when no commit carries it
        as an address.
        """
        check_page_size(service, per_page)
        try:
            commits = service.by_identity(identity, page, per_page)
        except DatabaseError as exc:
            raise http_error(exc) from exc
        return [CommitResponse.from_commit(c) for c in commits]

    return api
