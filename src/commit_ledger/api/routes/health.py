"""Health, root and server-info endpoints.

Provides the root ``/`` endpoint (API identity and version), the ``/health``
liveness check and ``/server-info`` with ledger statistics.
"""

from fastapi import APIRouter

from commit_ledger import __version__
from commit_ledger.api.models import ServerInfoResponse
from commit_ledger.api.routes.utils import http_error
from commit_ledger.core.service import LedgerService
from commit_ledger.db.errors import DatabaseError


def router(service: LedgerService) -> APIRouter:
    """Build the health router bound to a ledger service."""
    api = APIRouter(tags=["server"])

    @api.get("/")
    async def root():
        """Root endpoint showing API identity and current version."""
        return {"message": "Commit Ledger API", "version": __version__}

    @api.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    @api.get("/server-info", response_model=ServerInfoResponse)
    def server_info():
        """Difficulty, server time, entry and identity counts, oldest entry date."""
        try:
            stats = service.stats()
        except DatabaseError as exc:
            raise http_error(exc) from exc
        return ServerInfoResponse.from_stats(stats)

    return api
