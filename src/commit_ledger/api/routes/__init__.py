"""
Route registration entry point for the FastAPI application.

Each router module exposes ``router(service)`` and closes over the ledger
service it is given.
"""

from fastapi import FastAPI

from commit_ledger.api.routes import commits, health, identities
from commit_ledger.core.service import LedgerService


def register_routes(app: FastAPI, service: LedgerService) -> None:
    """Register all API routes with the FastAPI app."""
    app.include_router(health.router(service))
    app.include_router(commits.router(service))
    app.include_router(identities.router(service))
