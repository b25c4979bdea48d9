"""
FastAPI backend server for the commit ledger.

This module assembles the FastAPI application:
- CORS middleware for browser clients
- The ledger service (admission pipeline + retention sweeper) built from an
  explicit ``ServerConfig``
- All API route endpoints

The retention sweeper belongs to the application lifespan: it is started
once the schema exists and cancelled on shutdown.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from commit_ledger import __version__
from commit_ledger.api.routes import register_routes
from commit_ledger.config import ServerConfig, config
from commit_ledger.core.service import LedgerService
from commit_ledger.db.schema import init_database

logger = logging.getLogger(__name__)


def create_app(cfg: ServerConfig | None = None) -> FastAPI:
    """
    Build a FastAPI app for one ledger deployment.

    Args:
        cfg: Configuration to build the ledger policy from. Defaults to the
            module-level ``config`` singleton as loaded at import time.

    Returns:
        Configured FastAPI application. ``app.state.ledger`` holds the
        ``LedgerService`` so callers (and tests) can reach the sweeper.
    """
    cfg = cfg or config
    service = LedgerService.from_config(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        init_database()
        logger.info(f"Ledger ready (difficulty={service.difficulty})")
        if service.sweeper is not None:
            service.sweeper.start()
        try:
            yield
        finally:
            if service.sweeper is not None:
                await service.sweeper.stop()

    app = FastAPI(title="Commit Ledger", version=__version__, lifespan=lifespan)
    app.state.ledger = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.security.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app, service)
    return app


app = create_app()


def start_server(host: str | None = None, port: int | None = None) -> None:
    """Run the API with uvicorn on the configured (or given) host and port."""
    import uvicorn

    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
        log_config=None,
    )


if __name__ == "__main__":
    start_server()
