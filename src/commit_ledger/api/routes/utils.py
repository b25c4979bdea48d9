"""Shared helpers for API route modules."""

import logging

from fastapi import HTTPException

from commit_ledger.api.models import ErrorDetail
from commit_ledger.core.errors import AdmissionError, DifficultyNotMetError
from commit_ledger.core.service import LedgerService
from commit_ledger.db.errors import DatabaseOperationError, DuplicateCommitError

logger = logging.getLogger(__name__)


def error_detail(error: str, message: str, **extra) -> dict:
    """Body placed under ``detail`` for every ledger error response."""
    return ErrorDetail(error=error, message=message, **extra).model_dump(exclude_none=True)


def http_error(exc: Exception) -> HTTPException:
    """
    Map a core/storage exception to the HTTP error clients see.

    - Admission failures -> 400 (``difficulty`` included for PoW misses)
    - Duplicate signature -> 409
    - Storage failures -> 503, logged with traceback

    Anything else is not expected here and is re-raised.
    """
    if isinstance(exc, DifficultyNotMetError):
        return HTTPException(
            status_code=400,
            detail=error_detail(exc.kind, exc.message, difficulty=exc.current_difficulty),
        )
    if isinstance(exc, AdmissionError):
        return HTTPException(status_code=400, detail=error_detail(exc.kind, exc.message))
    if isinstance(exc, DuplicateCommitError):
        return HTTPException(status_code=409, detail=error_detail("duplicate_key", str(exc)))
    if isinstance(exc, DatabaseOperationError):
        logger.error(f"Storage unavailable during {exc.context.operation}", exc_info=exc)
        return HTTPException(
            status_code=503, detail=error_detail("storage_unavailable", "Storage unavailable")
        )
    raise exc


def check_page_size(service: LedgerService, per_page: int) -> None:
    """Reject page sizes above the configured maximum."""
    if service.max_per_page and per_page > service.max_per_page:
        raise HTTPException(
            status_code=400,
            detail=error_detail("page_too_large", f"perPage must be <= {service.max_per_page}"),
        )
