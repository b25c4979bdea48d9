"""Async HTTP client for talking to a commit ledger server."""

from commit_ledger.client.api_client import (
    APIError,
    ClientConfig,
    DifficultyError,
    LedgerAPIClient,
)

__all__ = ["APIError", "ClientConfig", "DifficultyError", "LedgerAPIClient"]
