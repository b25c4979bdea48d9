"""
HTTP API client for a commit ledger server.

This module provides an async HTTP client for the ledger's REST API:
submitting signed candidates and reading commits, identities and server
statistics back.

The client is designed to be used as an async context manager to ensure
proper resource cleanup:

    async with LedgerAPIClient(ClientConfig("http://localhost:4000")) as client:
        info = await client.get_server_info()
        candidate = create_commit(key, {"text": "hi"}, "post", info["difficulty"])
        stored = await client.submit_commit(candidate)

Key Features:
    - Async HTTP requests using httpx
    - Custom exceptions carrying the server's error kind
    - ``DifficultyError`` exposes the difficulty to retry with
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx

from commit_ledger.core.types import CommitCandidate

DEFAULT_SERVER_URL = "http://localhost:4000"
DEFAULT_TIMEOUT = 30.0


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================


@dataclass
class APIError(Exception):
    """
    Exception raised when an API request fails.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code from the response (0 when the server
            could not be reached).
        detail: Message from the server response, if available.
        error: Machine-readable error kind (``invalid_signature``,
            ``duplicate_key``, ...), empty when the server sent none.

    Example:
        try:
            await client.submit_commit(candidate)
        except APIError as e:
            print(f"API error {e.status_code}: {e.error}")
    """

    message: str
    status_code: int = 0
    detail: str = ""
    error: str = ""

    def __str__(self) -> str:
        """Return a formatted error message."""
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


@dataclass
class DifficultyError(APIError):
    """
    Raised when a submission's nonce does not meet the server difficulty.

    ``difficulty`` is the value the server currently enforces; recompute the
    nonce against it and resubmit.
    """

    difficulty: int = 0


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable client settings.

    Attributes:
        server_url: Base URL of the ledger server.
        timeout: Request timeout in seconds.
    """

    server_url: str = DEFAULT_SERVER_URL
    timeout: float = DEFAULT_TIMEOUT


# =============================================================================
# API CLIENT
# =============================================================================


def candidate_payload(candidate: CommitCandidate) -> dict[str, Any]:
    """Wire body for ``POST /commits``; ``commitAt`` is sent only when set."""
    body: dict[str, Any] = {
        "data": candidate.data,
        "type": candidate.type,
        "nonce": candidate.nonce,
        "publicKey": candidate.public_key,
        "signature": candidate.signature,
    }
    if candidate.commit_at is not None:
        body["commitAt"] = candidate.commit_at
    return body


@dataclass
class LedgerAPIClient:
    """
    Async HTTP client for the commit ledger API.

    It must be used as an async context manager to properly manage the
    underlying HTTP connection pool.

    Attributes:
        config: Server URL and timeout.
    """

    config: ClientConfig = field(default_factory=ClientConfig)

    _http_client: httpx.AsyncClient | None = field(default=None, repr=False)

    # -------------------------------------------------------------------------
    # Context Manager Protocol
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> LedgerAPIClient:
        self._http_client = httpx.AsyncClient(
            base_url=self.config.server_url,
            timeout=self.config.timeout,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """
        Get the HTTP client, ensuring it's been initialized.

        Raises:
            RuntimeError: If accessed outside of async context manager.
        """
        if self._http_client is None:
            raise RuntimeError(
                "LedgerAPIClient must be used as an async context manager. "
                "Use 'async with LedgerAPIClient(config) as client:'"
            )
        return self._http_client

    # -------------------------------------------------------------------------
    # Request plumbing
    # -------------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        action: str,
        *,
        expected: int = 200,
        **kwargs: Any,
    ) -> Any:
        """
        Send one request and decode its JSON body.

        Raises:
            DifficultyError: For a ``difficulty_not_met`` rejection.
            APIError: For connection failures, non-JSON bodies and any other
                unexpected status.
        """
        try:
            response = await self.http_client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise APIError(
                message=f"{action} failed",
                status_code=0,
                detail=f"Cannot connect to server at {self.config.server_url}: {e}",
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            raise APIError(
                message=f"{action} failed",
                status_code=response.status_code,
                detail=f"Server returned invalid response (status {response.status_code})",
            ) from e

        if response.status_code != expected:
            raise self._error_from(action, response.status_code, data)
        return data

    @staticmethod
    def _error_from(action: str, status_code: int, data: Any) -> APIError:
        detail = data.get("detail") if isinstance(data, dict) else None
        if isinstance(detail, dict):
            kind = str(detail.get("error", ""))
            message = str(detail.get("message", ""))
            if kind == "difficulty_not_met":
                return DifficultyError(
                    message=f"{action} failed",
                    status_code=status_code,
                    detail=message,
                    error=kind,
                    difficulty=int(detail.get("difficulty") or 0),
                )
            return APIError(
                message=f"{action} failed", status_code=status_code, detail=message, error=kind
            )
        return APIError(
            message=f"{action} failed",
            status_code=status_code,
            detail=str(detail) if detail is not None else "Server error",
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def submit_commit(self, candidate: CommitCandidate) -> dict[str, Any]:
        """
        Submit a signed candidate.

        Returns:
            dict: The stored commit, including ``address``, ``createdAt`` and
            ``updatedAt``.

        Raises:
            DifficultyError: If the nonce does not meet the server difficulty.
            APIError: For any other rejection (bad signature, duplicate, ...).
        """
        data = await self._request(
            "POST",
            "/commits",
            "Submit commit",
            expected=201,
            json=candidate_payload(candidate),
        )
        return dict(data)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_commit(self, signature: str) -> dict[str, Any] | None:
        """Fetch one commit by signature, or None when it does not exist."""
        try:
            data = await self._request("GET", f"/commits/{signature}", "Get commit")
        except APIError as e:
            if e.status_code == 404:
                return None
            raise
        return dict(data)

    async def get_commits(self, page: int = 1, per_page: int = 10) -> list[dict[str, Any]]:
        """List commits newest first."""
        data = await self._request(
            "GET", "/commits", "Get commits", params={"page": page, "perPage": per_page}
        )
        return list(data)

    async def get_random_commit(self) -> dict[str, Any] | None:
        """One commit at random, or None when the ledger is empty."""
        data = await self._request("GET", "/commits/random", "Get random commit")
        return dict(data) if data is not None else None

    async def get_replies(self, signature: str) -> list[dict[str, Any]]:
        """Posts whose parent is ``signature``."""
        data = await self._request("GET", f"/commits/{signature}/replies", "Get replies")
        return list(data)

    async def get_identities(self) -> list[str]:
        """Addresses with at least one stored commit."""
        data = await self._request("GET", "/identities", "Get identities")
        return list(data)

    async def get_commits_by_identity(
        self, identity: str, page: int = 1, per_page: int = 10
    ) -> list[dict[str, Any]]:
        """One identity's commits, newest first."""
        data = await self._request(
            "GET",
            f"/identities/{identity}/commits",
            "Get identity commits",
            params={"page": page, "perPage": per_page},
        )
        return list(data)

    async def get_server_info(self) -> dict[str, Any]:
        """Difficulty, server time, totals and oldest entry date."""
        data = await self._request("GET", "/server-info", "Get server info")
        return dict(data)

    async def get_health(self) -> dict[str, Any]:
        """Server liveness status."""
        data = await self._request("GET", "/health", "Health check")
        return dict(data)
