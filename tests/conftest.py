"""
Shared pytest fixtures for the commit ledger test suite.

This module provides fixtures that are automatically available to all test files:
- Temporary SQLite databases wired through ``use_test_database``
- Signing keys and a factory for signed, nonce-searched candidates
- Ledger configuration at a low difficulty so tests stay fast
- FastAPI TestClient instances built from that configuration
"""

import shutil
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from fastapi.testclient import TestClient

from commit_ledger import crypto
from commit_ledger.api.server import create_app
from commit_ledger.config import ServerConfig, use_test_database
from commit_ledger.core.types import CommitCandidate
from commit_ledger.db.schema import init_database
from tests.constants import TEST_DIFFICULTY

# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest.fixture(scope="function")
def temp_db_path() -> Generator[Path, None, None]:
    """
    Create a temporary database file for testing.

    Each test function gets its own database through the config system's
    ``use_test_database`` context manager, so tests never share rows.

    Yields:
        Path to temporary database file
    """
    temp_dir = tempfile.mkdtemp()
    temp_db = Path(temp_dir) / "test_commits.db"

    with use_test_database(temp_db):
        yield temp_db

    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(scope="function")
def test_db(temp_db_path: Path) -> Generator[None, None, None]:
    """
    Initialize a test database with schema but no data.

    Args:
        temp_db_path: Path to temporary database (from fixture)
    """
    init_database()

    yield


# ============================================================================
# KEY AND CANDIDATE FIXTURES
# ============================================================================


@pytest.fixture
def private_key() -> Ed25519PrivateKey:
    """A fresh Ed25519 signing key."""
    key, _ = crypto.generate_keypair()
    return key


@pytest.fixture
def other_private_key() -> Ed25519PrivateKey:
    """A second, unrelated signing key."""
    key, _ = crypto.generate_keypair()
    return key


@pytest.fixture
def make_candidate(
    private_key: Ed25519PrivateKey,
) -> Callable[..., CommitCandidate]:
    """
    Factory for signed candidates that satisfy ``TEST_DIFFICULTY``.

    Usage:
        candidate = make_candidate({"text": "hi"})
        reply = make_candidate(crypto.post_template("re", reply_to=sig))
        other = make_candidate({"n": 1}, key=other_private_key, type="note")
    """

    def _make(
        data: Any = None,
        *,
        type: str = "post",
        key: Ed25519PrivateKey | None = None,
        difficulty: int = TEST_DIFFICULTY,
        commit_at: str | None = None,
    ) -> CommitCandidate:
        return crypto.create_commit(
            key or private_key,
            data,
            type,
            difficulty,
            commit_at=commit_at,
        )

    return _make


# ============================================================================
# APPLICATION FIXTURES
# ============================================================================


@pytest.fixture
def ledger_config(temp_db_path: Path) -> ServerConfig:
    """
    Configuration for an app under test.

    Difficulty is lowered so candidate factories stay fast; retention stays
    enabled so the app lifespan exercises sweeper start/stop.
    """
    cfg = ServerConfig()
    cfg.database.path = str(temp_db_path)
    cfg.ledger.difficulty = TEST_DIFFICULTY
    return cfg


@pytest.fixture
def test_client(test_db, ledger_config: ServerConfig) -> Generator[TestClient, None, None]:
    """
    FastAPI TestClient with lifespan events (schema init, sweeper) running.

    Yields:
        TestClient bound to a fresh app over a fresh database
    """
    app = create_app(ledger_config)
    with TestClient(app) as client:
        yield client
