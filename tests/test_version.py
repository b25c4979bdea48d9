"""Tests for version management.

Verifies that ``commit_ledger.__version__`` is resolved from the installed
package metadata (``pyproject.toml``) and that every place the version is
surfaced (the package attribute, the OpenAPI schema and the root ``/``
endpoint) agrees.
"""

from __future__ import annotations

import re

import pytest
from fastapi.testclient import TestClient

import commit_ledger
from commit_ledger.api.server import create_app

# Matches semver-ish strings: major.minor.patch with optional pre-release
# suffix (e.g. "0.1.0", "1.0.0-rc.1").
_SEMVER_RE = re.compile(
    r"^\d+\.\d+\.\d+"  # major.minor.patch
    r"(-[A-Za-z0-9]+(\.[A-Za-z0-9]+)*)?$"  # optional pre-release
)


@pytest.mark.unit
class TestVersionAttribute:
    """Verify the ``commit_ledger.__version__`` package attribute."""

    def test_version_is_a_string(self) -> None:
        assert isinstance(commit_ledger.__version__, str)
        assert len(commit_ledger.__version__) > 0

    def test_version_matches_semver(self) -> None:
        assert _SEMVER_RE.match(commit_ledger.__version__), (
            f"__version__ {commit_ledger.__version__!r} does not match "
            f"expected semver pattern (major.minor.patch[-prerelease])"
        )


@pytest.mark.api
class TestVersionInApp:
    """Verify version consistency across the FastAPI app surfaces."""

    def test_openapi_version_matches_package(self, ledger_config) -> None:
        app = create_app(ledger_config)

        assert app.version == commit_ledger.__version__
        assert app.openapi()["info"]["version"] == commit_ledger.__version__

    def test_root_endpoint_version_matches_package(self, test_client: TestClient) -> None:
        data = test_client.get("/").json()

        assert data["version"] == commit_ledger.__version__
