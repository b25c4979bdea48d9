"""Commit Ledger Server.

An append-only, content-addressed ledger of small signed "commit" records.
Each record is admitted only when its Ed25519 signature verifies and its
nonce satisfies the configured proof-of-work difficulty.

Version Management
------------------
``__version__`` is read from the installed package metadata at import time.
The single source of truth is the ``version`` field in ``pyproject.toml``.
``api/server.py`` and ``api/routes/health.py`` import ``__version__`` from
here.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ---------------------------------------------------------------------------
# Package version, read from pyproject.toml via importlib.metadata.
#
# If the package is imported without being installed (for example straight
# from a source checkout), fall back to the version in pyproject.toml so the
# application can still start.
# ---------------------------------------------------------------------------
try:
    __version__: str = version("commit-ledger")
except PackageNotFoundError:
    __version__ = "0.1.0"
