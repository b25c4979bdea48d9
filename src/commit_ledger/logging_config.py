"""Root logger setup driven by ``LoggingSettings``.

Every module logs through ``logging.getLogger(__name__)``; this module only
decides where those records go and how they are rendered. It is called once
by the CLI before the server starts.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime

from commit_ledger.config import LoggingSettings

FORMATS = {
    "simple": "%(levelname)s: %(message)s",
    "detailed": "%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
}


class JsonFormatter(logging.Formatter):
    """Render each record as a single JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True)


def build_formatter(fmt: str) -> logging.Formatter:
    """Return the formatter for a ``LoggingSettings.format`` value."""
    if fmt == "json":
        return JsonFormatter()
    return logging.Formatter(FORMATS.get(fmt, FORMATS["detailed"]))


def configure_logging(settings: LoggingSettings) -> logging.Handler:
    """Install a stream handler on the root logger.

    Handlers installed by an earlier call are replaced so repeated calls (for
    example from tests) do not duplicate output.

    Returns:
        The handler that was installed.
    """
    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_commit_ledger", False):
            root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.setFormatter(build_formatter(settings.format))
    handler._commit_ledger = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.level.upper(), logging.INFO))
    return handler
