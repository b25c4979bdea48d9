"""
Server configuration management.

This module handles loading and accessing server configuration from multiple sources
with a clear priority order:

    1. Environment variables (highest priority) - for containerized deployments
    2. Config file (config/server.ini) - for static deployments
    3. Built-in defaults (lowest priority) - sensible fallbacks

Configuration is loaded once at module import time and cached. The ServerConfig
dataclass provides typed access to all settings.

Ledger policy values (difficulty, retention window, identity scheme) are read
from here only when the application is assembled. ``create_app`` hands them to
the admission pipeline and the retention sweeper as explicit constructor
arguments, so tests can build several apps at different difficulties in one
process.

Usage:
    from commit_ledger.config import config

    print(config.server.port)
    print(config.ledger.difficulty)
    print(config.retention.window)

Environment Variable Mapping:
    LEDGER_HOST                  -> server.host
    LEDGER_PORT                  -> server.port
    LEDGER_DATABASE_PATH         -> database.path
    LEDGER_DB_TIMEOUT_SECONDS    -> database.timeout_seconds
    LEDGER_DIFFICULTY            -> ledger.difficulty
    LEDGER_INCLUDE_COMMIT_AT     -> ledger.include_commit_at
    LEDGER_IDENTITY_SCHEME       -> ledger.identity_scheme
    LEDGER_MAX_PER_PAGE          -> ledger.max_per_page
    LEDGER_RETENTION_ENABLED     -> retention.enabled
    LEDGER_RETENTION_DAYS        -> retention.window_days
    LEDGER_SWEEP_INTERVAL_HOURS  -> retention.interval_hours
    LEDGER_RETENTION_COLUMN      -> retention.column
    LEDGER_LOG_LEVEL             -> logging.level
    LEDGER_LOG_FORMAT            -> logging.format
    LEDGER_CORS_ORIGINS          -> security.cors_origins
"""

import configparser
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Literal

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Project root directory (contains src/, config/, data/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Config file paths
CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "server.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "server.example.ini"

IdentityScheme = Literal["address_only", "address_with_public_key_fallback"]
RetentionColumn = Literal["createdAt", "updatedAt"]

IDENTITY_SCHEMES: tuple[str, ...] = ("address_only", "address_with_public_key_fallback")
RETENTION_COLUMNS: tuple[str, ...] = ("createdAt", "updatedAt")


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================


@dataclass
class ServerSettings:
    """Network server configuration."""

    host: str = "0.0.0.0"  # nosec B104 - intentional for server binding
    port: int = 4000


@dataclass
class SecuritySettings:
    """Security-related configuration."""

    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class DatabaseSettings:
    """Database configuration."""

    path: str = "data/commits.db"
    timeout_seconds: float = 5.0

    @property
    def absolute_path(self) -> Path:
        """Get absolute path to database file."""
        p = Path(self.path)
        if p.is_absolute():
            return p
        return PROJECT_ROOT / p


@dataclass
class LedgerSettings:
    """Admission and query policy for the commit ledger.

    Attributes:
        difficulty: Number of leading zero hex characters the work hash of an
            admitted commit must carry.
        include_commit_at: When True the client-declared ``commitAt`` value is
            part of the signed payload.
        identity_scheme: ``address_only`` filters identity queries by address;
            ``address_with_public_key_fallback`` retries on ``publicKey`` when
            the address filter matches nothing.
        max_per_page: Upper bound on ``perPage`` accepted by list endpoints.
            0 disables the guard.
    """

    difficulty: int = 3
    include_commit_at: bool = False
    identity_scheme: IdentityScheme = "address_with_public_key_fallback"
    max_per_page: int = 100

    @property
    def public_key_fallback(self) -> bool:
        """True when identity lookups may fall back to ``publicKey``."""
        return self.identity_scheme == "address_with_public_key_fallback"


@dataclass
class RetentionSettings:
    """Retention sweeper configuration."""

    enabled: bool = True
    window_days: int = 365
    interval_hours: float = 24.0
    column: RetentionColumn = "createdAt"

    @property
    def window(self) -> timedelta:
        """Age beyond which commits are pruned."""
        return timedelta(days=self.window_days)

    @property
    def interval(self) -> timedelta:
        """Delay between two sweeps."""
        return timedelta(hours=self.interval_hours)


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["simple", "detailed", "json"] = "detailed"


@dataclass
class ServerConfig:
    """
    Complete server configuration.

    This is the main configuration object that aggregates all settings sections.
    Access via the module-level `config` singleton.
    """

    server: ServerSettings = field(default_factory=ServerSettings)
    security: SecuritySettings = field(default_factory=SecuritySettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    ledger: LedgerSettings = field(default_factory=LedgerSettings)
    retention: RetentionSettings = field(default_factory=RetentionSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# =============================================================================
# CONFIGURATION LOADING
# =============================================================================


def _parse_bool(value: str) -> bool:
    """Parse a string value to boolean."""
    return value.lower() in ("true", "yes", "1", "on", "enabled")


def _parse_list(value: str) -> list[str]:
    """Parse a comma-separated string to list, stripping whitespace."""
    if not value or value.strip() == "":
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _load_from_ini(parser: configparser.ConfigParser, cfg: ServerConfig) -> None:
    """Load configuration from parsed INI file into ServerConfig."""
    # Server section
    if parser.has_section("server"):
        if parser.has_option("server", "host"):
            cfg.server.host = parser.get("server", "host")
        if parser.has_option("server", "port"):
            cfg.server.port = parser.getint("server", "port")

    # Security section
    if parser.has_section("security"):
        if parser.has_option("security", "cors_origins"):
            cfg.security.cors_origins = _parse_list(parser.get("security", "cors_origins"))

    # Database section
    if parser.has_section("database"):
        if parser.has_option("database", "path"):
            cfg.database.path = parser.get("database", "path")
        if parser.has_option("database", "timeout_seconds"):
            cfg.database.timeout_seconds = parser.getfloat("database", "timeout_seconds")

    # Ledger section
    if parser.has_section("ledger"):
        if parser.has_option("ledger", "difficulty"):
            cfg.ledger.difficulty = parser.getint("ledger", "difficulty")
        if parser.has_option("ledger", "include_commit_at"):
            cfg.ledger.include_commit_at = _parse_bool(parser.get("ledger", "include_commit_at"))
        if parser.has_option("ledger", "identity_scheme"):
            val = parser.get("ledger", "identity_scheme").lower()
            if val in IDENTITY_SCHEMES:
                cfg.ledger.identity_scheme = val  # type: ignore[assignment]
        if parser.has_option("ledger", "max_per_page"):
            cfg.ledger.max_per_page = parser.getint("ledger", "max_per_page")

    # Retention section
    if parser.has_section("retention"):
        if parser.has_option("retention", "enabled"):
            cfg.retention.enabled = _parse_bool(parser.get("retention", "enabled"))
        if parser.has_option("retention", "window_days"):
            cfg.retention.window_days = parser.getint("retention", "window_days")
        if parser.has_option("retention", "interval_hours"):
            cfg.retention.interval_hours = parser.getfloat("retention", "interval_hours")
        if parser.has_option("retention", "column"):
            val = parser.get("retention", "column")
            if val in RETENTION_COLUMNS:
                cfg.retention.column = val  # type: ignore[assignment]

    # Logging section
    if parser.has_section("logging"):
        if parser.has_option("logging", "level"):
            cfg.logging.level = parser.get("logging", "level").upper()
        if parser.has_option("logging", "format"):
            val = parser.get("logging", "format").lower()
            if val in ("simple", "detailed", "json"):
                cfg.logging.format = val  # type: ignore[assignment]


def _apply_env_overrides(cfg: ServerConfig) -> None:
    """Apply environment variable overrides to configuration."""
    # Server settings
    if env_host := os.getenv("LEDGER_HOST"):
        cfg.server.host = env_host
    if env_port := os.getenv("LEDGER_PORT"):
        cfg.server.port = int(env_port)

    # Security settings
    if env_cors := os.getenv("LEDGER_CORS_ORIGINS"):
        cfg.security.cors_origins = _parse_list(env_cors)

    # Database settings
    if env_db := os.getenv("LEDGER_DATABASE_PATH"):
        cfg.database.path = env_db
    if env_timeout := os.getenv("LEDGER_DB_TIMEOUT_SECONDS"):
        cfg.database.timeout_seconds = float(env_timeout)

    # Ledger settings
    if env_difficulty := os.getenv("LEDGER_DIFFICULTY"):
        cfg.ledger.difficulty = int(env_difficulty)
    if env_commit_at := os.getenv("LEDGER_INCLUDE_COMMIT_AT"):
        cfg.ledger.include_commit_at = _parse_bool(env_commit_at)
    if env_scheme := os.getenv("LEDGER_IDENTITY_SCHEME"):
        if env_scheme.lower() in IDENTITY_SCHEMES:
            cfg.ledger.identity_scheme = env_scheme.lower()  # type: ignore[assignment]
    if env_per_page := os.getenv("LEDGER_MAX_PER_PAGE"):
        cfg.ledger.max_per_page = int(env_per_page)

    # Retention settings
    if env_retention := os.getenv("LEDGER_RETENTION_ENABLED"):
        cfg.retention.enabled = _parse_bool(env_retention)
    if env_days := os.getenv("LEDGER_RETENTION_DAYS"):
        cfg.retention.window_days = int(env_days)
    if env_interval := os.getenv("LEDGER_SWEEP_INTERVAL_HOURS"):
        cfg.retention.interval_hours = float(env_interval)
    if env_column := os.getenv("LEDGER_RETENTION_COLUMN"):
        if env_column in RETENTION_COLUMNS:
            cfg.retention.column = env_column  # type: ignore[assignment]

    # Logging settings
    if env_log := os.getenv("LEDGER_LOG_LEVEL"):
        cfg.logging.level = env_log.upper()
    if env_log_format := os.getenv("LEDGER_LOG_FORMAT"):
        if env_log_format.lower() in ("simple", "detailed", "json"):
            cfg.logging.format = env_log_format.lower()  # type: ignore[assignment]


def load_config() -> ServerConfig:
    """
    Load configuration from all sources with proper priority.

    Priority (highest wins):
        1. Environment variables
        2. config/server.ini
        3. config/server.example.ini (fallback for development)
        4. Built-in defaults

    Returns:
        ServerConfig: Fully populated configuration object.
    """
    cfg = ServerConfig()

    # Determine which config file to use
    config_file = None
    if CONFIG_FILE.exists():
        config_file = CONFIG_FILE
    elif CONFIG_EXAMPLE.exists():
        # Use example as fallback for development
        config_file = CONFIG_EXAMPLE

    # Load from INI file if available
    if config_file:
        parser = configparser.ConfigParser()
        parser.read(config_file)
        _load_from_ini(parser, cfg)

    # Apply environment variable overrides (highest priority)
    _apply_env_overrides(cfg)

    return cfg


def reload_config() -> "ServerConfig":
    """
    Reload configuration from disk and environment.

    This updates the module-level `config` singleton. Apps that were already
    built keep the policy values they were constructed with.

    Returns:
        ServerConfig: The newly loaded configuration.
    """
    global config
    config = load_config()
    return config


# =============================================================================
# MODULE-LEVEL SINGLETON
# =============================================================================

# Load configuration once at module import time
config = load_config()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def print_config_summary(cfg: ServerConfig | None = None) -> None:
    """Print a summary of current configuration to stdout."""
    cfg = cfg or config
    print("\n" + "=" * 60)
    print("LEDGER CONFIGURATION")
    print("=" * 60)
    print(f"Config file: {CONFIG_FILE}")
    print(f"File exists: {CONFIG_FILE.exists()}")
    print("-" * 60)
    print(f"Server:      {cfg.server.host}:{cfg.server.port}")
    print(f"Database:    {cfg.database.absolute_path}")
    print(f"Difficulty:  {cfg.ledger.difficulty}")
    print(f"Identity:    {cfg.ledger.identity_scheme}")
    if cfg.retention.enabled:
        print(
            f"Retention:   {cfg.retention.window_days} days on {cfg.retention.column}, "
            f"every {cfg.retention.interval_hours:g}h"
        )
    else:
        print("Retention:   disabled")
    print(f"Log level:   {cfg.logging.level}")
    print("=" * 60 + "\n")


# =============================================================================
# TEST HELPERS
# =============================================================================


class use_test_database:
    """
    Context manager for using a temporary test database.

    Usage:
        from commit_ledger.config import use_test_database

        def test_something(tmp_path):
            with use_test_database(tmp_path / "test.db"):
                schema.init_database()

    Args:
        db_path: Path to the test database file
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.original_path: str | None = None

    def __enter__(self) -> Path:
        """Set up test database path."""
        self.original_path = config.database.path
        config.database.path = str(self.db_path)
        return self.db_path

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Restore original database path."""
        if self.original_path is not None:
            config.database.path = self.original_path
        return None
