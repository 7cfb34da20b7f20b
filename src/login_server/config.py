"""
Login server configuration management.

This module handles loading and accessing configuration from multiple sources
with a clear priority order:

    1. Environment variables (highest priority) - for containerized deployments
    2. Config file (config/server.ini) - for static deployments
    3. Built-in defaults (lowest priority) - sensible fallbacks

Configuration is loaded once at module import time and cached. The
LoginServerConfig dataclass provides typed access to all settings.

Usage:
    from login_server.config import config

    print(config.server.port)
    print(config.saves.absolute_root)
    print(config.registration.self_registration_enabled)

Environment Variable Mapping:
    LOGIN_HOST                  -> server.host
    LOGIN_PORT                  -> server.port
    LOGIN_DB_PATH               -> database.path
    LOGIN_SAVES_ROOT            -> saves.root
    LOGIN_SAVE_MAX_VERSION      -> saves.max_version
    LOGIN_WEBSITE_REGISTRATION  -> registration.website_registration
    LOGIN_BCRYPT_ROUNDS         -> security.bcrypt_rounds
    LOGIN_CASE_INSENSITIVE_PASSWORDS -> security.case_insensitive_passwords
    LOGIN_LOG_LEVEL             -> logging.level
    LOGIN_LOG_FORMAT            -> logging.format
"""

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Project root directory (contains src/, config/, data/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "server.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "server.example.ini"


def _resolve(path: str) -> Path:
    p = Path(path)
    if p.is_absolute():
        return p
    return PROJECT_ROOT / p


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================


@dataclass
class ServerSettings:
    """Websocket listener binding."""

    host: str = "0.0.0.0"  # nosec B104 - intentional for server binding
    port: int = 43500


@dataclass
class DatabaseSettings:
    """Database configuration."""

    path: str = "data/login.db"

    @property
    def absolute_path(self) -> Path:
        """Get absolute path to database file."""
        return _resolve(self.path)


@dataclass
class SaveSettings:
    """Player save storage.

    Attributes:
        root: Directory holding ``<profile>/<username>.sav`` files.
        max_version: Highest save format version accepted by verification.
    """

    root: str = "data/players"
    max_version: int = 6

    @property
    def absolute_root(self) -> Path:
        """Get absolute path to the save root directory."""
        return _resolve(self.root)


@dataclass
class RegistrationSettings:
    """Account registration policy."""

    # When True, accounts are created by an external website and unknown
    # usernames are rejected instead of auto-registered.
    website_registration: bool = False

    @property
    def self_registration_enabled(self) -> bool:
        return not self.website_registration


@dataclass
class SecuritySettings:
    """Password hashing configuration."""

    bcrypt_rounds: int = 10
    case_insensitive_passwords: bool = True


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["simple", "detailed", "json"] = "detailed"


@dataclass
class LoginServerConfig:
    """
    Complete login server configuration.

    Aggregates all settings sections. Access via the module-level ``config``
    singleton.
    """

    server: ServerSettings = field(default_factory=ServerSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    saves: SaveSettings = field(default_factory=SaveSettings)
    registration: RegistrationSettings = field(default_factory=RegistrationSettings)
    security: SecuritySettings = field(default_factory=SecuritySettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# =============================================================================
# CONFIGURATION LOADING
# =============================================================================


def _parse_bool(value: str) -> bool:
    """Parse a string value to boolean."""
    return value.lower() in ("true", "yes", "1", "on", "enabled")


def _load_from_ini(parser: configparser.ConfigParser, cfg: LoginServerConfig) -> None:
    """Load configuration from parsed INI file into LoginServerConfig."""
    if parser.has_section("server"):
        if parser.has_option("server", "host"):
            cfg.server.host = parser.get("server", "host")
        if parser.has_option("server", "port"):
            cfg.server.port = parser.getint("server", "port")

    if parser.has_section("database"):
        if parser.has_option("database", "path"):
            cfg.database.path = parser.get("database", "path")

    if parser.has_section("saves"):
        if parser.has_option("saves", "root"):
            cfg.saves.root = parser.get("saves", "root")
        if parser.has_option("saves", "max_version"):
            cfg.saves.max_version = parser.getint("saves", "max_version")

    if parser.has_section("registration"):
        if parser.has_option("registration", "website_registration"):
            cfg.registration.website_registration = _parse_bool(
                parser.get("registration", "website_registration")
            )

    if parser.has_section("security"):
        if parser.has_option("security", "bcrypt_rounds"):
            cfg.security.bcrypt_rounds = parser.getint("security", "bcrypt_rounds")
        if parser.has_option("security", "case_insensitive_passwords"):
            cfg.security.case_insensitive_passwords = _parse_bool(
                parser.get("security", "case_insensitive_passwords")
            )

    if parser.has_section("logging"):
        if parser.has_option("logging", "level"):
            cfg.logging.level = parser.get("logging", "level").upper()
        if parser.has_option("logging", "format"):
            val = parser.get("logging", "format").lower()
            if val in ("simple", "detailed", "json"):
                cfg.logging.format = val  # type: ignore[assignment]


def _apply_env_overrides(cfg: LoginServerConfig) -> None:
    """Apply environment variable overrides to configuration."""
    if env_host := os.getenv("LOGIN_HOST"):
        cfg.server.host = env_host
    if env_port := os.getenv("LOGIN_PORT"):
        cfg.server.port = int(env_port)

    if env_db := os.getenv("LOGIN_DB_PATH"):
        cfg.database.path = env_db

    if env_saves := os.getenv("LOGIN_SAVES_ROOT"):
        cfg.saves.root = env_saves
    if env_save_version := os.getenv("LOGIN_SAVE_MAX_VERSION"):
        cfg.saves.max_version = int(env_save_version)

    if env_website := os.getenv("LOGIN_WEBSITE_REGISTRATION"):
        cfg.registration.website_registration = _parse_bool(env_website)

    if env_rounds := os.getenv("LOGIN_BCRYPT_ROUNDS"):
        cfg.security.bcrypt_rounds = int(env_rounds)
    if env_case := os.getenv("LOGIN_CASE_INSENSITIVE_PASSWORDS"):
        cfg.security.case_insensitive_passwords = _parse_bool(env_case)

    if env_log := os.getenv("LOGIN_LOG_LEVEL"):
        cfg.logging.level = env_log.upper()
    if env_log_format := os.getenv("LOGIN_LOG_FORMAT"):
        if env_log_format.lower() in ("simple", "detailed", "json"):
            cfg.logging.format = env_log_format.lower()  # type: ignore[assignment]


def load_config() -> LoginServerConfig:
    """
    Load configuration from all sources with proper priority.

    Priority (highest wins):
        1. Environment variables
        2. config/server.ini
        3. config/server.example.ini (fallback for development)
        4. Built-in defaults

    Returns:
        LoginServerConfig: Fully populated configuration object.
    """
    cfg = LoginServerConfig()

    config_file = None
    if CONFIG_FILE.exists():
        config_file = CONFIG_FILE
    elif CONFIG_EXAMPLE.exists():
        config_file = CONFIG_EXAMPLE

    if config_file:
        parser = configparser.ConfigParser()
        parser.read(config_file)
        _load_from_ini(parser, cfg)

    _apply_env_overrides(cfg)

    return cfg


def reload_config() -> "LoginServerConfig":
    """
    Reload configuration from disk and environment.

    Rebinds the module-level ``config`` singleton. Components that captured
    the previous object keep using it.
    """
    global config
    config = load_config()
    return config


# =============================================================================
# MODULE-LEVEL SINGLETON
# =============================================================================

config = load_config()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_config_status() -> dict:
    """Return configuration source information for diagnostics."""
    return {
        "config_file_exists": CONFIG_FILE.exists(),
        "config_file_path": str(CONFIG_FILE),
        "using_example": not CONFIG_FILE.exists() and CONFIG_EXAMPLE.exists(),
        "self_registration": config.registration.self_registration_enabled,
        "database_path": str(config.database.absolute_path),
        "saves_root": str(config.saves.absolute_root),
    }


def print_config_summary() -> None:
    """Print a summary of current configuration to stdout."""
    status = get_config_status()
    print("\n" + "=" * 60)
    print("LOGIN SERVER CONFIGURATION")
    print("=" * 60)
    print(f"Config file: {status['config_file_path']}")
    print(f"File exists: {status['config_file_exists']}")
    if status["using_example"]:
        print("WARNING: Using example config (copy to server.ini for production)")
    print("-" * 60)
    print(f"Listener:     ws://{config.server.host}:{config.server.port}/")
    print(f"Database:     {status['database_path']}")
    print(f"Saves:        {status['saves_root']}")
    print(f"Self-register: {status['self_registration']}")
    print(f"Log level:    {config.logging.level}")
    print("=" * 60 + "\n")


# =============================================================================
# TEST HELPERS
# =============================================================================


class use_test_database:
    """
    Context manager for using a temporary test database.

    Usage:
        from login_server.config import use_test_database

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
        self.original_path = config.database.path
        config.database.path = str(self.db_path)
        return self.db_path

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.original_path is not None:
            config.database.path = self.original_path
        return None


class use_test_saves_root:
    """Context manager pointing save storage at a temporary directory."""

    def __init__(self, root: Path | str):
        self.root = Path(root)
        self.original_root: str | None = None

    def __enter__(self) -> Path:
        self.original_root = config.saves.root
        config.saves.root = str(self.root)
        return self.root

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self.original_root is not None:
            config.saves.root = self.original_root
        return None
