"""
Configuration system for queryartifacts.

Implements 12-factor config principles:
- Environment variables as primary config source
- Optional JSON / YAML config file for local development
- Named Oracle connection profiles resolved by connection id

Usage:
    from queryartifacts.config import get_config

    config = get_config()
    timeout = config.metadata_timeout_seconds

    # Connection profile used by the Oracle metadata provider
    settings = config.get_connection("prod")
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from queryartifacts.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "QUERYARTIFACTS_"


class HintJoinMethod(str, Enum):
    """Join-method hint emitted next to LEADING."""

    USE_NL = "USE_NL"
    USE_HASH = "USE_HASH"
    USE_MERGE = "USE_MERGE"


class OracleConnectionSettings(BaseModel):
    """Credentials for one logical connection id."""

    model_config = ConfigDict(frozen=True)

    user: str = Field(..., description="Database user")
    password: str = Field(default="", description="Database password", repr=False)
    dsn: str = Field(..., description="Easy Connect string or TNS alias")


class Config(BaseModel):
    """
    queryartifacts configuration.

    Loaded from environment variables and an optional config file.
    """

    model_config = ConfigDict(frozen=True)

    # Analysis defaults
    default_schema: str = Field(
        default="PUBLIC",
        description="Schema used when neither owner nor targetSchema is given",
    )
    max_identifier_length: int = Field(
        default=30,
        gt=0,
        description="Maximum length of generated index names",
    )
    hint_join_method: HintJoinMethod = Field(
        default=HintJoinMethod.USE_NL,
        description="Join-method hint paired with LEADING",
    )

    # Parser limits
    max_sql_length: int = Field(
        default=100_000,
        gt=0,
        description="Maximum accepted SQL text length in characters",
    )
    max_tables: int = Field(
        default=200,
        gt=0,
        description="Maximum number of table references per statement",
    )

    # Metadata
    metadata_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound on each metadata read",
    )
    connections: dict[str, OracleConnectionSettings] = Field(
        default_factory=dict,
        description="Connection profiles keyed by connection id",
    )

    def get_connection(self, connection_id: str) -> OracleConnectionSettings:
        """Look up a connection profile, case-insensitively."""
        for key, settings in self.connections.items():
            if key.lower() == connection_id.lower():
                return settings
        raise ConfigurationError(
            f"No connection profile configured for '{connection_id}'",
            config_key=f"connections.{connection_id}",
        )

    def config_hash(self) -> str:
        """Short digest of the configuration, credentials excluded."""
        config_dict = self.model_dump(exclude={"connections"})
        config_json = json.dumps(config_dict, sort_keys=True, default=str)
        return hashlib.sha256(config_json.encode()).hexdigest()[:16]


def _parse_env_int(value: str | None, default: int) -> int:
    """Parse integer from environment variable."""
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_env_float(value: str | None, default: float) -> float:
    """Parse float from environment variable."""
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _parse_connections(environ: dict[str, str]) -> dict[str, OracleConnectionSettings]:
    """
    Collect QUERYARTIFACTS_CONNECTION_<ID>_<FIELD> variables.

    Profiles missing a DSN or user are skipped with a warning.
    """
    prefix = f"{ENV_PREFIX}CONNECTION_"
    raw: dict[str, dict[str, str]] = {}

    for key, value in environ.items():
        if not key.startswith(prefix):
            continue
        connection_id, _, setting = key[len(prefix):].rpartition("_")
        setting = setting.lower()
        if not connection_id or setting not in ("dsn", "user", "password"):
            logger.warning("Ignoring unrecognised connection variable %s", key)
            continue
        raw.setdefault(connection_id.lower(), {})[setting] = value

    connections: dict[str, OracleConnectionSettings] = {}
    for connection_id, fields in raw.items():
        if "dsn" not in fields or "user" not in fields:
            logger.warning("Connection profile '%s' needs both DSN and USER", connection_id)
            continue
        connections[connection_id] = OracleConnectionSettings(**fields)
    return connections


def load_config_from_env() -> Config:
    """
    Load configuration from environment variables.

    Examples:
    - QUERYARTIFACTS_DEFAULT_SCHEMA=SALES
    - QUERYARTIFACTS_METADATA_TIMEOUT_SECONDS=2.5
    - QUERYARTIFACTS_CONNECTION_PROD_DSN=dbhost:1521/ORCLPDB1
    """
    environ = dict(os.environ)

    config_kwargs: dict[str, Any] = {
        "default_schema": environ.get(f"{ENV_PREFIX}DEFAULT_SCHEMA", "PUBLIC").upper(),
        "max_identifier_length": _parse_env_int(
            environ.get(f"{ENV_PREFIX}MAX_IDENTIFIER_LENGTH"), 30
        ),
        "max_sql_length": _parse_env_int(
            environ.get(f"{ENV_PREFIX}MAX_SQL_LENGTH"), 100_000
        ),
        "max_tables": _parse_env_int(environ.get(f"{ENV_PREFIX}MAX_TABLES"), 200),
        "metadata_timeout_seconds": _parse_env_float(
            environ.get(f"{ENV_PREFIX}METADATA_TIMEOUT_SECONDS"), 5.0
        ),
        "connections": _parse_connections(environ),
    }

    join_method = environ.get(f"{ENV_PREFIX}HINT_JOIN_METHOD")
    if join_method:
        try:
            config_kwargs["hint_join_method"] = HintJoinMethod(join_method.upper())
        except ValueError:
            logger.warning("Unknown hint join method %s, using USE_NL", join_method)

    return Config(**config_kwargs)


def load_config_from_file(path: Path) -> Config:
    """
    Load configuration from a JSON or YAML file.

    Falls back to environment variables when the file does not exist.
    """
    if not path.exists():
        logger.warning("Config file not found: %s, using environment", path)
        return load_config_from_env()

    try:
        with open(path) as f:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read config file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    try:
        return Config(**data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first["loc"])
        raise ConfigurationError(
            f"Invalid configuration in {path}: {first['msg']}", config_key=key
        ) from e


@lru_cache(maxsize=1)
def get_config() -> Config:
    """
    Get the global configuration instance.

    Loads from:
    1. QUERYARTIFACTS_CONFIG_FILE environment variable (if set)
    2. Environment variables (default)

    Result is cached for the lifetime of the process.
    """
    config_file = os.environ.get(f"{ENV_PREFIX}CONFIG_FILE")

    if config_file:
        return load_config_from_file(Path(config_file))

    return load_config_from_env()


def reset_config() -> None:
    """Reset the cached configuration (mainly for testing)."""
    get_config.cache_clear()
