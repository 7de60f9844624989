"""Settings for the transport requisition API."""

from typing import Literal

from pydantic_settings import BaseSettings
from pydantic_settings import SettingsConfigDict


class Settings(BaseSettings):
    """
    Settings for the transport requisition API.

    [pydantic.BaseSettings](https://docs.pydantic.dev/latest/concepts/pydantic_settings/) is a popular
    framework for organizing, validating, and reading configuration values from a variety of sources
    including environment variables.

    This class automatically reads from:
    1. Environment variables (production deployment configuration)
    2. .env file (local development)

    Environment variable names are treated case-insensitively, but the canonical
    names used in this project are lowercase (database_connection_string, log_level).
    """

    service_name: str = "Transport Requisition API"
    """Display name reported by the health endpoint and the OpenAPI document."""

    log_level: str = "INFO"
    """Minimum level for the stdout log sink (DEBUG, INFO, WARNING, ERROR)."""

    # PostgreSQL domain database
    database_connection_string: str
    """PostgreSQL connection string for the requisition database (required)."""

    db_pool_min_size: int = 2
    """Minimum number of pooled connections."""

    db_pool_max_size: int = 10
    """Maximum number of pooled connections."""

    db_command_timeout: float = 60.0
    """Per-statement timeout in seconds."""

    seed_demo_users: bool = False
    """Insert one demo account per role when the users table is empty (local development only)."""

    # Identity
    credential_scheme: Literal["plain", "pbkdf2"] = "plain"
    """How stored passwords are compared: 'plain' equality or salted 'pbkdf2' hashes."""

    # Request rules
    allow_empty_officials: bool = False
    """Accept new requests without any accompanying officials."""

    require_future_start: bool = True
    """Reject new requests whose departure time is already in the past."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",  # Load from .env file if it exists (local development)
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore extra environment variables not defined in the model
        validate_default=True,
    )
