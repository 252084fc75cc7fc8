"""Configuration management for the library lending service.

Settings are read from LIBRARY_LENDING_* environment variables and an
optional .env file, validated with pydantic-settings:
1. Server metadata - name and version announced to MCP clients
2. Storage - SQLite path or an explicit SQLAlchemy URL
3. Concurrency - how long a caller waits for a busy book
4. Diagnostics - log level and tracing
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseSettings):
    """Library lending server configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LIBRARY_LENDING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Server Metadata ===

    server_name: str = Field(
        default="library-lending",
        description="Server name announced to clients",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    transport: str = Field(
        default="stdio",
        description="MCP transport",
        pattern=r"^(stdio|streamable_http)$",
    )

    http_host: str = Field(default="127.0.0.1", description="Host for streamable HTTP")

    http_port: int = Field(default=8080, description="Port for streamable HTTP", ge=1024, le=65535)

    # === Storage ===

    database_path: Path = Field(
        default=Path("data/library.db"),
        description="SQLite database file path",
    )

    database_url: str | None = Field(
        default=None,
        description="SQLAlchemy URL; overrides database_path when set",
    )

    # === Concurrency ===

    lock_timeout: float = Field(
        default=10.0,
        description="Seconds to wait for another operation on the same book",
        gt=0,
    )

    # === Diagnostics ===

    debug: bool = Field(default=False, description="Enable debug logging")

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    enable_tracing: bool = Field(
        default=True,
        description="Emit logfire spans for inventory operations",
    )

    logfire_token: str | None = Field(
        default=None,
        description="Logfire write token; spans stay local without it",
        repr=False,
    )

    @field_validator("database_path")
    @classmethod
    def validate_database_path(cls, v: Path) -> Path:
        """Resolve to an absolute path and make sure the directory exists."""
        abs_path = v.absolute()
        abs_path.parent.mkdir(parents=True, exist_ok=True)
        if not abs_path.parent.is_dir():
            raise ValueError(f"Database directory {abs_path.parent} is not accessible")
        return abs_path

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v

    @property
    def is_development(self) -> bool:
        return self.debug or self.log_level == "DEBUG"

    def get_database_url(self) -> str:
        """SQLAlchemy URL for the configured store."""
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.database_path}"


class _ConfigStore:
    """Internal storage for configuration singleton."""

    _instance: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Get or create the global configuration instance."""
    if _ConfigStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ConfigStore._instance = ServerConfig()  # type: ignore[reportPrivateUsage]
    return _ConfigStore._instance  # type: ignore[reportPrivateUsage]


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    _ConfigStore._instance = None  # type: ignore[reportPrivateUsage]
