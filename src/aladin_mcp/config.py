"""Configuration management for the Aladin MCP Server.

Settings are read from ``ALADIN_MCP_*`` environment variables or a ``.env``
file. The TTB key is the only secret; it is also accepted under the plain
``TTB_KEY`` name used by Aladin's own documentation.
"""

from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerConfig(BaseSettings):
    """MCP server configuration.

    Protocol limits (quota, timeouts, TTLs) are fixed constants in
    ``aladin_mcp.constants``; only deployment-specific values live here.
    """

    model_config = SettingsConfigDict(
        env_prefix="ALADIN_MCP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
        populate_by_name=True,
    )

    # === Server Metadata ===

    server_name: str = Field(
        default="aladin-mcp",
        description="MCP server name used in protocol handshake",
        pattern=r"^[a-z0-9-]+$",
    )

    server_version: str = Field(
        default="0.1.0",
        description="Server version for capability negotiation",
        pattern=r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.]+)?$",
    )

    transport: str = Field(
        default="stdio",
        description="Primary transport mechanism",
        pattern=r"^stdio$",
    )

    # === Aladin API ===

    ttb_key: str | None = Field(
        default=None,
        description="Aladin TTB API key",
        validation_alias=AliasChoices("ALADIN_MCP_TTB_KEY", "TTB_KEY", "ttb_key"),
        repr=False,
    )

    category_csv_path: Path = Field(
        default=Path("data/aladin_categories.csv"),
        description="Aladin category table (CSV exported from the Aladin partner site)",
    )

    # === Development Configuration ===

    debug: bool = Field(
        default=False,
        description="Enable debug logging",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        pattern=r"^(DEBUG|INFO|WARNING|ERROR)$",
    )

    @field_validator("ttb_key")
    @classmethod
    def strip_ttb_key(cls, v: str | None) -> str | None:
        """Treat a blank key as unset."""
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("server_name")
    @classmethod
    def validate_server_name(cls, v: str) -> str:
        if len(v) < 3:
            raise ValueError("Server name must be at least 3 characters")
        if len(v) > 50:
            raise ValueError("Server name must not exceed 50 characters")
        return v

    @property
    def is_development(self) -> bool:
        return self.debug or self.log_level == "DEBUG"

    @property
    def server_info(self) -> dict[str, str]:
        return {
            "name": self.server_name,
            "version": self.server_version,
            "transport": self.transport,
        }

    def require_ttb_key(self) -> str:
        """Return the configured TTB key or fail loudly."""
        if not self.ttb_key:
            raise ValueError(
                "TTB key is not configured. Set TTB_KEY or ALADIN_MCP_TTB_KEY "
                "to the key issued by the Aladin Open API."
            )
        return self.ttb_key


# === Global Configuration Instance ===


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
