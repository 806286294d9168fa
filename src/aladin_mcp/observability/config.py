"""Configuration for Logfire observability."""

import os

from pydantic import BaseModel, Field


def _send_mode() -> bool | str:
    """Ship spans only when a token is present unless LOGFIRE_SEND forces it."""
    value = os.getenv("LOGFIRE_SEND", "if-token-present").lower()
    if value == "if-token-present":
        return value
    return value == "true"


class ObservabilityConfig(BaseModel):
    """Configuration for Logfire observability."""

    # Connection
    token: str = Field(default_factory=lambda: os.getenv("LOGFIRE_TOKEN", ""))
    service_name: str = "aladin-mcp"
    environment: str = Field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))

    # Behavior
    enabled: bool = Field(
        default_factory=lambda: os.getenv("LOGFIRE_ENABLED", "true").lower() == "true"
    )
    console_output: bool = Field(
        default_factory=lambda: os.getenv("LOGFIRE_CONSOLE", "false").lower() == "true"
    )
    send_to_logfire: bool | str = Field(default_factory=lambda: _send_mode())

    # Parameter values longer than this are truncated in span attributes
    max_attribute_length: int = 1000
