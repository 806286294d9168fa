"""Tests for MCP server configuration.

These tests demonstrate:
1. Default values
2. Environment variable loading, including the plain ``TTB_KEY`` name
3. Validation of server metadata
4. Keeping the TTB key out of reprs
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from aladin_mcp.config import ServerConfig, get_config, reset_config


class TestServerConfig:
    """Test MCP server configuration behavior."""

    def test_default_configuration(self):
        with patch.dict(os.environ, {}, clear=True):
            config = ServerConfig(_env_file=None)

        assert config.server_name == "aladin-mcp"
        assert config.server_version == "0.1.0"
        assert config.transport == "stdio"
        assert config.ttb_key is None
        assert config.category_csv_path == Path("data/aladin_categories.csv")
        assert config.log_level == "INFO"

    def test_environment_variable_loading(self):
        env_vars = {
            "ALADIN_MCP_SERVER_NAME": "test-aladin",
            "ALADIN_MCP_TTB_KEY": "ttbprefixed001",
            "ALADIN_MCP_CATEGORY_CSV_PATH": "/tmp/categories.csv",
            "ALADIN_MCP_DEBUG": "true",
            "ALADIN_MCP_LOG_LEVEL": "DEBUG",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            config = ServerConfig(_env_file=None)

        assert config.server_name == "test-aladin"
        assert config.ttb_key == "ttbprefixed001"
        assert config.category_csv_path == Path("/tmp/categories.csv")
        assert config.is_development is True

    def test_plain_ttb_key_variable(self):
        with patch.dict(os.environ, {"TTB_KEY": "ttbplain0001"}, clear=True):
            config = ServerConfig(_env_file=None)
        assert config.ttb_key == "ttbplain0001"

    def test_blank_ttb_key_is_unset(self):
        with patch.dict(os.environ, {"TTB_KEY": "   "}, clear=True):
            config = ServerConfig(_env_file=None)
        assert config.ttb_key is None
        with pytest.raises(ValueError, match="TTB key is not configured"):
            config.require_ttb_key()

    def test_require_ttb_key(self):
        config = ServerConfig(_env_file=None, ttb_key="ttbconfigured01")
        assert config.require_ttb_key() == "ttbconfigured01"

    def test_ttb_key_not_in_repr(self):
        config = ServerConfig(_env_file=None, ttb_key="ttbsecret00001")
        assert "ttbsecret00001" not in repr(config)

    def test_server_name_validation(self):
        for name in ["aladin-mcp", "books-123"]:
            assert ServerConfig(_env_file=None, server_name=name).server_name == name

        for name in ["Aladin_MCP", "aladin mcp", "ab", "a" * 51]:
            with pytest.raises(ValidationError):
                ServerConfig(_env_file=None, server_name=name)

    def test_only_stdio_transport(self):
        with pytest.raises(ValidationError):
            ServerConfig(_env_file=None, transport="http")

    def test_log_level_validation(self):
        with pytest.raises(ValidationError):
            ServerConfig(_env_file=None, log_level="TRACE")

    def test_server_info(self):
        info = ServerConfig(_env_file=None).server_info
        assert info == {"name": "aladin-mcp", "version": "0.1.0", "transport": "stdio"}


class TestConfigSingleton:
    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_reset_config(self):
        first = get_config()
        reset_config()
        assert get_config() is not first
