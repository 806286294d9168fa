"""Aladin MCP Server - server wiring and entry point.

Registers the Aladin catalog tools with FastMCP and runs them over stdio.
Logs go to stderr so stdout carries only JSON-RPC traffic.
"""

import logging
import signal
import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastmcp import FastMCP
from fastmcp.tools import Tool, ToolResult
from pydantic import Field
from pydantic.json_schema import SkipJsonSchema

from aladin_mcp.client import close_client, get_client
from aladin_mcp.config import get_config
from aladin_mcp.observability import initialize_observability
from aladin_mcp.observability.middleware import MCPInstrumentationMiddleware
from aladin_mcp.tools import all_tools

config = get_config()

logging.basicConfig(
    level=config.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)

logger = logging.getLogger(__name__)


# =============================================================================
# LIFECYCLE MANAGEMENT
# =============================================================================


@asynccontextmanager
async def lifespan(_server: FastMCP) -> AsyncIterator[None]:
    """Start the midnight quota reset and close the HTTP client on shutdown."""
    client = get_client()
    client.rate_limiter.start_daily_reset()
    logger.info("Aladin API client ready")
    try:
        yield
    finally:
        await client.rate_limiter.stop_daily_reset()
        await close_client()
        logger.info("Shutdown complete")


# =============================================================================
# TOOL REGISTRATION
# =============================================================================


class CatalogTool(Tool):
    """A registered tool that publishes its pydantic ``inputSchema``.

    MCP arguments reach the handler as the flat dict the client sent; the
    handler's envelope is returned as structured content.
    """

    handler: Annotated[
        SkipJsonSchema[Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]],
        Field(exclude=True),
    ]

    @classmethod
    def from_definition(cls, definition: dict[str, Any]) -> "CatalogTool":
        return cls(
            name=definition["name"],
            description=definition["description"],
            parameters=definition["inputSchema"],
            handler=definition["handler"],
        )

    async def run(self, arguments: dict[str, Any]) -> ToolResult:
        envelope = await self.handler(arguments)
        return ToolResult(structured_content=envelope)


# =============================================================================
# MCP SERVER INITIALIZATION
# =============================================================================

mcp = FastMCP(
    name=config.server_name,
    version=config.server_version,
    instructions=(
        "Aladin MCP Server - searches the Aladin (알라딘) book catalog. "
        "Use aladin_search for keyword/title/author/publisher search, "
        "aladin_book_info for details by ISBN or item id, "
        "aladin_bestsellers / aladin_new_books / aladin_item_list for curated lists, "
        "and aladin_categories to find category ids for list and search filters. "
        "Every tool returns {success, data | error, metadata}."
    ),
    lifespan=lifespan,
)

mcp.add_middleware(MCPInstrumentationMiddleware())

for tool in all_tools:
    mcp.add_tool(CatalogTool.from_definition(tool))

logger.info("Registered %d tools", len(all_tools))


# =============================================================================
# TRANSPORT CONFIGURATION
# =============================================================================


def run_stdio_server() -> None:
    """Run the MCP server using stdio transport."""
    logger.info("Starting %s v%s on stdio transport", config.server_name, config.server_version)

    if config.debug:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.debug("Debug mode enabled")
    else:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Received signal %s, initiating shutdown...", signum)
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        mcp.run(transport="stdio")
    except Exception:
        logger.exception("Fatal error in MCP server")
        sys.exit(1)


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def main() -> None:
    """Entry point for ``aladin-mcp`` and ``python -m aladin_mcp.server``."""
    try:
        config.require_ttb_key()
    except ValueError as e:
        logger.error("%s", e)
        sys.exit(1)

    initialize_observability()

    logger.info("=" * 60)
    logger.info("Aladin MCP Server")
    logger.info("Version: %s", config.server_version)
    logger.info("Transport: %s", config.transport)
    logger.info("Debug Mode: %s", config.debug)
    logger.info("=" * 60)

    try:
        run_stdio_server()
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    main()
