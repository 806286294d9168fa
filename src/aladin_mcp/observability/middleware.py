"""FastMCP middleware that opens one Logfire span per MCP message."""

import time
from typing import Any

from fastmcp.server.middleware import Middleware, MiddlewareContext

from . import get_config, logfire

_OPERATION_PREFIXES = (
    ("tools/", "tool"),
    ("resources/", "resource"),
    ("prompts/", "prompt"),
)


def operation_type(method: str) -> str:
    for prefix, operation in _OPERATION_PREFIXES:
        if method.startswith(prefix):
            return operation
    return "system"


class MCPInstrumentationMiddleware(Middleware):
    """Traces every MCP request; tool calls also record the Aladin tool name."""

    def __init__(self, enabled: bool | None = None):
        self.enabled = get_config().enabled if enabled is None else enabled

    async def on_message(self, context: MiddlewareContext, call_next) -> Any:
        if not self.enabled:
            return await call_next(context)

        method = context.method or "unknown"
        operation = operation_type(method)
        attributes: dict[str, Any] = {"mcp_method": method, "mcp_operation_type": operation}
        tool_name = getattr(context.message, "name", None)
        if operation == "tool" and tool_name:
            attributes["aladin_tool"] = tool_name

        with logfire.span(f"mcp.{operation}.{method}", _span_name=f"MCP {method}", **attributes) as span:
            started = time.perf_counter()
            try:
                result = await call_next(context)
            except Exception as e:
                span.set_attribute("mcp.status", "error")
                span.set_attribute("error.type", type(e).__name__)
                raise
            finally:
                span.set_attribute("mcp.duration_ms", (time.perf_counter() - started) * 1000)

            span.set_attribute("mcp.status", "success")
            return result
