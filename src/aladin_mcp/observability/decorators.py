"""Decorators for tracing MCP tool handlers."""

import functools
from collections.abc import Callable
from datetime import datetime
from typing import Any

import logfire

from . import get_config


def trace_tool(tool_name: str):
    """Decorator to trace MCP tool execution.

    Handlers take a single ``arguments`` dict and return a response envelope,
    so the span records the argument names and the envelope's ``success``
    flag rather than raw exceptions.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(arguments: dict[str, Any]):
            with logfire.span(
                f"tool.execution.{tool_name}",
                tool_name=tool_name,
                tool_category=_categorize_tool(tool_name),
            ) as span:
                start_time = datetime.now()
                _add_attributes(span, "input", arguments)

                try:
                    result = await func(arguments)
                except Exception as e:
                    span.set_attribute("tool.success", False)
                    span.set_attribute("tool.error", str(e))
                    raise

                span.set_attribute(
                    "tool.duration_ms", (datetime.now() - start_time).total_seconds() * 1000
                )
                _add_tool_result_metrics(span, result)
                return result

        return wrapper

    return decorator


def _categorize_tool(tool_name: str) -> str:
    """Categorize tools for better organization."""
    if "search" in tool_name or "book_info" in tool_name:
        return "discovery"
    if "bestseller" in tool_name or "new_books" in tool_name or "item_list" in tool_name:
        return "lists"
    if "categor" in tool_name:
        return "reference"
    return "general"


def _add_attributes(span, prefix: str, data: dict):
    """Add scalar arguments to the span (catalog queries carry no secrets)."""
    max_length = get_config().max_attribute_length
    for key, value in (data or {}).items():
        if isinstance(value, str):
            span.set_attribute(f"{prefix}.{key}", value[:max_length])
        elif isinstance(value, int | float | bool):
            span.set_attribute(f"{prefix}.{key}", value)


def _add_tool_result_metrics(span, result: Any):
    if not isinstance(result, dict):
        return
    span.set_attribute("tool.success", bool(result.get("success")))
    error = result.get("error")
    if isinstance(error, dict):
        span.set_attribute("tool.error_kind", error.get("kind", "unknown"))
    metadata = result.get("metadata") or {}
    if "totalResults" in metadata:
        span.set_attribute("result.total_results", metadata["totalResults"])
