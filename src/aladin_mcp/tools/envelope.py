"""
Uniform response envelope for Aladin MCP tools.

Every tool returns the same shape so clients can branch on ``success``
without knowing which tool they called:

    {"success": true,  "data": {...}, "metadata": {...}}
    {"success": false, "error": {...}, "metadata": {"timestamp": ...}}

``error`` is ``StandardError.to_dict()``.
"""

from datetime import UTC, datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..errors import StandardError, default_classifier

# =============================================================================
# RESPONSE MODELS
# =============================================================================


class ResponseMetadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_results: int | None = None
    start_index: int | None = None
    items_per_page: int | None = None
    query: str | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())


class ToolResponse(BaseModel):
    success: bool
    data: Any | None = None
    error: dict[str, Any] | None = None
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def format_success_response(
    data: Any,
    *,
    total_results: int | None = None,
    start_index: int | None = None,
    items_per_page: int | None = None,
    query: str | None = None,
) -> dict[str, Any]:
    metadata = ResponseMetadata(
        total_results=total_results,
        start_index=start_index,
        items_per_page=items_per_page,
        query=query,
    )
    return ToolResponse(success=True, data=data, metadata=metadata).to_dict()


def format_error_response(error: StandardError) -> dict[str, Any]:
    return ToolResponse(success=False, error=error.to_dict()).to_dict()


# =============================================================================
# INPUT HELPERS
# =============================================================================


class ToolInput(BaseModel):
    """Base for tool input schemas: camelCase on the wire, snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


InputT = TypeVar("InputT", bound=ToolInput)


def choice_pattern(choices: tuple[str, ...]) -> str:
    return f"^({'|'.join(choices)})$"


def parse_tool_input(model: type[InputT], arguments: dict[str, Any] | None) -> InputT:
    """Validate raw tool arguments, raising ``InvalidParameter`` on failure."""
    try:
        return model.model_validate(arguments or {})
    except ValidationError as exc:
        errors = [
            f"{'.'.join(str(part) for part in err['loc']) or 'input'}: {err['msg']}"
            for err in exc.errors()
        ]
        raise default_classifier.validation_error(errors) from exc
