"""
aladin_book_info tool: detail lookup by Aladin item id or ISBN (ItemLookUp).
"""

import logging
from typing import Any

from pydantic import Field

from .. import constants as c
from ..client import get_client
from ..errors import StandardError, default_classifier
from ..formatters import format_book
from ..observability.decorators import trace_tool
from .envelope import (
    ToolInput,
    choice_pattern,
    format_error_response,
    format_success_response,
    parse_tool_input,
)

logger = logging.getLogger(__name__)

TOOL_NAME = "aladin_book_info"


class AladinBookInfoInput(ToolInput):
    """Input schema for the aladin_book_info tool.

    At least one identifier is required; the request pipeline reports a
    missing identifier together with any other parameter problems.
    """

    item_id: str | None = Field(default=None, description="알라딘 상품 ID", examples=["34970313"])
    isbn: str | None = Field(default=None, description="ISBN-10 또는 ISBN-13", examples=["8966260950"])
    isbn13: str | None = Field(default=None, description="ISBN-13", examples=["9788966260959"])

    cover: str = Field(
        default=c.DEFAULT_COVER,
        description="표지 이미지 크기",
        pattern=choice_pattern(c.COVER_SIZES),
    )

    opt_result: list[str] = Field(
        default_factory=lambda: ["authors", "fulldescription"],
        description="부가 정보 옵션",
    )

    @property
    def identifier(self) -> str:
        return self.item_id or self.isbn or self.isbn13 or "unknown"

    def to_request_params(self) -> dict[str, Any]:
        return {
            "ItemId": self.item_id,
            "ISBN": self.isbn,
            "ISBN13": self.isbn13,
            "Cover": self.cover,
            "OptResult": self.opt_result or None,
        }


@trace_tool(TOOL_NAME)
async def aladin_book_info_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = parse_tool_input(AladinBookInfoInput, arguments)
        book = await get_client().get_book_details(params.to_request_params())
    except StandardError as error:
        logger.warning("%s failed: %s", TOOL_NAME, error.message)
        return format_error_response(error)
    except Exception as exc:
        logger.exception("Unexpected error in %s", TOOL_NAME)
        return format_error_response(default_classifier.tool_error(TOOL_NAME, exc))

    logger.info("%s lookup for %s: found=%s", TOOL_NAME, params.identifier, book is not None)
    return format_success_response(
        {
            "book": format_book(book) if book is not None else None,
            "found": book is not None,
            "identifier": params.identifier,
        },
        query=params.identifier,
    )


aladin_book_info = {
    "name": TOOL_NAME,
    "description": "ISBN 또는 상품 ID로 도서의 상세 정보를 조회합니다.",
    "inputSchema": AladinBookInfoInput.model_json_schema(by_alias=True),
    "handler": aladin_book_info_handler,
}
