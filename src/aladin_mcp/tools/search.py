"""
aladin_search tool: keyword, title, author or publisher search (ItemSearch).
"""

import logging
from typing import Any

from pydantic import Field, field_validator

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

TOOL_NAME = "aladin_search"


# =============================================================================
# INPUT VALIDATION SCHEMA
# =============================================================================


class AladinSearchInput(ToolInput):
    """Input schema for the aladin_search tool."""

    query: str = Field(
        ...,
        description="검색할 키워드 (필수)",
        min_length=1,
        max_length=200,
        examples=["클린 코드", "해리 포터", "김영하"],
    )

    query_type: str = Field(
        default=c.DEFAULT_QUERY_TYPE,
        description="검색 타입 (Title: 제목, Author: 저자, Publisher: 출판사, Keyword: 키워드)",
        pattern=choice_pattern(c.QUERY_TYPES),
    )

    search_target: str = Field(
        default=c.DEFAULT_SEARCH_TARGET,
        description="검색 대상 (Book: 국내도서, Foreign: 외국도서, eBook: 전자책, Music: 음반, DVD)",
        pattern=choice_pattern(c.SEARCH_TARGETS),
    )

    sort: str = Field(
        default=c.DEFAULT_SORT,
        description="정렬 방식",
        pattern=choice_pattern(c.SORT_OPTIONS),
    )

    cover: str = Field(
        default=c.DEFAULT_COVER,
        description="표지 이미지 크기",
        pattern=choice_pattern(c.COVER_SIZES),
    )

    category_id: int | None = Field(
        default=None,
        description="카테고리 ID (0: 전체)",
        ge=c.MIN_CATEGORY_ID,
        le=c.MAX_CATEGORY_ID,
    )

    start: int = Field(default=c.DEFAULT_START, description="검색 시작 위치", ge=c.MIN_START, le=c.MAX_START)

    max_results: int = Field(
        default=c.DEFAULT_MAX_RESULTS,
        description="한 페이지 최대 결과 수",
        ge=c.MIN_MAX_RESULTS,
        le=c.MAX_MAX_RESULTS,
    )

    opt_result: list[str] | None = Field(default=None, description="부가 정보 옵션")

    @field_validator("query")
    @classmethod
    def strip_query(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("검색어는 필수입니다.")
        return v

    def to_request_params(self) -> dict[str, Any]:
        return {
            "Query": self.query,
            "QueryType": self.query_type,
            "SearchTarget": self.search_target,
            "Sort": self.sort,
            "Cover": self.cover,
            "CategoryId": self.category_id,
            "Start": self.start,
            "MaxResults": self.max_results,
            "OptResult": self.opt_result or None,
        }


# =============================================================================
# TOOL HANDLER IMPLEMENTATION
# =============================================================================


@trace_tool(TOOL_NAME)
async def aladin_search_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    """Search the Aladin catalog.

    Never raises: validation and API failures come back as error envelopes.
    """
    try:
        params = parse_tool_input(AladinSearchInput, arguments)
        result = await get_client().search_books(params.to_request_params())
    except StandardError as error:
        logger.warning("%s failed: %s", TOOL_NAME, error.message)
        return format_error_response(error)
    except Exception as exc:
        logger.exception("Unexpected error in %s", TOOL_NAME)
        return format_error_response(default_classifier.tool_error(TOOL_NAME, exc))

    books = [format_book(item) for item in result.items]
    logger.info("%s returned %d of %d results", TOOL_NAME, len(books), result.total_results)
    return format_success_response(
        {
            "books": books,
            "totalResults": result.total_results,
            "startIndex": result.start_index,
            "itemsPerPage": result.items_per_page,
            "query": result.query or params.query,
        },
        total_results=result.total_results,
        start_index=result.start_index,
        items_per_page=result.items_per_page,
        query=result.query or params.query,
    )


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

aladin_search = {
    "name": TOOL_NAME,
    "description": "알라딘에서 도서를 검색합니다. 키워드, 제목, 저자, 출판사로 검색할 수 있습니다.",
    "inputSchema": AladinSearchInput.model_json_schema(by_alias=True),
    "handler": aladin_search_handler,
}
