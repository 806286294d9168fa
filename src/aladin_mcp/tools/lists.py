"""
List tools backed by ItemList.aspx.

- aladin_bestsellers: bestseller chart, optionally for a given year/month/week
- aladin_new_books: new releases (all or editor-picked "special" ones)
- aladin_item_list: any list type (editor's choice, new-all, ...)

The three share paging and category parameters and the same response
shape; they differ only in how ``QueryType`` is chosen.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import Field

from .. import constants as c
from ..client import AladinApiClient, get_client
from ..errors import StandardError, default_classifier
from ..formatters import format_book
from ..models.book import ListResult
from ..observability.decorators import trace_tool
from .envelope import (
    ToolInput,
    choice_pattern,
    format_error_response,
    format_success_response,
    parse_tool_input,
)

logger = logging.getLogger(__name__)


# =============================================================================
# INPUT VALIDATION SCHEMAS
# =============================================================================


class ListInputBase(ToolInput):
    category_id: int = Field(
        default=0,
        description="카테고리 ID (0: 전체)",
        ge=c.MIN_CATEGORY_ID,
        le=c.MAX_CATEGORY_ID,
    )
    search_target: str = Field(
        default=c.DEFAULT_SEARCH_TARGET,
        description="조회 대상 (Book, Foreign, eBook, Music, DVD)",
        pattern=choice_pattern(c.SEARCH_TARGETS),
    )
    start: int = Field(default=c.DEFAULT_START, ge=c.MIN_START, le=c.MAX_START)
    max_results: int = Field(
        default=c.DEFAULT_MAX_RESULTS, ge=c.MIN_MAX_RESULTS, le=c.MAX_MAX_RESULTS
    )
    cover: str = Field(default=c.DEFAULT_COVER, pattern=choice_pattern(c.COVER_SIZES))

    def base_params(self) -> dict[str, Any]:
        return {
            "CategoryId": self.category_id,
            "SearchTarget": self.search_target,
            "Start": self.start,
            "MaxResults": self.max_results,
            "Cover": self.cover,
        }


class PeriodMixin(ToolInput):
    # Ranges are checked by the request validator so the year ceiling
    # follows the current date
    year: int | None = Field(default=None, description="조회 연도")
    month: int | None = Field(default=None, description="조회 월 (1-12)")
    week: int | None = Field(default=None, description="조회 주차 (1-5)")

    def period_params(self) -> dict[str, Any]:
        return {"Year": self.year, "Month": self.month, "Week": self.week}

    @property
    def period(self) -> str | None:
        parts = []
        if self.year:
            parts.append(f"{self.year}년")
        if self.month:
            parts.append(f"{self.month}월")
        if self.week:
            parts.append(f"{self.week}주")
        return " ".join(parts) or None


class AladinBestsellersInput(ListInputBase, PeriodMixin):
    """Input schema for the aladin_bestsellers tool."""


class AladinNewBooksInput(ListInputBase):
    """Input schema for the aladin_new_books tool."""

    query_type: str = Field(
        default="NewBook",
        description="신간 종류 (NewBook: 신간 전체, NewSpecial: 주목할 만한 신간)",
        pattern=choice_pattern(c.NEW_RELEASE_QUERY_TYPES),
    )


class AladinItemListInput(ListInputBase, PeriodMixin):
    """Input schema for the aladin_item_list tool."""

    query_type: str = Field(
        ...,
        description="리스트 종류",
        pattern=choice_pattern(c.LIST_QUERY_TYPES),
    )


# =============================================================================
# SHARED HANDLER LOGIC
# =============================================================================


def _list_response(
    result: ListResult, category_id: int, query: str, period: str | None = None
) -> dict[str, Any]:
    books = [format_book(item) for item in result.items]
    category_name = books[0]["categoryName"] if books and books[0].get("categoryName") else None
    data: dict[str, Any] = {
        "books": books,
        "categoryId": category_id,
        "categoryName": category_name,
        "itemsPerPage": len(books),
    }
    if period:
        data["period"] = period
    return format_success_response(
        data,
        total_results=result.total_results or len(books),
        start_index=result.start_index or None,
        items_per_page=len(books),
        query=query,
    )


async def _run_list_tool(
    tool_name: str,
    call: Callable[[AladinApiClient], Awaitable[ListResult]],
    category_id: int,
    query: str,
    period: str | None = None,
) -> dict[str, Any]:
    try:
        result = await call(get_client())
    except StandardError as error:
        logger.warning("%s failed: %s", tool_name, error.message)
        return format_error_response(error)
    except Exception as exc:
        logger.exception("Unexpected error in %s", tool_name)
        return format_error_response(default_classifier.tool_error(tool_name, exc))

    logger.info("%s returned %d items", tool_name, len(result.items))
    return _list_response(result, category_id, query, period)


# =============================================================================
# TOOL HANDLERS
# =============================================================================


@trace_tool("aladin_bestsellers")
async def aladin_bestsellers_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = parse_tool_input(AladinBestsellersInput, arguments)
    except StandardError as error:
        return format_error_response(error)

    request = {**params.base_params(), **params.period_params()}
    return await _run_list_tool(
        "aladin_bestsellers",
        lambda client: client.get_bestseller_list(request),
        params.category_id,
        f"베스트셀러 카테고리 {params.category_id}",
        params.period,
    )


@trace_tool("aladin_new_books")
async def aladin_new_books_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = parse_tool_input(AladinNewBooksInput, arguments)
    except StandardError as error:
        return format_error_response(error)

    request = {**params.base_params(), "QueryType": params.query_type}
    return await _run_list_tool(
        "aladin_new_books",
        lambda client: client.get_new_releases_list(request),
        params.category_id,
        f"신간 카테고리 {params.category_id}",
    )


@trace_tool("aladin_item_list")
async def aladin_item_list_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = parse_tool_input(AladinItemListInput, arguments)
    except StandardError as error:
        return format_error_response(error)

    request = {**params.base_params(), **params.period_params(), "QueryType": params.query_type}
    return await _run_list_tool(
        "aladin_item_list",
        lambda client: client.get_item_list(request),
        params.category_id,
        f"{params.query_type} 카테고리 {params.category_id}",
        params.period,
    )


# =============================================================================
# TOOL REGISTRATION
# =============================================================================

aladin_bestsellers = {
    "name": "aladin_bestsellers",
    "description": "알라딘 베스트셀러 목록을 조회합니다. 카테고리와 기간(연/월/주)을 지정할 수 있습니다.",
    "inputSchema": AladinBestsellersInput.model_json_schema(by_alias=True),
    "handler": aladin_bestsellers_handler,
}

aladin_new_books = {
    "name": "aladin_new_books",
    "description": "알라딘 신간 도서 목록을 조회합니다 (신간 전체 또는 주목할 만한 신간).",
    "inputSchema": AladinNewBooksInput.model_json_schema(by_alias=True),
    "handler": aladin_new_books_handler,
}

aladin_item_list = {
    "name": "aladin_item_list",
    "description": "알라딘 상품 리스트(베스트셀러, 신간, 편집자 추천 등)를 종류별로 조회합니다.",
    "inputSchema": AladinItemListInput.model_json_schema(by_alias=True),
    "handler": aladin_item_list_handler,
}
