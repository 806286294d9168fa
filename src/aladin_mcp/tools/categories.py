"""
aladin_categories tool: look up Aladin category ids and names.

Served entirely from the local category table; it never calls the API
and does not count against the daily quota.
"""

import logging
from typing import Any

from pydantic import Field

from ..categories import MALL_TYPES, MAX_DEPTH, MIN_DEPTH, get_category_catalog
from ..errors import StandardError, default_classifier
from ..observability.decorators import trace_tool
from .envelope import (
    ToolInput,
    choice_pattern,
    format_error_response,
    format_success_response,
    parse_tool_input,
)

logger = logging.getLogger(__name__)

TOOL_NAME = "aladin_categories"


class AladinCategoriesInput(ToolInput):
    """Input schema for the aladin_categories tool.

    Lookup precedence: ``categoryId``, then ``categoryName`` (exact, falling
    back to partial), then ``query`` (partial), then ``depth`` alone. With
    no criteria the table statistics are returned.
    """

    category_id: int | None = Field(default=None, description="카테고리 ID", ge=1, le=99999)
    category_name: str | None = Field(default=None, description="카테고리명", min_length=1, max_length=100)
    query: str | None = Field(default=None, description="카테고리명 부분 검색어", min_length=1, max_length=100)
    depth: int | None = Field(default=None, description="카테고리 깊이", ge=MIN_DEPTH, le=MAX_DEPTH)
    mall_type: str | None = Field(
        default=None,
        description="몰 구분 (국내도서, 외국도서, 전자책, 음반, DVD)",
        pattern=choice_pattern(MALL_TYPES),
    )
    include_subcategories: bool = Field(
        default=False,
        description="첫 번째 결과의 하위 카테고리를 함께 반환",
    )
    limit: int = Field(default=50, description="최대 결과 수", ge=1, le=500)


@trace_tool(TOOL_NAME)
async def aladin_categories_handler(arguments: dict[str, Any]) -> dict[str, Any]:
    try:
        params = parse_tool_input(AladinCategoriesInput, arguments)
        catalog = get_category_catalog()

        if params.category_id is not None:
            found = catalog.get_by_id(params.category_id)
            categories = [found] if found else []
            search_type = "by_id"
        elif params.category_name:
            categories = catalog.get_by_name(params.category_name) or catalog.search(
                params.category_name, params.mall_type, params.depth, params.limit
            )
            search_type = "by_name"
        elif params.query:
            categories = catalog.search(params.query, params.mall_type, params.depth, params.limit)
            search_type = "search"
        elif params.depth is not None:
            categories = catalog.get_by_depth(params.depth)
            if params.mall_type:
                categories = [cat for cat in categories if cat.mall_type == params.mall_type]
            search_type = "by_depth"
        else:
            return format_success_response({"stats": catalog.stats()})
    except StandardError as error:
        logger.warning("%s failed: %s", TOOL_NAME, error.message)
        return format_error_response(error)
    except Exception as exc:
        logger.exception("Unexpected error in %s", TOOL_NAME)
        return format_error_response(default_classifier.tool_error(TOOL_NAME, exc))

    total = len(categories)
    categories = categories[: params.limit]
    data: dict[str, Any] = {
        "categories": [category.to_dict() for category in categories],
        "totalCount": total,
        "searchType": search_type,
    }
    if params.include_subcategories and categories:
        data["subcategories"] = [
            sub.to_dict() for sub in catalog.get_subcategories(categories[0].name)
        ]

    logger.info("%s (%s) matched %d categories", TOOL_NAME, search_type, total)
    return format_success_response(data, total_results=total, items_per_page=len(categories))


aladin_categories = {
    "name": TOOL_NAME,
    "description": "카테고리명 또는 CID로 알라딘 카테고리 정보를 조회합니다.",
    "inputSchema": AladinCategoriesInput.model_json_schema(by_alias=True),
    "handler": aladin_categories_handler,
}
