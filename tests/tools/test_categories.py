"""
Tests for the aladin_categories tool (served from the local table, no API calls).
"""

import pytest

from aladin_mcp.categories import Category, CategoryCatalog, set_category_catalog
from aladin_mcp.tools.categories import aladin_categories_handler

pytestmark = pytest.mark.mcp_tools


def _category(cid: int, mall: str, *path: str) -> Category:
    return Category(id=cid, name=path[-1], mall_type=mall, full_path=path)


@pytest.fixture
def catalog() -> CategoryCatalog:
    catalog = CategoryCatalog(
        [
            _category(1, "국내도서", "국내도서", "소설/시/희곡"),
            _category(50993, "국내도서", "국내도서", "소설/시/희곡", "한국소설"),
            _category(50940, "국내도서", "국내도서", "소설/시/희곡", "영미소설"),
            _category(351, "국내도서", "국내도서", "컴퓨터/모바일"),
            _category(90835, "외국도서", "외국도서", "소설"),
        ]
    )
    set_category_catalog(catalog)
    return catalog


class TestCategoriesHandler:
    @pytest.mark.asyncio
    async def test_by_id(self, catalog):
        result = await aladin_categories_handler({"categoryId": 50993})

        assert result["success"] is True
        data = result["data"]
        assert data["searchType"] == "by_id"
        assert data["totalCount"] == 1
        assert data["categories"][0]["name"] == "한국소설"
        assert data["categories"][0]["parentName"] == "소설/시/희곡"

    @pytest.mark.asyncio
    async def test_unknown_id(self, catalog):
        result = await aladin_categories_handler({"categoryId": 424242})

        assert result["success"] is True
        assert result["data"]["categories"] == []
        assert result["data"]["totalCount"] == 0

    @pytest.mark.asyncio
    async def test_by_name_with_subcategories(self, catalog):
        result = await aladin_categories_handler(
            {"categoryName": "소설/시/희곡", "includeSubcategories": True}
        )

        data = result["data"]
        assert data["searchType"] == "by_name"
        assert [c["id"] for c in data["categories"]] == [1]
        assert {c["id"] for c in data["subcategories"]} == {50993, 50940}

    @pytest.mark.asyncio
    async def test_name_falls_back_to_partial_match(self, catalog):
        result = await aladin_categories_handler({"categoryName": "영미"})
        assert [c["id"] for c in result["data"]["categories"]] == [50940]

    @pytest.mark.asyncio
    async def test_query_with_mall_filter(self, catalog):
        result = await aladin_categories_handler({"query": "소설", "mallType": "외국도서"})

        data = result["data"]
        assert data["searchType"] == "search"
        assert [c["id"] for c in data["categories"]] == [90835]

    @pytest.mark.asyncio
    async def test_limit_caps_results(self, catalog):
        result = await aladin_categories_handler({"query": "소설", "limit": 2})

        assert len(result["data"]["categories"]) == 2
        assert result["metadata"]["itemsPerPage"] == 2

    @pytest.mark.asyncio
    async def test_by_depth(self, catalog):
        result = await aladin_categories_handler({"depth": 3})

        assert result["data"]["searchType"] == "by_depth"
        assert {c["id"] for c in result["data"]["categories"]} == {50993, 50940}

    @pytest.mark.asyncio
    async def test_no_criteria_returns_stats(self, catalog):
        result = await aladin_categories_handler({})

        assert result["data"]["stats"]["totalCategories"] == 5

    @pytest.mark.asyncio
    async def test_invalid_depth(self, catalog):
        result = await aladin_categories_handler({"depth": 9})

        assert result["success"] is False
        assert result["error"]["kind"] == "InvalidParameter"

    @pytest.mark.asyncio
    async def test_missing_table_is_reported(self, tmp_path, monkeypatch):
        monkeypatch.setenv("ALADIN_MCP_CATEGORY_CSV_PATH", str(tmp_path / "missing.csv"))

        result = await aladin_categories_handler({"query": "소설"})

        assert result["success"] is False
        assert result["error"]["kind"] == "SystemError"
