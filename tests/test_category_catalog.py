"""Tests for the local category table."""

from pathlib import Path

import pytest

from aladin_mcp.categories import CategoryCatalog, get_category_catalog, parse_category_row
from aladin_mcp.config import get_config

CSV_HEADER = "CID,카테고리명,몰,1Depth,2Depth,3Depth,4Depth,5Depth\n"

CSV_ROWS = [
    "1,소설/시/희곡,국내도서,국내도서,소설/시/희곡,,,",
    "50993,한국소설,국내도서,국내도서,소설/시/희곡,한국소설,,",
    "50940,영미소설,국내도서,국내도서,소설/시/희곡,영미소설,,",
    "351,컴퓨터/모바일,국내도서,국내도서,컴퓨터/모바일,,,",
    "2502,프로그래밍 개발/방법론,국내도서,국내도서,컴퓨터/모바일,프로그래밍 개발/방법론,,",
    "90835,소설,외국도서,외국도서,소설,,,",
    "0,잘못된 행,국내도서,국내도서,,,,",
    "abc,숫자 아님,국내도서,국내도서,,,,",
    "77,,국내도서,국내도서,,,,",
]


def write_csv(directory: Path) -> Path:
    path = directory / "categories.csv"
    # Excel exports carry a BOM
    path.write_text(CSV_HEADER + "\n".join(CSV_ROWS) + "\n", encoding="utf-8-sig")
    return path


@pytest.fixture
def catalog(tmp_path) -> CategoryCatalog:
    return CategoryCatalog.from_csv(write_csv(tmp_path))


class TestParsing:
    def test_unusable_rows_are_skipped(self, catalog):
        assert len(catalog) == 6

    def test_parse_row(self):
        category = parse_category_row(
            {"CID": "2502", "카테고리명": "프로그래밍 개발/방법론", "몰": "국내도서",
             "1Depth": "국내도서", "2Depth": "컴퓨터/모바일", "3Depth": "프로그래밍 개발/방법론",
             "4Depth": "", "5Depth": None}
        )
        assert category.depth == 3
        assert category.parent_name == "컴퓨터/모바일"
        assert category.path == "국내도서 > 컴퓨터/모바일 > 프로그래밍 개발/방법론"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="카테고리 CSV"):
            CategoryCatalog.from_csv(tmp_path / "missing.csv")


class TestLookups:
    def test_get_by_id(self, catalog):
        assert catalog.get_by_id(2502).name == "프로그래밍 개발/방법론"
        assert catalog.get_by_id(999999) is None

    def test_get_by_name(self, catalog):
        assert [c.id for c in catalog.get_by_name("소설")] == [90835]
        assert catalog.get_by_name("없는 카테고리") == []

    def test_search_ranks_exact_match_first(self, catalog):
        results = catalog.search("소설")
        assert results[0].name == "소설"
        assert {c.id for c in results} == {1, 50993, 50940, 90835}

    def test_search_filters(self, catalog):
        assert [c.id for c in catalog.search("소설", mall_type="외국도서")] == [90835]
        assert {c.id for c in catalog.search("소설", depth=3)} == {50993, 50940}
        assert len(catalog.search("소설", limit=2)) == 2

    def test_subcategories(self, catalog):
        assert {c.id for c in catalog.get_subcategories("소설/시/희곡")} == {50993, 50940}

    def test_depth(self, catalog):
        assert {c.id for c in catalog.get_by_depth(2)} == {1, 351, 90835}
        with pytest.raises(ValueError):
            catalog.get_by_depth(6)

    def test_stats(self, catalog):
        stats = catalog.stats()
        assert stats["totalCategories"] == 6
        assert stats["byDepth"] == {2: 3, 3: 3}
        assert stats["byMallType"] == {"국내도서": 5, "외국도서": 1}

    def test_to_dict(self, catalog):
        data = catalog.get_by_id(50993).to_dict()
        assert data == {
            "id": 50993,
            "name": "한국소설",
            "depth": 3,
            "parentName": "소설/시/희곡",
            "fullPath": ["국내도서", "소설/시/희곡", "한국소설"],
            "path": "국내도서 > 소설/시/희곡 > 한국소설",
            "mallType": "국내도서",
        }


class TestCatalogSingleton:
    def test_loads_configured_path_once(self, tmp_path, monkeypatch):
        path = write_csv(tmp_path)
        monkeypatch.setenv("ALADIN_MCP_CATEGORY_CSV_PATH", str(path))

        first = get_category_catalog()
        assert len(first) == 6
        assert get_category_catalog() is first
        assert get_config().category_csv_path == path
