"""Aladin category reference data.

Aladin publishes its category tree as a CSV export with the columns
``CID, 카테고리명, 몰, 1Depth .. 5Depth``. The file is read once per process
and indexed by id and by name. Category names are not unique (the same
name appears under several malls and parents), so name lookups return
lists.
"""

import csv
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path

from .config import get_config

logger = logging.getLogger(__name__)

MIN_DEPTH = 1
MAX_DEPTH = 5

MALL_TYPES = ("국내도서", "외국도서", "전자책", "음반", "DVD")

_DEPTH_COLUMNS = tuple(f"{n}Depth" for n in range(MIN_DEPTH, MAX_DEPTH + 1))


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    mall_type: str
    full_path: tuple[str, ...]

    @property
    def depth(self) -> int:
        return len(self.full_path)

    @property
    def parent_name(self) -> str | None:
        return self.full_path[-2] if len(self.full_path) > 1 else None

    @property
    def path(self) -> str:
        return " > ".join(self.full_path)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "depth": self.depth,
            "parentName": self.parent_name,
            "fullPath": list(self.full_path),
            "path": self.path,
            "mallType": self.mall_type,
        }


def parse_category_row(row: dict[str, str | None]) -> Category | None:
    """Build a ``Category`` from one CSV row, or ``None`` for unusable rows."""
    try:
        cid = int((row.get("CID") or "0").strip())
    except ValueError:
        return None
    name = (row.get("카테고리명") or "").strip()
    mall_type = (row.get("몰") or "").strip()
    if cid <= 0 or not name or not mall_type:
        return None
    full_path = tuple(
        value.strip() for column in _DEPTH_COLUMNS if (value := row.get(column)) and value.strip()
    )
    return Category(id=cid, name=name, mall_type=mall_type, full_path=full_path)


class CategoryCatalog:
    """In-memory index over the category table."""

    def __init__(self, categories: list[Category]):
        self._categories = categories
        self._by_id = {category.id: category for category in categories}
        self._by_name: dict[str, list[Category]] = {}
        for category in categories:
            self._by_name.setdefault(category.name, []).append(category)

    @classmethod
    def from_csv(cls, path: Path) -> "CategoryCatalog":
        if not path.is_file():
            raise FileNotFoundError(f"카테고리 CSV 파일을 찾을 수 없습니다: {path}")
        with path.open(encoding="utf-8-sig", newline="") as handle:
            categories = [c for row in csv.DictReader(handle) if (c := parse_category_row(row))]
        logger.info("Loaded %d categories from %s", len(categories), path)
        return cls(categories)

    def __len__(self) -> int:
        return len(self._categories)

    def get_by_id(self, category_id: int) -> Category | None:
        return self._by_id.get(category_id)

    def get_by_name(self, name: str) -> list[Category]:
        return list(self._by_name.get(name.strip(), []))

    def search(
        self,
        query: str,
        mall_type: str | None = None,
        depth: int | None = None,
        limit: int = 50,
    ) -> list[Category]:
        """Partial, case-insensitive match on names and path segments.

        Exact name matches come first, then shorter names.
        """
        needle = query.strip().lower()
        matches = [
            category
            for category in self._categories
            if (needle in category.name.lower() or any(needle in p.lower() for p in category.full_path))
            and (mall_type is None or category.mall_type == mall_type)
            and (depth is None or category.depth == depth)
        ]
        matches.sort(key=lambda c: (c.name.lower() != needle, len(c.name)))
        return matches[:limit] if limit > 0 else matches

    def get_subcategories(self, parent_name: str) -> list[Category]:
        return [c for c in self._categories if c.parent_name == parent_name]

    def get_by_depth(self, depth: int) -> list[Category]:
        if not MIN_DEPTH <= depth <= MAX_DEPTH:
            raise ValueError(f"유효하지 않은 깊이입니다. {MIN_DEPTH}-{MAX_DEPTH} 사이의 값이어야 합니다.")
        return [c for c in self._categories if c.depth == depth]

    def stats(self) -> dict:
        return {
            "totalCategories": len(self._categories),
            "byDepth": dict(sorted(Counter(c.depth for c in self._categories).items())),
            "byMallType": dict(Counter(c.mall_type for c in self._categories)),
        }


class _CatalogStore:
    """Internal storage for the catalog singleton."""

    _instance: CategoryCatalog | None = None


def get_category_catalog() -> CategoryCatalog:
    """Load the configured category CSV on first use."""
    if _CatalogStore._instance is None:  # type: ignore[reportPrivateUsage]
        _CatalogStore._instance = CategoryCatalog.from_csv(get_config().category_csv_path)  # type: ignore[reportPrivateUsage]
    return _CatalogStore._instance  # type: ignore[reportPrivateUsage]


def set_category_catalog(catalog: CategoryCatalog | None) -> None:
    _CatalogStore._instance = catalog  # type: ignore[reportPrivateUsage]
