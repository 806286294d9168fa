"""
Normalized book models for Aladin API responses.

The Aladin JS output is loosely typed: prices, ids and sales points arrive
as numbers or numeric strings, flags as booleans or strings, and optional
fields are simply missing. These models coerce every scalar field to one
canonical type so tool consumers never see that variance:

1. Numeric fields accept numbers or numeric strings; anything else is 0
2. Missing or null strings become ""
3. Unknown upstream fields and the ``subInfo`` block pass through untouched
4. Instances are frozen once built
"""

import math
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _finite_int(number: float) -> int:
    return int(number) if math.isfinite(number) else 0


def _to_int(value: Any) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return _finite_int(value)
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        try:
            return int(text)
        except ValueError:
            try:
                return _finite_int(float(text))
            except ValueError:
                return 0
    return 0


def _to_float(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "y", "yes")
    return bool(value)


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


LenientInt = Annotated[int, BeforeValidator(_to_int)]
LenientFloat = Annotated[float, BeforeValidator(_to_float)]
LenientBool = Annotated[bool, BeforeValidator(_to_bool)]
LenientStr = Annotated[str, BeforeValidator(_to_str)]

_MODEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="allow",
    frozen=True,
)


class BookItem(BaseModel):
    """One catalog item as returned by search, lookup and list endpoints."""

    model_config = _MODEL_CONFIG

    item_id: LenientInt = Field(default=0, description="Aladin item id", examples=[34970313])
    title: LenientStr = Field(default="", examples=["클린 코드 Clean Code"])
    link: LenientStr = ""
    author: LenientStr = Field(default="", examples=["로버트 C. 마틴 (지은이), 박재호 (옮긴이)"])
    pub_date: LenientStr = Field(default="", examples=["2013-12-24"])
    description: LenientStr = ""
    isbn: LenientStr = Field(default="", examples=["8966260950"])
    isbn13: LenientStr = Field(default="", examples=["9788966260959"])
    price_sales: LenientInt = Field(default=0, description="Sale price in KRW")
    price_standard: LenientInt = Field(default=0, description="List price in KRW")
    mall_type: LenientStr = ""
    stock_status: LenientStr = ""
    mileage: LenientInt = 0
    cover: LenientStr = ""
    category_id: LenientInt = 0
    category_name: LenientStr = ""
    publisher: LenientStr = ""
    sales_point: LenientInt = 0
    adult: LenientBool = False
    fixed_price: LenientBool = False
    customer_review_rank: LenientFloat = 0.0

    # List endpoints only
    best_duration: str | None = None
    best_rank: int | None = None

    sub_info: dict[str, Any] | None = Field(default=None, description="Extra sections requested via OptResult")

    def to_response(self) -> dict[str, Any]:
        """Serialize with upstream camelCase names, dropping absent optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)


class _ItemsResponse(BaseModel):
    model_config = _MODEL_CONFIG

    version: LenientStr = ""
    title: LenientStr = ""
    link: LenientStr = ""
    pub_date: LenientStr = ""
    items: list[BookItem] = Field(
        default_factory=list,
        validation_alias=AliasChoices("item", "items"),
        serialization_alias="items",
    )


class SearchResult(_ItemsResponse):
    """ItemSearch response."""

    total_results: LenientInt = 0
    start_index: LenientInt = 0
    items_per_page: LenientInt = 0
    query: LenientStr = ""


class LookupResult(_ItemsResponse):
    """ItemLookUp response; ``items`` holds zero or one book."""

    @property
    def book(self) -> BookItem | None:
        return self.items[0] if self.items else None


class ListResult(_ItemsResponse):
    """ItemList response (bestsellers, new releases, editor picks)."""

    total_results: LenientInt = 0
    start_index: LenientInt = 0
    items_per_page: LenientInt = 0
    query: LenientStr = ""
