"""Parameter validation for Aladin API requests.

All functions are pure and never raise: they return a ``ValidationResult``
carrying every problem found, so a single response can tell the caller
everything that is wrong with a request. Field names follow the upstream
wire names (``Query``, ``MaxResults``, ...).
"""

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from . import constants as c

_ISBN10_RE = re.compile(r"^\d{9}[\dX]$")
_ISBN13_RE = re.compile(r"^\d{13}$")
_ITEM_ID_RE = re.compile(rf"^\d{{1,{c.MAX_ITEM_ID_LENGTH}}}$")
_TTB_KEY_RE = re.compile(r"^ttb[A-Za-z0-9.]+$")


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def fail(cls, *errors: str) -> "ValidationResult":
        return cls(is_valid=False, errors=list(errors))

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        if not other.is_valid:
            self.is_valid = False
            self.errors.extend(other.errors)
        return self


# =============================================================================
# IDENTIFIERS
# =============================================================================


def validate_isbn10(isbn: str) -> ValidationResult:
    """Check format and mod-11 checksum (weights 10..2, 'X' stands for 10)."""
    if not isinstance(isbn, str) or not _ISBN10_RE.match(isbn):
        return ValidationResult.fail("ISBN-10은 9자리 숫자와 숫자 또는 X로 이루어진 10자리여야 합니다.")

    total = sum(int(digit) * (10 - i) for i, digit in enumerate(isbn[:9]))
    remainder = (11 - total % 11) % 11
    expected = "X" if remainder == 10 else str(remainder)
    if isbn[9] != expected:
        return ValidationResult.fail("ISBN-10 체크섬이 올바르지 않습니다.")
    return ValidationResult.ok()


def validate_isbn13(isbn: str) -> ValidationResult:
    """Check format and mod-10 checksum (weights alternating 1, 3)."""
    if not isinstance(isbn, str) or not _ISBN13_RE.match(isbn):
        return ValidationResult.fail("ISBN-13은 13자리 숫자여야 합니다.")

    total = sum(int(digit) * (1 if i % 2 == 0 else 3) for i, digit in enumerate(isbn[:12]))
    expected = (10 - total % 10) % 10
    if int(isbn[12]) != expected:
        return ValidationResult.fail("ISBN-13 체크섬이 올바르지 않습니다.")
    return ValidationResult.ok()


def validate_isbn(isbn: str) -> ValidationResult:
    """Validate an ISBN-10 or ISBN-13, hyphens allowed."""
    if not isinstance(isbn, str):
        return ValidationResult.fail("ISBN은 문자열이어야 합니다.")
    normalized = isbn.replace("-", "").strip()
    if len(normalized) == 10:
        return validate_isbn10(normalized)
    if len(normalized) == 13:
        return validate_isbn13(normalized)
    return ValidationResult.fail("ISBN은 10자리 또는 13자리여야 합니다.")


def validate_item_id(item_id: Any) -> ValidationResult:
    if isinstance(item_id, int) and not isinstance(item_id, bool):
        item_id = str(item_id)
    if not isinstance(item_id, str) or not _ITEM_ID_RE.match(item_id):
        return ValidationResult.fail(
            f"상품 ID는 1~{c.MAX_ITEM_ID_LENGTH}자리 숫자여야 합니다."
        )
    return ValidationResult.ok()


def validate_ttb_key(key: Any) -> ValidationResult:
    if not isinstance(key, str) or not _TTB_KEY_RE.match(key):
        return ValidationResult.fail("TTB 키 형식이 올바르지 않습니다. 'ttb'로 시작해야 합니다.")
    return ValidationResult.ok()


# =============================================================================
# RANGES
# =============================================================================


def _validate_int_range(value: Any, low: int, high: int, label: str) -> ValidationResult:
    if not isinstance(value, int) or isinstance(value, bool):
        return ValidationResult.fail(f"{label}은(는) 정수여야 합니다.")
    if not low <= value <= high:
        return ValidationResult.fail(f"{label}은(는) {low}~{high} 사이여야 합니다.")
    return ValidationResult.ok()


def validate_category_id(value: Any) -> ValidationResult:
    return _validate_int_range(value, c.MIN_CATEGORY_ID, c.MAX_CATEGORY_ID, "카테고리 ID")


def validate_start(value: Any) -> ValidationResult:
    return _validate_int_range(value, c.MIN_START, c.MAX_START, "시작 위치")


def validate_max_results(value: Any) -> ValidationResult:
    return _validate_int_range(value, c.MIN_MAX_RESULTS, c.MAX_MAX_RESULTS, "최대 결과 수")


def validate_year(value: Any, today: date | None = None) -> ValidationResult:
    current_year = (today or date.today()).year
    return _validate_int_range(value, c.MIN_YEAR, current_year + 1, "연도")


def validate_month(value: Any) -> ValidationResult:
    return _validate_int_range(value, 1, 12, "월")


def validate_week(value: Any) -> ValidationResult:
    return _validate_int_range(value, c.MIN_WEEK, c.MAX_WEEK, "주")


def validate_query(value: Any) -> ValidationResult:
    if not isinstance(value, str) or not value.strip():
        return ValidationResult.fail("검색어는 필수입니다.")
    if not c.MIN_QUERY_LENGTH <= len(value.strip()) <= c.MAX_QUERY_LENGTH:
        return ValidationResult.fail(
            f"검색어는 {c.MIN_QUERY_LENGTH}~{c.MAX_QUERY_LENGTH}자 사이여야 합니다."
        )
    return ValidationResult.ok()


# =============================================================================
# ENUMS
# =============================================================================


def _validate_choice(value: Any, choices: Iterable[str], label: str) -> ValidationResult:
    choices = tuple(choices)
    if value not in choices:
        return ValidationResult.fail(
            f"{label}이(가) 올바르지 않습니다: {value!r} (허용값: {', '.join(choices)})"
        )
    return ValidationResult.ok()


def validate_query_type(value: Any) -> ValidationResult:
    return _validate_choice(value, c.QUERY_TYPES, "검색 타입")


def validate_search_target(value: Any) -> ValidationResult:
    return _validate_choice(value, c.SEARCH_TARGETS, "검색 대상")


def validate_sort_option(value: Any) -> ValidationResult:
    return _validate_choice(value, c.SORT_OPTIONS, "정렬 옵션")


def validate_cover_size(value: Any) -> ValidationResult:
    return _validate_choice(value, c.COVER_SIZES, "표지 크기")


def validate_list_query_type(value: Any) -> ValidationResult:
    return _validate_choice(value, c.LIST_QUERY_TYPES, "리스트 종류")


def validate_opt_results(values: Any) -> ValidationResult:
    if isinstance(values, str):
        values = [v for v in values.split(",") if v]
    if not isinstance(values, list | tuple):
        return ValidationResult.fail("부가 정보 옵션은 목록이어야 합니다.")
    result = ValidationResult.ok()
    for value in values:
        result.merge(_validate_choice(value, c.OPT_RESULTS, "부가 정보 옵션"))
    return result


# =============================================================================
# REQUEST-LEVEL CHECKS
# =============================================================================

_OPTIONAL_CHECKS = {
    "QueryType": validate_query_type,
    "SearchTarget": validate_search_target,
    "Sort": validate_sort_option,
    "Cover": validate_cover_size,
    "CategoryId": validate_category_id,
    "Start": validate_start,
    "MaxResults": validate_max_results,
    "OptResult": validate_opt_results,
    "Year": validate_year,
    "Month": validate_month,
    "Week": validate_week,
}


def _check_optional(params: Mapping[str, Any], names: Iterable[str]) -> ValidationResult:
    result = ValidationResult.ok()
    for name in names:
        if params.get(name) is not None:
            result.merge(_OPTIONAL_CHECKS[name](params[name]))
    return result


def validate_search_params(params: Mapping[str, Any]) -> ValidationResult:
    """ItemSearch: ``Query`` is required."""
    result = validate_query(params.get("Query"))
    return result.merge(
        _check_optional(
            params,
            ("QueryType", "SearchTarget", "Sort", "Cover", "CategoryId", "Start", "MaxResults", "OptResult"),
        )
    )


def validate_lookup_params(params: Mapping[str, Any]) -> ValidationResult:
    """ItemLookUp: at least one of ``ItemId``, ``ISBN``, ``ISBN13``."""
    result = ValidationResult.ok()
    item_id, isbn, isbn13 = params.get("ItemId"), params.get("ISBN"), params.get("ISBN13")

    if item_id is None and isbn is None and isbn13 is None:
        result.merge(ValidationResult.fail("ItemId, ISBN, ISBN13 중 하나는 반드시 입력해야 합니다."))
    if item_id is not None:
        result.merge(validate_item_id(item_id))
    if isbn is not None:
        result.merge(validate_isbn(isbn))
    if isbn13 is not None:
        result.merge(
            validate_isbn13(isbn13.replace("-", "") if isinstance(isbn13, str) else isbn13)
        )
    return result.merge(_check_optional(params, ("Cover", "OptResult")))


def validate_list_params(params: Mapping[str, Any]) -> ValidationResult:
    """ItemList: ``QueryType`` from the list set is required."""
    query_type = params.get("QueryType")
    if query_type is None:
        result = ValidationResult.fail("리스트 종류(QueryType)는 필수입니다.")
    else:
        result = validate_list_query_type(query_type)
    return result.merge(
        _check_optional(
            params,
            ("CategoryId", "SearchTarget", "Year", "Month", "Week", "Start", "MaxResults", "Cover"),
        )
    )
