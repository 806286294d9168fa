"""Display cleanup for book data returned to MCP clients.

Aladin titles and descriptions contain HTML fragments and entities, and
author strings carry role markers such as ``(지은이)``. Tools pass every
``BookItem`` through ``format_book`` before putting it in a response.
"""

import html
import re
from datetime import date
from typing import Any

from .models.book import BookItem

_TAG_RE = re.compile(r"<[^>]*>")
_BREAK_RE = re.compile(r"<br\s*/?>|</?p[^>]*>", re.IGNORECASE)
_SPACE_RE = re.compile(r"\s+")

_AUTHOR_ROLES = (
    ("(지은이)", ""),
    ("(옮긴이)", " (역)"),
    ("(편집)", " (편)"),
    ("(그림)", " (그림)"),
)

_TEXT_SECTIONS = ("fulldescription", "toc", "story")


def clean_text(text: str | None) -> str:
    """Strip tags, decode entities and collapse whitespace."""
    if not text:
        return ""
    text = _TAG_RE.sub("", text)
    text = html.unescape(text).replace("\xa0", " ")
    return _SPACE_RE.sub(" ", text).strip()


def html_to_text(text: str | None) -> str:
    """Like ``clean_text`` but keeps paragraph and line breaks."""
    if not text:
        return ""
    text = _BREAK_RE.sub("\n", text)
    text = html.unescape(_TAG_RE.sub("", text)).replace("\xa0", " ")
    lines = (_SPACE_RE.sub(" ", line).strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line)


def format_author_names(authors: str | None) -> str:
    """``"A (지은이), B (옮긴이)"`` becomes ``"A, B (역)"``."""
    if not authors:
        return ""
    for marker, replacement in _AUTHOR_ROLES:
        authors = authors.replace(marker, replacement)
    authors = _SPACE_RE.sub(" ", authors).strip()
    return re.sub(r"\s+,", ",", authors)


def format_publish_date(pub_date: str | None) -> str:
    """``"2013-12-24"`` becomes ``"2013년 12월 24일"``; unparseable input is returned as is."""
    if not pub_date:
        return ""
    try:
        parsed = date.fromisoformat(pub_date.strip()[:10])
    except ValueError:
        return pub_date
    return f"{parsed.year}년 {parsed.month}월 {parsed.day}일"


def format_price(price: int) -> str:
    if price <= 0:
        return "가격 정보 없음"
    return f"₩{price:,}"


def format_discount_rate(standard_price: int, sales_price: int) -> str:
    if standard_price <= 0 or sales_price <= 0 or sales_price >= standard_price:
        return "할인 없음"
    rate = round((standard_price - sales_price) / standard_price * 100)
    return f"{rate}% 할인"


def format_sub_info(sub_info: dict[str, Any]) -> dict[str, Any]:
    formatted = dict(sub_info)
    for section in _TEXT_SECTIONS:
        if isinstance(formatted.get(section), str):
            formatted[section] = html_to_text(formatted[section])
    return formatted


def format_book(book: BookItem) -> dict[str, Any]:
    """Response dict for one book with display-cleaned text fields."""
    data = book.to_response()
    data["title"] = clean_text(book.title)
    data["author"] = format_author_names(book.author)
    data["description"] = clean_text(book.description)
    data["pubDateFormatted"] = format_publish_date(book.pub_date)
    data["priceInfo"] = {
        "sales": format_price(book.price_sales),
        "standard": format_price(book.price_standard),
        "discount": format_discount_rate(book.price_standard, book.price_sales),
    }
    if book.sub_info:
        data["subInfo"] = format_sub_info(book.sub_info)
    return data
