"""
MCP tools for the Aladin MCP Server.

Each tool is a dict with ``name``, ``description``, ``inputSchema`` and an
async ``handler`` taking the raw arguments dict. Handlers always return the
response envelope from ``tools.envelope`` and never raise.
"""

from .book_info import aladin_book_info
from .categories import aladin_categories
from .lists import aladin_bestsellers, aladin_item_list, aladin_new_books
from .search import aladin_search

all_tools = [
    aladin_search,
    aladin_book_info,
    aladin_bestsellers,
    aladin_new_books,
    aladin_item_list,
    aladin_categories,
]

__all__ = [
    "aladin_bestsellers",
    "aladin_book_info",
    "aladin_categories",
    "aladin_item_list",
    "aladin_new_books",
    "aladin_search",
    "all_tools",
]
