"""Data models for Aladin API responses."""

from .book import BookItem, ListResult, LookupResult, SearchResult

__all__ = ["BookItem", "ListResult", "LookupResult", "SearchResult"]
