"""Test configuration and fixtures for the Aladin MCP Server.

Nothing here touches the network or waits in real time:

1. ``FakeClock`` stands in for ``time.time``/``time.monotonic``
2. ``fake_sleep`` records requested delays and advances the fake clock
3. ``FakeAladinApi`` sits behind ``httpx.MockTransport`` and records every
   request the client sends
"""

import os

# Spans are created without logfire.configure() in tests
os.environ.setdefault("LOGFIRE_IGNORE_NO_CONFIG", "1")
os.environ.setdefault("LOGFIRE_SEND", "false")

from collections.abc import AsyncGenerator, Callable, Generator
from datetime import datetime
from typing import Any

import httpx
import pytest
import pytest_asyncio

from aladin_mcp.breaker import CircuitBreaker
from aladin_mcp.cache import ResponseCache
from aladin_mcp.categories import set_category_catalog
from aladin_mcp.client import AladinApiClient, reset_client, set_client
from aladin_mcp.config import reset_config
from aladin_mcp.errors import ErrorClassifier
from aladin_mcp.rate_limiter import RateLimiter

TEST_TTB_KEY = "ttbtest1234567001"

# === Pytest Configuration ===


def pytest_configure(config):
    config.addinivalue_line("markers", "mcp_tools: tests that exercise MCP tool handlers end to end")


# === Sample Payloads ===


def book_payload(**overrides: Any) -> dict[str, Any]:
    """One item as the Aladin JS output returns it (numbers partly as strings)."""
    item = {
        "title": "클린 코드 Clean Code - 애자일 소프트웨어 장인 정신",
        "link": "http://www.aladin.co.kr/shop/wproduct.aspx?ItemId=34083680",
        "author": "로버트 C. 마틴 (지은이), 박재호, 이해영 (옮긴이)",
        "pubDate": "2013-12-24",
        "description": "&lt;클린 코드&gt;는 <b>나쁜 코드</b>를 깨끗한 코드로 바꾸는 방법을 알려준다.",
        "isbn": "8966260950",
        "isbn13": "9788966260959",
        "itemId": 34083680,
        "priceSales": "29700",
        "priceStandard": 33000,
        "mallType": "BOOK",
        "stockStatus": "",
        "mileage": "1650",
        "cover": "https://image.aladin.co.kr/product/3408/36/coversum/8966260950_2.jpg",
        "categoryId": 2502,
        "categoryName": "국내도서>컴퓨터/모바일>프로그래밍 개발/방법론",
        "publisher": "인사이트",
        "salesPoint": "12345",
        "adult": False,
        "fixedPrice": True,
        "customerReviewRank": 9,
    }
    item.update(overrides)
    return item


def search_payload(query: str = "클린 코드", items: list[dict] | None = None) -> dict[str, Any]:
    items = [book_payload()] if items is None else items
    return {
        "version": "20070901",
        "title": f"알라딘 검색결과 - {query}",
        "link": "http://www.aladin.co.kr/search/wsearchresult.aspx",
        "pubDate": "Sat, 14 Mar 2026 12:00:00 GMT",
        "totalResults": len(items),
        "startIndex": 1,
        "itemsPerPage": 10,
        "query": query,
        "item": items,
    }


def list_payload(items: list[dict] | None = None) -> dict[str, Any]:
    items = [book_payload(bestRank=1, bestDuration="3주")] if items is None else items
    return {
        "version": "20070901",
        "title": "알라딘 베스트셀러 리스트",
        "totalResults": 200,
        "startIndex": 1,
        "itemsPerPage": len(items),
        "item": items,
    }


# === Fakes ===


class FakeClock:
    """Settable clock usable as both wall clock and monotonic clock."""

    def __init__(self, start: float):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Awaitable sleep replacement that records delays and advances the clock."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        self.clock.advance(seconds)


def reply(payload: Any = None, status: int = 200, text: str | None = None):
    """Handler returning a fresh response for every request."""

    def handler(request: httpx.Request) -> httpx.Response:
        if text is not None:
            return httpx.Response(status, text=text)
        return httpx.Response(status, json=payload)

    return handler


def raise_error(exc_type: type[httpx.TransportError], message: str = "boom"):
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type(message, request=request)

    return handler


class FakeAladinApi:
    """Request recorder behind ``httpx.MockTransport``."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = reply(search_payload())
        self._queued: list[Callable[[httpx.Request], httpx.Response]] = []

    def queue(self, *handlers: Callable[[httpx.Request], httpx.Response]) -> None:
        """Use these handlers for the next requests, then fall back to ``handler``."""
        self._queued.extend(handlers)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self._queued.pop(0) if self._queued else self.handler
        return handler(request)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    @property
    def last_params(self) -> dict[str, str]:
        return dict(self.requests[-1].url.params)


# === Fixtures ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 14, 12, 0, 0).timestamp())


@pytest.fixture
def fake_sleep(clock: FakeClock) -> FakeSleep:
    return FakeSleep(clock)


@pytest.fixture
def api() -> FakeAladinApi:
    return FakeAladinApi()


@pytest.fixture
def classifier() -> ErrorClassifier:
    return ErrorClassifier()


@pytest.fixture
def rate_limiter(clock: FakeClock, fake_sleep: FakeSleep, classifier: ErrorClassifier) -> RateLimiter:
    return RateLimiter(clock=clock, sleep=fake_sleep, classifier=classifier)


@pytest_asyncio.fixture
async def client(
    api: FakeAladinApi,
    clock: FakeClock,
    fake_sleep: FakeSleep,
    classifier: ErrorClassifier,
    rate_limiter: RateLimiter,
) -> AsyncGenerator[AladinApiClient, None]:
    """Client wired to the fake API, also installed as the process-wide client."""
    aladin = AladinApiClient(
        TEST_TTB_KEY,
        cache=ResponseCache(clock=clock),
        rate_limiter=rate_limiter,
        breaker=CircuitBreaker(clock=clock, classifier=classifier),
        classifier=classifier,
        transport=httpx.MockTransport(api),
        sleep=fake_sleep,
    )
    set_client(aladin)
    yield aladin
    reset_client()
    await aladin.aclose()


@pytest.fixture(autouse=True)
def _reset_singletons() -> Generator[None, None, None]:
    reset_config()
    yield
    reset_config()
    reset_client()
    set_category_catalog(None)
