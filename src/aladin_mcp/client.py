"""
Aladin Open API client.

Every endpoint call goes through one pipeline, ``AladinApiClient.execute``:

    validate -> cache lookup -> quota/throttle -> circuit breaker
    -> HTTP GET with retry -> normalize -> cache store -> usage record

A cache hit is free: it touches neither the quota nor the breaker. Any
failure leaves the pipeline as a ``StandardError``; raw httpx or pydantic
exceptions never escape.

The endpoint methods (``search_books``, ``get_book_details``, ...) only
shape parameters before calling ``execute``.
"""

import asyncio
import json
import logging
import random
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base, wait_exponential

from . import constants as c
from .breaker import CircuitBreaker
from .cache import ResponseCache, make_cache_key
from .config import get_config
from .errors import ErrorClassifier, StandardError, default_classifier
from .models.book import BookItem, ListResult, LookupResult, SearchResult
from .observability.api_logging import ApiCallLogger
from .observability.context import trace_api_call
from .observability.metrics import record_api_call, record_cache_lookup, record_retry
from .rate_limiter import RateLimiter
from .validators import (
    ValidationResult,
    validate_list_params,
    validate_lookup_params,
    validate_search_params,
    validate_ttb_key,
)

logger = logging.getLogger(__name__)


# =============================================================================
# ENDPOINTS
# =============================================================================


def _identity(params: dict[str, Any]) -> dict[str, Any]:
    return params


def _lookup_wire_params(params: dict[str, Any]) -> dict[str, Any]:
    """Map ItemId/ISBN/ISBN13 to the ``ItemId`` + ``ItemIdType`` pair the API expects."""
    wire = {k: v for k, v in params.items() if k not in ("ItemId", "ISBN", "ISBN13")}
    if params.get("ItemId") is not None:
        wire["ItemId"], wire["ItemIdType"] = str(params["ItemId"]), "ItemId"
    elif params.get("ISBN13") is not None:
        wire["ItemId"], wire["ItemIdType"] = str(params["ISBN13"]).replace("-", ""), "ISBN13"
    else:
        isbn = str(params["ISBN"]).replace("-", "")
        wire["ItemId"], wire["ItemIdType"] = isbn, "ISBN13" if len(isbn) == 13 else "ISBN"
    return wire


@dataclass(frozen=True)
class Endpoint:
    """Static description of one upstream operation."""

    name: str
    path: str
    ttl: float
    validator: Callable[[Mapping[str, Any]], ValidationResult]
    result_model: type[BaseModel]
    to_wire: Callable[[dict[str, Any]], dict[str, Any]] = field(default=_identity)


SEARCH = Endpoint("search", c.SEARCH_PATH, c.SEARCH_TTL, validate_search_params, SearchResult)
LOOKUP = Endpoint(
    "lookup", c.LOOKUP_PATH, c.LOOKUP_TTL, validate_lookup_params, LookupResult, _lookup_wire_params
)
BESTSELLER = Endpoint("bestseller", c.LIST_PATH, c.LIST_TTL, validate_list_params, ListResult)
NEW_RELEASES = Endpoint("new_releases", c.LIST_PATH, c.LIST_TTL, validate_list_params, ListResult)
ITEM_LIST = Endpoint("item_list", c.LIST_PATH, c.LIST_TTL, validate_list_params, ListResult)


# =============================================================================
# RETRY POLICY
# =============================================================================


class JitteredBackoff(wait_base):
    """Exponential backoff plus up to ``jitter_ratio`` of the delay, capped at ``cap``."""

    def __init__(
        self,
        initial: float,
        multiplier: float,
        cap: float,
        jitter_ratio: float = c.RETRY_JITTER_RATIO,
    ) -> None:
        self._backoff = wait_exponential(multiplier=initial, exp_base=multiplier)
        self._cap = cap
        self._jitter_ratio = jitter_ratio

    def __call__(self, retry_state: RetryCallState) -> float:
        base = float(self._backoff(retry_state))
        return min(base + random.uniform(0, self._jitter_ratio * base), self._cap)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, StandardError) and exc.retryable


# =============================================================================
# CLIENT
# =============================================================================


class AladinApiClient:
    """Async client for the Aladin Open API.

    Collaborators are injectable for tests; by default the client owns a
    fresh cache, rate limiter, breaker and ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        ttb_key: str,
        *,
        cache: ResponseCache | None = None,
        rate_limiter: RateLimiter | None = None,
        breaker: CircuitBreaker | None = None,
        classifier: ErrorClassifier | None = None,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        base_url: str = c.API_BASE_URL,
        timeout: float = c.HTTP_TIMEOUT,
        max_retries: int = c.MAX_RETRIES,
        retry_delay: float = c.RETRY_DELAY,
        retry_multiplier: float = c.RETRY_MULTIPLIER,
        max_retry_delay: float = c.MAX_RETRY_DELAY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._ttb_key = ttb_key
        self.classifier = classifier or default_classifier
        self.cache = cache or ResponseCache()
        self.rate_limiter = rate_limiter or RateLimiter(classifier=self.classifier)
        self.breaker = breaker or CircuitBreaker(classifier=self.classifier)
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.retry_multiplier = retry_multiplier
        self.max_retry_delay = max_retry_delay
        self._sleep = sleep
        self._api_logger = ApiCallLogger()

        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            headers=c.HTTP_HEADERS,
            transport=transport,
        )

    # =========================================================================
    # PIPELINE
    # =========================================================================

    async def execute(self, endpoint: Endpoint, params: Mapping[str, Any]) -> Any:
        """Run one logical API call through the full pipeline."""
        params = {k: v for k, v in params.items() if v is not None}

        validation = validate_ttb_key(self._ttb_key).merge(endpoint.validator(params))
        if not validation.is_valid:
            raise self.classifier.validation_error(validation.errors)

        cache_key = make_cache_key(endpoint.name, params)
        cached = self.cache.get(cache_key)
        record_cache_lookup(endpoint.name, cached is not None)
        if cached is not None:
            self._api_logger.cache_hit(endpoint.name, params)
            return cached

        await self.rate_limiter.check_before_call(self._ttb_key)
        self.breaker.check_before_call()

        request_id = self._api_logger.start(endpoint.name, params)
        started = time.perf_counter()
        try:
            payload = await self._request_with_retry(endpoint, params, request_id)
            result = endpoint.result_model.model_validate(payload)
        except Exception as exc:
            error = self._to_standard_error(exc, endpoint)
            latency_ms = (time.perf_counter() - started) * 1000
            self.breaker.on_failure()
            self.rate_limiter.record_call(self._ttb_key, success=False, latency_ms=latency_ms)
            record_api_call(endpoint.name, False, latency_ms)
            self._api_logger.failure(
                request_id, endpoint.name, params, latency_ms, error.kind.value, error.message
            )
            if error is exc:
                raise
            raise error from exc

        latency_ms = (time.perf_counter() - started) * 1000
        self.breaker.on_success()
        self.cache.set(cache_key, result, endpoint.ttl)
        self.rate_limiter.record_call(self._ttb_key, success=True, latency_ms=latency_ms)
        record_api_call(endpoint.name, True, latency_ms)
        self._api_logger.success(request_id, endpoint.name, params, latency_ms)
        return result

    def _to_standard_error(self, exc: Exception, endpoint: Endpoint) -> StandardError:
        if isinstance(exc, ValidationError):
            return self.classifier.invalid_response(exc)
        return self.classifier.generic_error(exc, context=endpoint.name)

    def _retrying(self, endpoint: Endpoint, request_id: str) -> AsyncRetrying:
        def before_sleep(retry_state: RetryCallState) -> None:
            attempt = retry_state.attempt_number
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
            error = retry_state.outcome.exception() if retry_state.outcome else None
            reason = error.kind.value if isinstance(error, StandardError) else type(error).__name__
            record_retry(endpoint.name, attempt)
            self._api_logger.retry(request_id, endpoint.name, attempt, delay, reason)

        return AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=JitteredBackoff(self.retry_delay, self.retry_multiplier, self.max_retry_delay),
            retry=retry_if_exception(_is_retryable),
            sleep=self._sleep,
            before_sleep=before_sleep,
            reraise=True,
        )

    async def _request_with_retry(
        self, endpoint: Endpoint, params: dict[str, Any], request_id: str
    ) -> dict[str, Any]:
        async for attempt in self._retrying(endpoint, request_id):
            with attempt:
                number = attempt.retry_state.attempt_number
                with trace_api_call(endpoint.name, endpoint.path, number):
                    return await self._send(endpoint, params)
        raise RuntimeError("retry loop ended without a result")

    async def _send(self, endpoint: Endpoint, params: dict[str, Any]) -> dict[str, Any]:
        query = self._build_query(endpoint.to_wire(dict(params)))
        try:
            response = await self._http.get(endpoint.path, params=query)
        except httpx.TransportError as exc:
            raise self.classifier.network_error(exc) from exc
        return self._parse(response)

    def _build_query(self, params: dict[str, Any]) -> dict[str, str]:
        query = {"TTBKey": self._ttb_key, "Version": c.API_VERSION, "Output": c.OUTPUT_FORMAT}
        for name, value in params.items():
            if isinstance(value, list | tuple):
                query[name] = ",".join(str(v) for v in value)
            else:
                query[name] = str(value)
        return query

    def _parse(self, response: httpx.Response) -> dict[str, Any]:
        """Decode a JS-output body and surface Aladin error payloads."""
        text = response.text.strip()
        # JS output is a JSON object optionally followed by ';'
        if text.endswith(";"):
            text = text[:-1].rstrip()

        data: Any = None
        parse_error: ValueError | None = None
        if text:
            try:
                data = json.loads(text, strict=False)
            except ValueError as exc:
                parse_error = exc

        if isinstance(data, dict) and "errorCode" in data:
            try:
                code = int(data["errorCode"])
            except (TypeError, ValueError):
                code = -1
            raise self.classifier.upstream_error(code, data.get("errorMessage"))

        if not response.is_success:
            raise self.classifier.http_status_error(response.status_code, text)

        if not isinstance(data, dict):
            raise self.classifier.invalid_response(
                parse_error or ValueError("response body is not a JSON object"), text
            )
        return data

    # =========================================================================
    # ENDPOINT METHODS
    # =========================================================================

    async def search_books(self, params: Mapping[str, Any]) -> SearchResult:
        """ItemSearch.aspx."""
        return await self.execute(SEARCH, params)

    async def get_book_details(self, params: Mapping[str, Any]) -> BookItem | None:
        """ItemLookUp.aspx; ``None`` when the identifier matches nothing."""
        result: LookupResult = await self.execute(LOOKUP, params)
        return result.book

    async def get_bestseller_list(self, params: Mapping[str, Any] | None = None) -> ListResult:
        return await self.execute(BESTSELLER, {**(params or {}), "QueryType": "Bestseller"})

    async def get_new_releases_list(self, params: Mapping[str, Any] | None = None) -> ListResult:
        params = dict(params or {})
        query_type = params.get("QueryType") or "NewBook"
        if query_type not in c.NEW_RELEASE_QUERY_TYPES:
            raise self.classifier.validation_error(
                [f"신간 리스트 종류는 {', '.join(c.NEW_RELEASE_QUERY_TYPES)} 중 하나여야 합니다."]
            )
        params["QueryType"] = query_type
        return await self.execute(NEW_RELEASES, params)

    async def get_item_list(self, params: Mapping[str, Any]) -> ListResult:
        return await self.execute(ITEM_LIST, params)

    # =========================================================================
    # MANAGEMENT
    # =========================================================================

    @property
    def ttb_key(self) -> str:
        return self._ttb_key

    def set_ttb_key(self, ttb_key: str) -> None:
        validation = validate_ttb_key(ttb_key)
        if not validation.is_valid:
            raise self.classifier.validation_error(validation.errors)
        self._ttb_key = ttb_key
        logger.info("TTB key updated (%s***)", ttb_key[:6])

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_api_usage_stats(self) -> dict[str, Any]:
        return {
            "usage": self.rate_limiter.get_usage_stats(self._ttb_key),
            "metrics": self.rate_limiter.get_metrics(self._ttb_key),
            "cache": self.cache.stats(),
            "breaker": {
                "state": self.breaker.state,
                "consecutive_failures": self.breaker.consecutive_failures,
            },
            "errors": self.classifier.metrics(),
        }

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> "AladinApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


# =============================================================================
# PROCESS-WIDE CLIENT
# =============================================================================


class _ClientStore:
    """Internal storage for the client singleton."""

    _instance: AladinApiClient | None = None


def get_client() -> AladinApiClient:
    """Get or create the process-wide client from configuration."""
    if _ClientStore._instance is None:  # type: ignore[reportPrivateUsage]
        _ClientStore._instance = AladinApiClient(get_config().require_ttb_key())  # type: ignore[reportPrivateUsage]
    return _ClientStore._instance  # type: ignore[reportPrivateUsage]


def set_client(client: AladinApiClient | None) -> None:
    _ClientStore._instance = client  # type: ignore[reportPrivateUsage]


def reset_client() -> None:
    """Drop the process-wide client (useful for testing)."""
    _ClientStore._instance = None  # type: ignore[reportPrivateUsage]


async def close_client() -> None:
    client, _ClientStore._instance = _ClientStore._instance, None  # type: ignore[reportPrivateUsage]
    if client is not None:
        await client.aclose()
