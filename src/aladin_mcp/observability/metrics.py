"""Custom metrics for the Aladin MCP Server."""

import logfire

# Upstream API metrics
api_call_counter = logfire.metric_counter(
    "aladin.api.calls", description="Aladin API calls by endpoint and outcome"
)

api_call_duration = logfire.metric_histogram(
    "aladin.api.duration_ms", unit="milliseconds", description="Aladin API call latency"
)

api_retry_counter = logfire.metric_counter(
    "aladin.api.retries", description="Retried Aladin API attempts by endpoint"
)

# Cache metrics
cache_lookup_counter = logfire.metric_counter(
    "aladin.cache.lookups", description="Response cache lookups by endpoint and result"
)

# Quota metrics
daily_usage_gauge = logfire.metric_gauge(
    "aladin.quota.daily_usage", description="Calls made today against the daily limit"
)

# Error metrics
error_counter = logfire.metric_counter(
    "aladin.errors", description="Classified errors by kind, category and severity"
)


def record_api_call(endpoint: str, success: bool, duration_ms: float) -> None:
    """Record one completed upstream call."""
    attributes = {"endpoint": endpoint, "outcome": "success" if success else "failure"}
    api_call_counter.add(1, attributes)
    api_call_duration.record(duration_ms, {"endpoint": endpoint})


def record_retry(endpoint: str, attempt: int) -> None:
    api_retry_counter.add(1, {"endpoint": endpoint, "attempt": attempt})


def record_cache_lookup(endpoint: str, hit: bool) -> None:
    cache_lookup_counter.add(1, {"endpoint": endpoint, "result": "hit" if hit else "miss"})


def update_daily_usage(used: int, limit: int) -> None:
    daily_usage_gauge.set(used, {"limit": limit})


def record_error(kind: str, category: str, severity: str) -> None:
    error_counter.add(1, {"kind": kind, "category": category, "severity": severity})
