"""Structured logging of upstream API calls with secret masking.

Each pipeline execution gets a request id; the start and end records carry
the endpoint, the masked parameters, latency and outcome. Masking is applied
to field names known to hold secrets and to values that look like TTB keys,
e-mail addresses or phone numbers.
"""

import json
import logging
import re
import uuid
from typing import Any

logger = logging.getLogger("aladin_mcp.api")

SENSITIVE_FIELDS = frozenset({"ttbkey", "ttb_key", "apikey", "api_key", "password", "token", "secret"})

MASK = "***masked***"

_SENSITIVE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\bttb[A-Za-z0-9.]+"), "ttb***"),
    (re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}"), "***@***.***"),
    (re.compile(r"\b\d{3}-\d{3,4}-\d{4}\b"), "***-***-****"),
)


def mask_sensitive(value: Any) -> Any:
    """Return a copy of ``value`` with secrets masked, recursing into containers."""
    if isinstance(value, dict):
        return {
            key: MASK if str(key).lower() in SENSITIVE_FIELDS else mask_sensitive(item)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return type(value)(mask_sensitive(item) for item in value)
    if isinstance(value, str):
        for pattern, replacement in _SENSITIVE_PATTERNS:
            value = pattern.sub(replacement, value)
        return value
    return value


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def format_params(params: dict[str, Any]) -> str:
    """Masked parameters as compact JSON for the log message."""
    return json.dumps(mask_sensitive(params), ensure_ascii=False, sort_keys=True, default=str)


class ApiCallLogger:
    """Emits start/end records for pipeline executions.

    The request id, endpoint and masked parameters are written into the
    message itself and repeated as ``extra`` fields for handlers that keep
    record attributes (Logfire, caplog).
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def start(self, endpoint: str, params: dict[str, Any]) -> str:
        request_id = new_request_id()
        self._log.info(
            "API call %s started: %s params=%s",
            request_id,
            endpoint,
            format_params(params),
            extra={
                "request_id": request_id,
                "endpoint": endpoint,
                "params": mask_sensitive(params),
            },
        )
        return request_id

    def cache_hit(self, endpoint: str, params: dict[str, Any]) -> None:
        self._log.debug(
            "API call served from cache: %s params=%s",
            endpoint,
            format_params(params),
            extra={"endpoint": endpoint, "params": mask_sensitive(params)},
        )

    def retry(self, request_id: str, endpoint: str, attempt: int, delay: float, reason: str) -> None:
        self._log.warning(
            "API call %s to %s attempt %d failed (%s); retrying in %.2fs",
            request_id,
            endpoint,
            attempt,
            reason,
            delay,
            extra={
                "request_id": request_id,
                "endpoint": endpoint,
                "attempt": attempt,
                "delay_s": round(delay, 2),
                "error_kind": reason,
            },
        )

    def success(self, request_id: str, endpoint: str, params: dict[str, Any], latency_ms: float) -> None:
        self._log.info(
            "API call %s to %s succeeded in %.1fms params=%s",
            request_id,
            endpoint,
            latency_ms,
            format_params(params),
            extra={
                "request_id": request_id,
                "endpoint": endpoint,
                "params": mask_sensitive(params),
                "latency_ms": round(latency_ms, 1),
                "outcome": "success",
            },
        )

    def failure(
        self,
        request_id: str,
        endpoint: str,
        params: dict[str, Any],
        latency_ms: float,
        error_kind: str,
        message: str,
    ) -> None:
        self._log.error(
            "API call %s to %s failed in %.1fms with %s: %s params=%s",
            request_id,
            endpoint,
            latency_ms,
            error_kind,
            mask_sensitive(message),
            format_params(params),
            extra={
                "request_id": request_id,
                "endpoint": endpoint,
                "params": mask_sensitive(params),
                "latency_ms": round(latency_ms, 1),
                "outcome": "failure",
                "error_kind": error_kind,
            },
        )
