"""Error taxonomy and classification for Aladin API calls.

Every failure that leaves the request pipeline is a ``StandardError``. The
``ErrorClassifier`` builds them from the three kinds of raw failure the
pipeline sees:

- Aladin error codes returned in a response body (``errorCode``)
- transport failures raised by httpx (refused, DNS, timeouts)
- non-2xx HTTP statuses

plus the failures the pipeline produces itself (validation, quota,
throttling, open breaker). Messages and suggestions are Korean because they
are shown to end users of Korean-language catalog tools.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import httpx

from .observability.metrics import record_error

logger = logging.getLogger(__name__)


# =============================================================================
# TAXONOMY
# =============================================================================


class ErrorKind(str, Enum):
    """Error kinds visible to callers of the pipeline."""

    INVALID_PARAMETER = "InvalidParameter"
    DAILY_LIMIT_EXCEEDED = "DailyLimitExceeded"
    RATE_LIMITED = "RateLimited"
    BURST_LIMIT_EXCEEDED = "BurstLimitExceeded"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    UPSTREAM_API_ERROR = "UpstreamApiError"
    NETWORK_ERROR = "NetworkError"
    HTTP_STATUS_ERROR = "HttpStatusError"
    SYSTEM_ERROR = "SystemError"


class ErrorCategory(str, Enum):
    AUTHENTICATION = "authentication"
    PARAMETER = "parameter"
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    API_RESPONSE = "api_response"
    SYSTEM = "system"
    VALIDATION = "validation"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorDetail:
    """Classification metadata for one table entry."""

    category: ErrorCategory
    severity: ErrorSeverity
    retryable: bool
    message: str
    suggestion: str


# =============================================================================
# CLASSIFICATION TABLES
# =============================================================================

UPSTREAM_ERRORS: dict[int, ErrorDetail] = {
    100: ErrorDetail(
        ErrorCategory.AUTHENTICATION,
        ErrorSeverity.HIGH,
        False,
        "잘못된 TTB 키입니다. API 키를 확인해 주세요.",
        "TTB 키가 올바른지 확인하고, 알라딘에서 발급받은 정확한 키를 사용해 주세요.",
    ),
    200: ErrorDetail(
        ErrorCategory.PARAMETER,
        ErrorSeverity.MEDIUM,
        False,
        "필수 파라미터가 누락되었습니다.",
        "요청에 필요한 모든 필수 파라미터를 포함해 주세요.",
    ),
    300: ErrorDetail(
        ErrorCategory.PARAMETER,
        ErrorSeverity.MEDIUM,
        False,
        "잘못된 파라미터 값입니다.",
        "파라미터 값의 형식과 범위를 확인해 주세요.",
    ),
    900: ErrorDetail(
        ErrorCategory.SYSTEM,
        ErrorSeverity.HIGH,
        True,
        "시스템 오류가 발생했습니다. 잠시 후 다시 시도해 주세요.",
        "일시적인 서버 오류일 수 있습니다. 잠시 기다린 후 다시 요청해 주세요.",
    ),
    901: ErrorDetail(
        ErrorCategory.RATE_LIMIT,
        ErrorSeverity.CRITICAL,
        False,
        "일일 호출 한도(5,000회)를 초과했습니다. 내일 다시 시도해 주세요.",
        "API 사용량을 확인하고 내일 다시 시도해 주세요. 필요시 추가 키를 발급받아 사용하세요.",
    ),
}

NETWORK_ERRORS: dict[str, ErrorDetail] = {
    "ECONNREFUSED": ErrorDetail(
        ErrorCategory.NETWORK,
        ErrorSeverity.HIGH,
        True,
        "서버에 연결할 수 없습니다.",
        "네트워크 연결을 확인하고 잠시 후 다시 시도해 주세요.",
    ),
    "ENOTFOUND": ErrorDetail(
        ErrorCategory.NETWORK,
        ErrorSeverity.HIGH,
        True,
        "서버를 찾을 수 없습니다.",
        "인터넷 연결을 확인하고 DNS 설정을 점검해 주세요.",
    ),
    "ECONNABORTED": ErrorDetail(
        ErrorCategory.NETWORK,
        ErrorSeverity.MEDIUM,
        True,
        "요청 시간이 초과되었습니다.",
        "네트워크 상태를 확인하고 다시 시도해 주세요.",
    ),
    "ETIMEDOUT": ErrorDetail(
        ErrorCategory.NETWORK,
        ErrorSeverity.MEDIUM,
        True,
        "요청 시간이 초과되었습니다.",
        "서버 응답이 지연되고 있습니다. 잠시 후 다시 시도해 주세요.",
    ),
}

_GENERIC_NETWORK_ERROR = ErrorDetail(
    ErrorCategory.NETWORK,
    ErrorSeverity.MEDIUM,
    True,
    "네트워크 오류가 발생했습니다.",
    "네트워크 연결을 확인하고 잠시 후 다시 시도해 주세요.",
)

HTTP_STATUS_ERRORS: dict[int, ErrorDetail] = {
    400: ErrorDetail(
        ErrorCategory.PARAMETER,
        ErrorSeverity.MEDIUM,
        False,
        "잘못된 요청입니다.",
        "요청 파라미터를 확인해 주세요.",
    ),
    401: ErrorDetail(
        ErrorCategory.AUTHENTICATION,
        ErrorSeverity.HIGH,
        False,
        "인증에 실패했습니다.",
        "TTB 키를 확인해 주세요.",
    ),
    403: ErrorDetail(
        ErrorCategory.AUTHENTICATION,
        ErrorSeverity.HIGH,
        False,
        "접근이 거부되었습니다.",
        "API 사용 권한을 확인해 주세요.",
    ),
    404: ErrorDetail(
        ErrorCategory.API_RESPONSE,
        ErrorSeverity.MEDIUM,
        False,
        "요청한 리소스를 찾을 수 없습니다.",
        "요청 URL과 파라미터를 확인해 주세요.",
    ),
    429: ErrorDetail(
        ErrorCategory.RATE_LIMIT,
        ErrorSeverity.HIGH,
        True,
        "API 호출 빈도 제한을 초과했습니다.",
        "잠시 후 다시 시도해 주세요.",
    ),
    500: ErrorDetail(
        ErrorCategory.SYSTEM,
        ErrorSeverity.HIGH,
        True,
        "서버 내부 오류가 발생했습니다.",
        "서버에 일시적인 문제가 있습니다. 잠시 후 다시 시도해 주세요.",
    ),
    502: ErrorDetail(
        ErrorCategory.NETWORK,
        ErrorSeverity.HIGH,
        True,
        "게이트웨이 오류가 발생했습니다.",
        "서버 연결에 문제가 있습니다. 잠시 후 다시 시도해 주세요.",
    ),
    503: ErrorDetail(
        ErrorCategory.SYSTEM,
        ErrorSeverity.HIGH,
        True,
        "서비스를 사용할 수 없습니다.",
        "서버가 일시적으로 과부하 상태입니다. 잠시 후 다시 시도해 주세요.",
    ),
    504: ErrorDetail(
        ErrorCategory.NETWORK,
        ErrorSeverity.HIGH,
        True,
        "게이트웨이 시간 초과가 발생했습니다.",
        "서버 응답이 지연되고 있습니다. 잠시 후 다시 시도해 주세요.",
    ),
}

# Substrings httpx/OS resolvers use for name resolution failures
_DNS_FAILURE_MARKERS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "temporary failure in name resolution",
    "no address associated",
)


# =============================================================================
# STANDARD ERROR
# =============================================================================


class StandardError(Exception):
    """The single error representation crossing the pipeline boundary.

    Raised inside the pipeline and converted to a tool response envelope by
    the tool layer. Attributes are set once in ``__init__`` and never
    reassigned.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        retryable: bool = False,
        suggestion: str = "",
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.category = category
        self.severity = severity
        self.retryable = retryable
        self.suggestion = suggestion
        self.cause = cause
        self.details = details or {}
        self.timestamp = timestamp or datetime.now(UTC)

    def __repr__(self) -> str:
        return f"StandardError(kind={self.kind.value!r}, message={self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for tool responses and structured logs."""
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "suggestion": self.suggestion,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.details:
            data["details"] = self.details
        return data


# =============================================================================
# CLASSIFIER
# =============================================================================


class ErrorClassifier:
    """Maps raw failures to ``StandardError`` and keeps per-class counts."""

    def __init__(self) -> None:
        self._metrics: dict[str, int] = {}

    # --- upstream / transport / HTTP ---------------------------------------

    def upstream_error(self, code: int, message: str | None = None) -> StandardError:
        """Classify an ``errorCode`` returned in an Aladin response body."""
        detail = UPSTREAM_ERRORS.get(code)
        if detail is None:
            logger.warning("Unknown Aladin error code %s: %s", code, message)
            return self._build(
                ErrorKind.SYSTEM_ERROR,
                ErrorDetail(
                    ErrorCategory.SYSTEM,
                    ErrorSeverity.HIGH,
                    False,
                    f"알 수 없는 API 오류가 발생했습니다 (코드: {code}).",
                    "문제가 지속되면 관리자에게 문의해 주세요.",
                ),
                message_override=message,
                details={"code": code, "upstream_message": message},
            )
        kind = ErrorKind.DAILY_LIMIT_EXCEEDED if code == 901 else ErrorKind.UPSTREAM_API_ERROR
        return self._build(
            kind,
            detail,
            details={"code": code, "upstream_message": message},
        )

    def network_error(self, exc: BaseException) -> StandardError:
        """Classify an httpx transport failure."""
        code = self._network_code(exc)
        detail = NETWORK_ERRORS.get(code, _GENERIC_NETWORK_ERROR) if code else _GENERIC_NETWORK_ERROR
        return self._build(
            ErrorKind.NETWORK_ERROR,
            detail,
            cause=exc,
            details={"code": code, "error_type": type(exc).__name__},
        )

    def http_status_error(self, status: int, body: str | None = None) -> StandardError:
        """Classify a non-2xx response that carried no Aladin error code."""
        detail = HTTP_STATUS_ERRORS.get(status)
        if detail is None:
            retryable = status >= 500 or status == 429
            detail = ErrorDetail(
                ErrorCategory.SYSTEM,
                ErrorSeverity.HIGH if status >= 500 else ErrorSeverity.MEDIUM,
                retryable,
                f"HTTP {status} 오류가 발생했습니다.",
                "잠시 후 다시 시도해 주세요." if retryable else "요청 내용을 확인해 주세요.",
            )
        details: dict[str, Any] = {"status": status}
        if body:
            details["body"] = body[:200]
        return self._build(ErrorKind.HTTP_STATUS_ERROR, detail, details=details)

    def invalid_response(self, exc: BaseException, body: str | None = None) -> StandardError:
        """Classify a 2xx body that could not be parsed as an Aladin response."""
        details: dict[str, Any] = {"error_type": type(exc).__name__}
        if body:
            details["body"] = body[:200]
        return self._build(
            ErrorKind.UPSTREAM_API_ERROR,
            ErrorDetail(
                ErrorCategory.API_RESPONSE,
                ErrorSeverity.MEDIUM,
                False,
                "API 응답을 해석할 수 없습니다.",
                "알라딘 API 응답 형식이 변경되었을 수 있습니다. 관리자에게 문의해 주세요.",
            ),
            cause=exc,
            details=details,
        )

    # --- pipeline-produced failures ----------------------------------------

    def validation_error(self, errors: list[str]) -> StandardError:
        return self._build(
            ErrorKind.INVALID_PARAMETER,
            ErrorDetail(
                ErrorCategory.VALIDATION,
                ErrorSeverity.LOW,
                False,
                f"입력값 검증 실패: {', '.join(errors)}",
                "입력값을 확인하고 다시 시도해 주세요.",
            ),
            details={"errors": list(errors)},
        )

    def daily_limit_exceeded(self, used: int, limit: int) -> StandardError:
        return self._build(
            ErrorKind.DAILY_LIMIT_EXCEEDED,
            ErrorDetail(
                ErrorCategory.RATE_LIMIT,
                ErrorSeverity.CRITICAL,
                False,
                f"일일 호출 한도({limit:,}회)를 초과했습니다. 내일 다시 시도해 주세요.",
                "API 사용량을 확인하고 내일 다시 시도해 주세요.",
            ),
            details={"used": used, "limit": limit},
        )

    def rate_limited(self, retry_after: float) -> StandardError:
        return self._build(
            ErrorKind.RATE_LIMITED,
            ErrorDetail(
                ErrorCategory.RATE_LIMIT,
                ErrorSeverity.MEDIUM,
                True,
                f"요청 빈도 제한 중입니다. {retry_after:.1f}초 후 다시 시도해 주세요.",
                "요청 간격을 늘려 주세요.",
            ),
            details={"retry_after": round(retry_after, 3)},
        )

    def burst_limit_exceeded(self, retry_after: float) -> StandardError:
        return self._build(
            ErrorKind.BURST_LIMIT_EXCEEDED,
            ErrorDetail(
                ErrorCategory.RATE_LIMIT,
                ErrorSeverity.MEDIUM,
                True,
                "짧은 시간에 너무 많은 요청이 발생했습니다.",
                f"{retry_after:.1f}초 후 다시 시도해 주세요.",
            ),
            details={"retry_after": round(retry_after, 3)},
        )

    def service_unavailable(self, retry_after: float) -> StandardError:
        return self._build(
            ErrorKind.SERVICE_UNAVAILABLE,
            ErrorDetail(
                ErrorCategory.SYSTEM,
                ErrorSeverity.HIGH,
                True,
                "알라딘 API가 일시적으로 응답하지 않아 요청을 중단했습니다.",
                f"{retry_after:.0f}초 후 다시 시도해 주세요.",
            ),
            details={"retry_after": round(retry_after, 3)},
        )

    # --- catch-alls ---------------------------------------------------------

    def generic_error(self, exc: BaseException, context: str | None = None) -> StandardError:
        """Convert any exception into a ``StandardError``."""
        if isinstance(exc, StandardError):
            return exc
        if isinstance(exc, httpx.TransportError):
            return self.network_error(exc)
        details: dict[str, Any] = {"error_type": type(exc).__name__}
        if context:
            details["context"] = context
        return self._build(
            ErrorKind.SYSTEM_ERROR,
            ErrorDetail(
                ErrorCategory.SYSTEM,
                ErrorSeverity.HIGH,
                False,
                f"예상하지 못한 오류가 발생했습니다: {exc}",
                "문제가 지속되면 관리자에게 문의해 주세요.",
            ),
            cause=exc,
            details=details,
        )

    def tool_error(self, tool_name: str, exc: BaseException) -> StandardError:
        return self.generic_error(exc, context=f"tool:{tool_name}")

    # --- reporting ----------------------------------------------------------

    def metrics(self) -> dict[str, int]:
        """Return counts keyed by ``"category:severity"``."""
        return dict(self._metrics)

    def reset_metrics(self) -> None:
        self._metrics.clear()

    @staticmethod
    def user_friendly_message(error: StandardError) -> str:
        if error.suggestion:
            return f"{error.message}\n\n해결 방법: {error.suggestion}"
        return error.message

    # --- internals ----------------------------------------------------------

    def _build(
        self,
        kind: ErrorKind,
        detail: ErrorDetail,
        *,
        message_override: str | None = None,
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> StandardError:
        error = StandardError(
            kind,
            message_override or detail.message,
            category=detail.category,
            severity=detail.severity,
            retryable=detail.retryable,
            suggestion=detail.suggestion,
            cause=cause,
            details={k: v for k, v in (details or {}).items() if v is not None},
        )
        self._record(error)
        return error

    def _record(self, error: StandardError) -> None:
        key = f"{error.category.value}:{error.severity.value}"
        self._metrics[key] = self._metrics.get(key, 0) + 1
        record_error(error.kind.value, error.category.value, error.severity.value)

        level = (
            logging.ERROR
            if error.severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL)
            else logging.WARNING
        )
        logger.log(
            level,
            "Classified %s [%s/%s] retryable=%s: %s (suggestion: %s)",
            error.kind.value,
            error.category.value,
            error.severity.value,
            error.retryable,
            error.message,
            error.suggestion,
        )

    @staticmethod
    def _network_code(exc: BaseException) -> str | None:
        if isinstance(exc, httpx.ConnectTimeout):
            return "ETIMEDOUT"
        if isinstance(exc, httpx.TimeoutException):
            return "ECONNABORTED"
        if isinstance(exc, httpx.ConnectError):
            text = str(exc).lower()
            if any(marker in text for marker in _DNS_FAILURE_MARKERS):
                return "ENOTFOUND"
            return "ECONNREFUSED"
        return None


# Shared instance for callers that do not own a client (tool input checks)
default_classifier = ErrorClassifier()
