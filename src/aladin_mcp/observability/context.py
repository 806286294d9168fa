"""Context managers for tracing upstream API calls."""

from contextlib import contextmanager

from . import logfire


@contextmanager
def trace_api_call(endpoint: str, path: str, attempt: int = 1):
    """Span around a single HTTP attempt against the Aladin API."""
    with logfire.span(
        f"aladin.api.{endpoint}",
        api_endpoint=endpoint,
        api_path=path,
        api_attempt=attempt,
        api_system="aladin",
    ) as span:
        try:
            yield span
        except Exception as e:
            span.set_attribute("api.error", str(e))
            raise
