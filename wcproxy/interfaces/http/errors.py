import time
from typing import Dict, Optional

from fastapi import Request
from fastapi.responses import PlainTextResponse

from ...domain.exceptions import InvalidQueryError, UpstreamError, WCProxyException
from ...enums import ErrorType
from ...logging import error, warning, LogRecord, LogEvent


def error_type_for_exception(exc: Exception) -> ErrorType:
    """Classify an exception escaping the request pipeline."""
    if isinstance(exc, InvalidQueryError):
        return ErrorType.INVALID_REQUEST
    if isinstance(exc, UpstreamError):
        return ErrorType.UPSTREAM_ERROR
    if isinstance(exc, WCProxyException) and exc.status_code < 500:
        return ErrorType.INVALID_REQUEST
    return ErrorType.API_ERROR


async def log_and_return_error_response(
    request: Request,
    status_code: int,
    error_type: ErrorType,
    error_message: str,
    caught_exception: Optional[Exception] = None,
    headers: Optional[Dict[str, str]] = None,
) -> PlainTextResponse:
    """Log a request failure and build the plain-text error response.

    Server errors are logged at ERROR so they reach the error log file;
    client errors are logged at WARNING.
    """
    request_id = getattr(request.state, "request_id", "unknown")
    start_time_mono = getattr(request.state, "start_time_monotonic", time.monotonic())
    duration_ms = (time.monotonic() - start_time_mono) * 1000

    log_data = {
        "status_code": status_code,
        "duration_ms": duration_ms,
        "error_type": error_type.value,
        "client_ip": request.client.host if request.client else "unknown",
        "path": request.url.path,
        "query": request.url.query,
    }
    record = LogRecord(
        event=LogEvent.REQUEST_FAILURE.value,
        message=f"Request failed: {error_message}",
        request_id=request_id,
        data=log_data,
    )
    if status_code >= 500:
        error(record, exc=caught_exception)
    else:
        warning(record)

    return PlainTextResponse(error_message, status_code=status_code, headers=headers)
