"""Common FastAPI middleware utilities for the WCProxy HTTP interface."""

import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request
from fastapi.responses import Response

from ...logging import info, LogRecord, LogEvent


async def logging_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Attach request ID and timing headers, and log every request.

    This middleware:
    1. Generates a per-request UUID (``X-Request-ID``)
    2. Measures wall-clock latency (``X-Response-Time-ms``)
    3. Stores both on ``request.state`` for downstream handlers
    4. Emits a ``request_completed`` record for the all-requests log
    """
    if not hasattr(request.state, "request_id"):
        request.state.request_id = str(uuid.uuid4())
    if not hasattr(request.state, "start_time_monotonic"):
        request.state.start_time_monotonic = time.monotonic()

    response = await call_next(request)

    duration_ms = (time.monotonic() - request.state.start_time_monotonic) * 1000
    response.headers["X-Request-ID"] = request.state.request_id
    response.headers["X-Response-Time-ms"] = str(duration_ms)

    info(
        LogRecord(
            event=LogEvent.REQUEST_COMPLETED.value,
            message=f"{request.method} {request.url.path} {response.status_code}",
            request_id=request.state.request_id,
            data={
                "method": request.method,
                "path": request.url.path,
                "query": request.url.query,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "client_ip": request.client.host if request.client else "unknown",
            },
        )
    )
    return response
