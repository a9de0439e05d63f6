from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from ...config import Settings
from ...constants import INTERNAL_ERROR_MESSAGE, INVALID_QUERY_MESSAGE
from ...domain.exceptions import WCProxyException
from ...enums import ErrorType
from ...logging import (
    init_logging,
    error as log_error,
    info as log_info,
    LogRecord,
    LogEvent,
)
from ...application.page_cache import PageCache
from ...application.page_service import CachedPageService
from ...infrastructure.webcache_client import WebCacheClient
from .errors import error_type_for_exception, log_and_return_error_response
from .guardrails import RateLimitMiddleware
from .middleware import logging_middleware
from .routes.pages import router as pages_router


def create_app(settings: Settings) -> FastAPI:
    """Creates and configures the FastAPI application instance.

    Initializes logging, installs the rate limiter and request logging
    middleware, and registers the page route. The page cache, upstream
    client and page service are constructed when the application starts and
    torn down when it stops.

    Args:
        settings: Configuration settings object

    Returns:
        Fully configured FastAPI application instance
    """
    init_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        page_cache = PageCache(
            max_entries=settings.cache_max_entries,
            ttl_seconds=settings.cache_ttl_seconds,
        )
        webcache_client = WebCacheClient.from_settings(settings)
        app.state.page_cache = page_cache
        app.state.webcache_client = webcache_client
        app.state.page_service = CachedPageService(page_cache, webcache_client)

        log_info(
            LogRecord(
                event=LogEvent.SERVER_LIFECYCLE.value,
                message=f"Server is listening on port {settings.port}.",
                data={
                    "host": settings.host,
                    "port": settings.port,
                    "cache_max_entries": settings.cache_max_entries,
                    "cache_ttl_seconds": settings.cache_ttl_seconds,
                    "qps_limit": settings.qps_limit,
                    "rate_limit_enabled": settings.rate_limit_enabled,
                },
            )
        )

        try:
            yield
        finally:
            log_info(
                LogRecord(
                    event=LogEvent.SERVER_LIFECYCLE.value,
                    message="Initiating application shutdown",
                )
            )
            log_info(
                LogRecord(
                    event=LogEvent.CACHE_EVENT.value,
                    message="Page cache statistics at shutdown",
                    data=page_cache.get_stats(),
                )
            )
            try:
                await webcache_client.close()
            except Exception as e:
                log_error(
                    LogRecord(
                        event=LogEvent.SERVER_LIFECYCLE.value,
                        message="Failed to close webcache client",
                    ),
                    exc=e,
                )
            page_cache.clear()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        description="Serves Google webcache copies of pages with an in-memory TTL cache.",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Logging middleware is registered last so it wraps the rate limiter.
    if settings.rate_limit_enabled:
        log_info(
            LogRecord(
                event=LogEvent.SERVER_LIFECYCLE.value,
                message="Rate limiting enabled",
                data={
                    "qps_limit": settings.qps_limit,
                    "window_seconds": settings.rate_limit_window_seconds,
                    "scope": settings.rate_limit_scope,
                },
            )
        )
        app.add_middleware(
            RateLimitMiddleware,
            max_requests=settings.qps_limit,
            window_seconds=settings.rate_limit_window_seconds,
            scope=settings.rate_limit_scope,
        )
    app.middleware("http")(logging_middleware)

    app.include_router(pages_router, tags=["Pages"])

    @app.exception_handler(WCProxyException)
    async def wcproxy_exception_handler(request: Request, exc: WCProxyException):
        return await log_and_return_error_response(
            request,
            exc.status_code,
            error_type_for_exception(exc),
            exc.message,
            caught_exception=exc,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ):
        return await log_and_return_error_response(
            request,
            400,
            ErrorType.INVALID_REQUEST,
            INVALID_QUERY_MESSAGE,
            caught_exception=exc,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        return await log_and_return_error_response(
            request,
            500,
            ErrorType.API_ERROR,
            INTERNAL_ERROR_MESSAGE,
            caught_exception=exc,
        )

    return app
