"""Enums module for WCProxy.

Contains all enumeration classes used throughout the application.
"""

from enum import StrEnum


class ErrorType(StrEnum):
    """Categories of failed requests, recorded with every failure log entry.

    Attributes:
        INVALID_REQUEST: The ``q`` parameter is missing or not a URL
        RATE_LIMIT: The request-rate limit was exceeded
        UPSTREAM_ERROR: The webcache service failed or answered non-2xx
        API_ERROR: Unexpected internal failure
    """

    INVALID_REQUEST = "invalid_request_error"
    RATE_LIMIT = "rate_limit_error"
    UPSTREAM_ERROR = "upstream_error"
    API_ERROR = "api_error"


class RateLimitScope(StrEnum):
    """How requests are grouped into rate limit buckets."""

    Global = "global"
    Client = "client"
