"""Custom exception hierarchy for WCProxy.

Every exception carries the HTTP status code and the client-facing message
used when it escapes a request handler.
"""

from typing import Optional, Dict, Any

from ..constants import (
    INVALID_QUERY_MESSAGE,
    INVALID_UPSTREAM_RESPONSE_MESSAGE,
    UPSTREAM_REQUEST_FAILED_MESSAGE,
)


class WCProxyException(Exception):
    """Base exception for all WCProxy-specific exceptions."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.request_id = request_id
        self.details = details or {}


class InvalidQueryError(WCProxyException):
    """Raised when ``q`` is missing or does not look like a URL."""

    def __init__(
        self,
        query: Optional[str] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(INVALID_QUERY_MESSAGE, 400, request_id, details)
        self.query = query


class UpstreamError(WCProxyException):
    """Base exception for failures talking to the webcache service."""

    def __init__(
        self,
        message: str,
        target_url: Optional[str] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, 500, request_id, details)
        self.target_url = target_url


class UpstreamResponseError(UpstreamError):
    """Raised when the webcache service answers with a non-2xx status."""

    def __init__(
        self,
        upstream_status: int,
        target_url: Optional[str] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            INVALID_UPSTREAM_RESPONSE_MESSAGE, target_url, request_id, details
        )
        self.upstream_status = upstream_status


class UpstreamRequestError(UpstreamError):
    """Raised when the request to the webcache service cannot be completed."""

    def __init__(
        self,
        target_url: Optional[str] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            UPSTREAM_REQUEST_FAILED_MESSAGE, target_url, request_id, details
        )


class ConfigurationError(WCProxyException):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, 500, request_id, details)
        self.config_key = config_key
