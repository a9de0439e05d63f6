"""
Asynchronous client for the Google webcache viewer.
"""

from typing import Optional
from urllib.parse import quote

import httpx

from ..config import Settings
from ..constants import CACHE_QUERY_PREFIX
from ..domain.exceptions import UpstreamRequestError, UpstreamResponseError
from ..logging import LogEvent, LogRecord, debug, info, warning

# Characters left unescaped by JavaScript's encodeURIComponent, besides
# letters, digits and "_.-~" which quote() never escapes.
_URI_COMPONENT_SAFE = "!*'()"


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the pooled httpx client used for upstream requests."""
    limits = httpx.Limits(
        max_connections=settings.pool_max_connections,
        max_keepalive_connections=settings.pool_max_keepalive_connections,
    )
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.upstream_timeout_seconds),
        limits=limits,
        headers={"User-Agent": settings.upstream_user_agent},
        follow_redirects=True,
    )


class WebCacheClient:
    """Fetches cached copies of pages from the webcache service."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        user_agent: str,
    ) -> None:
        self._http_client = http_client
        self._base_url = base_url
        self._user_agent = user_agent

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: Optional[httpx.AsyncClient] = None
    ) -> "WebCacheClient":
        return cls(
            http_client or create_http_client(settings),
            base_url=settings.upstream_base_url,
            user_agent=settings.upstream_user_agent,
        )

    def build_url(self, target_url: str) -> str:
        return (
            f"{self._base_url}?q={CACHE_QUERY_PREFIX}"
            f"{encode_uri_component(target_url)}"
        )

    async def fetch(self, target_url: str, request_id: Optional[str] = None) -> str:
        """Return the webcache body for *target_url*.

        Raises:
            UpstreamResponseError: The service answered with a non-2xx status
            UpstreamRequestError: The request failed before a response arrived
        """
        url = self.build_url(target_url)
        debug(
            LogRecord(
                LogEvent.UPSTREAM_REQUEST.value,
                "Requesting webcache page",
                request_id,
                {"target_url": target_url, "upstream_url": url},
            )
        )
        try:
            response = await self._http_client.get(
                url, headers={"User-Agent": self._user_agent}
            )
        except httpx.HTTPError as e:
            warning(
                LogRecord(
                    LogEvent.UPSTREAM_RESPONSE.value,
                    "Webcache request failed",
                    request_id,
                    {"target_url": target_url},
                ),
                exc=e,
            )
            raise UpstreamRequestError(target_url, request_id) from e

        if not response.is_success:
            warning(
                LogRecord(
                    LogEvent.UPSTREAM_RESPONSE.value,
                    "Webcache returned an unsuccessful status",
                    request_id,
                    {"target_url": target_url, "status_code": response.status_code},
                )
            )
            raise UpstreamResponseError(response.status_code, target_url, request_id)

        info(
            LogRecord(
                LogEvent.UPSTREAM_RESPONSE.value,
                "Webcache page received",
                request_id,
                {
                    "target_url": target_url,
                    "status_code": response.status_code,
                    "size_bytes": len(response.content),
                },
            )
        )
        return response.text

    async def close(self) -> None:
        await self._http_client.aclose()
