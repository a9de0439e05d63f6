"""Request pipeline: query validation, page cache lookup and upstream fetch."""

from typing import Optional, Protocol

from .page_cache import PageCache
from .target_url import is_valid_target_url, normalize_query
from ..domain.exceptions import InvalidQueryError
from ..logging import LogEvent, LogRecord, debug


class PageFetcher(Protocol):
    async def fetch(self, target_url: str, request_id: Optional[str] = None) -> str:
        ...


class CachedPageService:
    """Serves webcache pages, populating the page cache on upstream success.

    Concurrent misses for the same URL may each reach upstream; the last
    successful fetch wins the cache slot.
    """

    def __init__(self, cache: PageCache, fetcher: PageFetcher) -> None:
        self._cache = cache
        self._fetcher = fetcher

    @property
    def cache(self) -> PageCache:
        return self._cache

    def resolve_target_url(self, query: Optional[str]) -> str:
        """Decode and validate the ``q`` parameter.

        Raises:
            InvalidQueryError: If *query* is missing or not URL-shaped
        """
        if query is None:
            raise InvalidQueryError()
        target_url = normalize_query(query)
        if not is_valid_target_url(target_url):
            raise InvalidQueryError(query)
        return target_url

    async def get_page(self, query: Optional[str], request_id: Optional[str] = None) -> str:
        """Return the HTML body of the cached copy of the page named by *query*.

        Raises:
            InvalidQueryError: The query is missing or not a URL
            UpstreamError: The webcache service failed or answered non-2xx
        """
        target_url = self.resolve_target_url(query)

        cached = self._cache.get(target_url)
        if cached is not None:
            debug(
                LogRecord(
                    LogEvent.CACHE_EVENT.value,
                    "Serving page from cache",
                    request_id,
                    {"target_url": target_url, "cache_hit": True},
                )
            )
            return cached

        body = await self._fetcher.fetch(target_url, request_id)
        self._cache.set(target_url, body)
        debug(
            LogRecord(
                LogEvent.CACHE_EVENT.value,
                "Stored page in cache",
                request_id,
                {"target_url": target_url, "entries": len(self._cache)},
            )
        )
        return body
