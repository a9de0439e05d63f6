"""Constants module for WCProxy.

Contains the fixed upstream endpoint, identifying user agent, response header
values, error messages and configuration defaults.
"""

from typing import Final

# Configuration defaults
DEFAULT_PORT: Final[int] = 3000
DEFAULT_CACHE_TTL_MS: Final[int] = 60 * 60 * 1000
DEFAULT_CACHE_MAX_ENTRIES: Final[int] = 100
DEFAULT_QPS_LIMIT: Final[int] = 20
DEFAULT_RATE_LIMIT_WINDOW_SECONDS: Final[float] = 1.0
DEFAULT_UPSTREAM_TIMEOUT_SECONDS: Final[float] = 5.0

# Upstream cache viewer
UPSTREAM_BASE_URL: Final[str] = "https://webcache.googleusercontent.com/search"
UPSTREAM_USER_AGENT: Final[str] = (
    "Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; "
    "GPTBot/1.0; +https://openai.com/gptbot)"
)

# Prefix accepted on the query and re-added when calling upstream
CACHE_QUERY_PREFIX: Final[str] = "cache:"

# Longest normalized query the URL pattern is matched against
MAX_TARGET_URL_LENGTH: Final[int] = 2048

# Headers set on every successful page response
PAGE_CACHE_CONTROL: Final[str] = "public, max-age=86400"
PAGE_CONTENT_TYPE: Final[str] = "text/html; charset=UTF-8"

# Client-facing error messages
INVALID_QUERY_MESSAGE: Final[str] = "Invalid query url"
INVALID_UPSTREAM_RESPONSE_MESSAGE: Final[str] = "Invalid response from google webcache"
UPSTREAM_REQUEST_FAILED_MESSAGE: Final[str] = "Failed to request google webcache"
RATE_LIMIT_MESSAGE: Final[str] = "rate-limit reached"
INTERNAL_ERROR_MESSAGE: Final[str] = "Internal Server Error"
