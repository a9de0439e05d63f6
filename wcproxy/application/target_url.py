"""Query normalization and target URL validation.

Validation is a single replaceable strategy: :func:`is_valid_target_url`
accepts or rejects a string using :data:`TARGET_URL_PATTERN`. The pattern
is scheme-optional and host-required, with optional path, query and
fragment. ``\\w`` is ASCII-only and the whole string must match. Values
longer than ``MAX_TARGET_URL_LENGTH`` are rejected before matching.
"""

import re
from typing import Final, Pattern
from urllib.parse import unquote

from ..constants import CACHE_QUERY_PREFIX, MAX_TARGET_URL_LENGTH

# Possessive quantifiers keep matching linear. They accept the same strings
# as the greedy form: every host character is also a query character, and
# each run stops at a character the following part cannot start with.
TARGET_URL_PATTERN: Final[Pattern[str]] = re.compile(
    r"((https?://)?(?:[\-;:&=\+\$,\w]++@)?[A-Za-z0-9\.\-]++"
    r"|(?:www\.|[\-;:&=\+\$,\w]++@)[A-Za-z0-9\.\-]++)"
    r"((?:/[\+~%/\.\w\-_]*+)?\??(?:[\-\+=&;%@\.\w_]*+)#?(?:[\.\!/\\\w]*+))?",
    re.ASCII,
)


def normalize_query(query: str) -> str:
    """Percent-decode *query* and strip a leading ``cache:`` prefix.

    ``+`` is kept as-is; only ``%XX`` escapes are decoded.
    """
    decoded = unquote(query)
    if decoded.startswith(CACHE_QUERY_PREFIX):
        return decoded[len(CACHE_QUERY_PREFIX):]
    return decoded


def is_valid_target_url(value: str) -> bool:
    """Return whether *value* is URL-shaped.

    Values longer than :data:`MAX_TARGET_URL_LENGTH` are rejected without
    matching.
    """
    if len(value) > MAX_TARGET_URL_LENGTH:
        return False
    return TARGET_URL_PATTERN.fullmatch(value) is not None
