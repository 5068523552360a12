"""
Time-to-live policy for session documents.

A session's TTL comes from, in priority order:
1. the cookie max-age carried by the session payload (milliseconds),
2. the store's configured TTL override (seconds),
3. one day.
"""

import math
from typing import Any, Optional

ONE_DAY_SECONDS = 86400


def cookie_max_age(payload: Any) -> Optional[Any]:
    """Return ``payload["cookie"]["maxAge"]`` (or ``max_age``) if present."""
    if not isinstance(payload, dict):
        return None
    cookie = payload.get("cookie")
    if not isinstance(cookie, dict):
        return None
    if "maxAge" in cookie:
        return cookie["maxAge"]
    return cookie.get("max_age")


def compute_ttl(ttl_override: Optional[int], max_age_ms: Optional[Any] = None) -> int:
    """
    Compute a session TTL in whole seconds.

    Args:
        ttl_override: Store-level TTL in seconds, or None
        max_age_ms: Cookie max-age in milliseconds; only used when numeric

    Returns:
        TTL in seconds, never negative
    """
    if isinstance(max_age_ms, (int, float)) and not isinstance(max_age_ms, bool) \
            and math.isfinite(max_age_ms):
        return max(0, math.floor(max_age_ms / 1000))
    if ttl_override is not None:
        return ttl_override
    return ONE_DAY_SECONDS
