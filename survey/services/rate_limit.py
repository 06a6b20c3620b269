"""Fixed-window rate limiting backed by the Upstash Redis REST API.

Limiting is best effort: without credentials, or when the REST call fails,
the request is allowed and a warning is logged.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    allowed: bool
    remaining: Optional[int] = None
    retry_after: Optional[int] = None


def _call(path: str) -> requests.Response:
    response = requests.get(
        f"{settings.UPSTASH_REDIS_REST_URL}/{path}",
        headers={'Authorization': f"Bearer {settings.UPSTASH_REDIS_REST_TOKEN}"},
        timeout=settings.EXTERNAL_HTTP_TIMEOUT,
    )
    response.raise_for_status()
    return response


def rate_limit(key: str, limit: int = 5, window_seconds: int = 60) -> RateLimitResult:
    """Count one hit for ``key`` in the current window and decide if it is allowed."""

    if not settings.UPSTASH_REDIS_REST_URL or not settings.UPSTASH_REDIS_REST_TOKEN:
        return RateLimitResult(allowed=True)
    now = int(time.time())
    window_key = quote(f"rl:{key}:{now // window_seconds}", safe='')
    try:
        payload = _call(f"incr/{window_key}").json()
        count = int(payload['result'] if isinstance(payload, dict) else payload)
        if count == 1:
            _call(f"expire/{window_key}/{window_seconds}")
    except (requests.RequestException, ValueError, KeyError, TypeError):
        logger.warning("Rate limit check failed for %s; allowing request", key, exc_info=True)
        return RateLimitResult(allowed=True)
    if count > limit:
        return RateLimitResult(allowed=False, retry_after=window_seconds - (now % window_seconds))
    return RateLimitResult(allowed=True, remaining=max(0, limit - count))
