"""Sliding-window limiter for the evaluation and MFA endpoints.

Attempts are bucketed per session token when one is presented, otherwise per
client IP, and always per path.
"""
import time
from collections import defaultdict, deque
from fastapi import HTTPException, Request, status
from adaptive_auth.core.config import settings
from adaptive_auth.core.security import hash_token
from adaptive_auth.utils.helpers import get_client_ip

# key -> deque of attempt timestamps (monotonic seconds)
_buckets = defaultdict(deque)


def _bucket_key(request: Request) -> str:
    token = request.headers.get(settings.SESSION_TOKEN_HEADER)
    if token:
        caller = "s:" + hash_token(token)[:16]
    else:
        caller = "ip:" + get_client_ip(request)
    return f"{caller}:{request.url.path}"


async def rate_limit(request: Request):
    if not settings.RATE_LIMIT_ENABLED:
        return True

    now = time.monotonic()
    bucket = _buckets[_bucket_key(request)]
    while bucket and bucket[0] <= now - settings.RATE_LIMIT_PERIOD_SECONDS:
        bucket.popleft()

    if len(bucket) >= settings.RATE_LIMIT_REQUESTS:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many attempts. Please wait before trying again.",
        )

    bucket.append(now)
    return True


def reset_rate_limits() -> None:
    _buckets.clear()
