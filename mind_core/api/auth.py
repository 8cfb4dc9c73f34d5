"""
Authentication & Client Identity
================================

Bearer-token auth and rate-limit keys for the mindCore API.

Token resolution order:
1. ``Authorization: Bearer <token>`` header
2. ``access_token`` query parameter

When no API token is configured every request is accepted.
"""

import secrets
from typing import Callable, Optional

from fastapi import Header, HTTPException, Query, Request

from ..errors import RateLimitExceeded
from ..ratelimit import RateLimiter, client_key


def extract_bearer_token(header: Optional[str]) -> str:
    """Token from an Authorization header value, or '' if not a bearer header."""
    header = (header or "").strip()
    if len(header) < 7 or header[:6].lower() != "bearer":
        return ""
    return header[6:].strip()


def resolve_request_token(authorization: Optional[str], access_token: Optional[str] = None) -> str:
    return extract_bearer_token(authorization) or (access_token or "")


def token_matches(supplied: str, expected: str) -> bool:
    return bool(supplied) and secrets.compare_digest(supplied, expected)


# ============================================================================
# FASTAPI INTEGRATION
# ============================================================================

def require_client_dependency(api_token: str, limiter: Optional[RateLimiter]) -> Callable:
    """
    FastAPI dependency that checks the API token (when configured), then
    applies the per-client rate limit.

    Raises 401 on a bad or missing token; RateLimitExceeded when over limit.
    Returns the client key.
    """

    def _require_client(
        request: Request,
        authorization: Optional[str] = Header(None),
        access_token: Optional[str] = Query(None),
    ) -> str:
        token = resolve_request_token(authorization, access_token)

        if api_token and not token_matches(token, api_token):
            raise HTTPException(status_code=401, detail="unauthorized")

        key = client_key(token, request.client.host if request.client else None)
        if limiter is not None and not limiter.acquire(key):
            raise RateLimitExceeded(retry_after=limiter.get_retry_after(key))
        return key

    return _require_client
