"""
Admin authentication for the storefront backend.

The admin token is presented either as the ``admin_auth`` cookie set by
``POST /admin/login`` or as a ``Bearer`` token.
"""

import logging
import secrets

from fastapi import Depends, Request

from sawtooth.core.config import Settings, get_settings
from sawtooth.core.exceptions import AdminAuthError
from sawtooth.core.rate_limit import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

ADMIN_COOKIE_NAME = "admin_auth"
ADMIN_COOKIE_MAX_AGE = 60 * 60 * 24 * 30


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    nf_ip = request.headers.get("x-nf-client-connection-ip", "")
    if nf_ip:
        return nf_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_presented_token(request: Request) -> str:
    cookie_token = request.cookies.get(ADMIN_COOKIE_NAME)
    if cookie_token:
        return cookie_token

    auth_header = request.headers.get("authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return ""


def tokens_match(presented: str, expected: str) -> bool:
    return secrets.compare_digest(
        (presented or "").encode("utf8"),
        (expected or "").encode("utf8"),
    )


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    """The process-wide limiter lives on app.state so tests can swap it."""
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        settings = get_settings()
        limiter = FixedWindowRateLimiter(
            limit=settings.ADMIN_RATE_LIMIT,
            window_seconds=settings.ADMIN_RATE_WINDOW_SECONDS,
        )
        request.app.state.rate_limiter = limiter
    return limiter


def require_admin(
    request: Request,
    settings: Settings = Depends(get_settings),
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
) -> str:
    """
    Dependency that rejects the request unless the admin token is presented.
    Usage: @router.get("/", dependencies=[Depends(require_admin)])
    """
    if not settings.ADMIN_TOKEN:
        raise AdminAuthError("Missing ADMIN_TOKEN env var.", status_code=500)

    client_ip = get_client_ip(request)
    limiter.hit(client_ip)

    presented = get_presented_token(request)
    if not presented or not tokens_match(presented, settings.ADMIN_TOKEN):
        logger.info("Rejected admin request from %s", client_ip)
        raise AdminAuthError("Unauthorized")

    return "admin"
