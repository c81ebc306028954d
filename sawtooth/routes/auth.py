import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from sawtooth.core.config import Settings, get_settings
from sawtooth.core.exceptions import AdminAuthError
from sawtooth.core.security import ADMIN_COOKIE_MAX_AGE, ADMIN_COOKIE_NAME, tokens_match

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["auth"])

NO_STORE = {"Cache-Control": "no-store"}


@router.post("/login")
async def admin_login(
    body: Optional[Dict[str, Any]] = Body(default=None),
    settings: Settings = Depends(get_settings),
):
    """Exchange the admin token for an HttpOnly cookie."""
    if not settings.ADMIN_TOKEN:
        raise AdminAuthError("Missing ADMIN_TOKEN env var.", status_code=500)

    token = str((body or {}).get("token") or "")
    if not tokens_match(token, settings.ADMIN_TOKEN):
        raise AdminAuthError("Invalid token.")

    response = JSONResponse({"ok": True}, headers=NO_STORE)
    response.set_cookie(
        ADMIN_COOKIE_NAME,
        settings.ADMIN_TOKEN,
        max_age=ADMIN_COOKIE_MAX_AGE,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
    return response


@router.post("/logout")
async def admin_logout():
    response = JSONResponse({"ok": True}, headers=NO_STORE)
    response.delete_cookie(ADMIN_COOKIE_NAME, path="/", httponly=True, samesite="lax")
    return response
