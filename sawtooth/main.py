# sawtooth/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sawtooth.core.config import get_settings
from sawtooth.core.exceptions import BaseServiceError
from sawtooth.core.logging_config import configure_logging
from sawtooth.core.rate_limit import FixedWindowRateLimiter
from sawtooth.routes import admin, auth, catalog, checkout, health, opportunities, webhooks
from sawtooth.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    settings = get_settings()
    if settings.ARCHIVE_SCHEDULE_ENABLED:
        await start_scheduler()
    try:
        yield
    finally:
        await stop_scheduler()


app = FastAPI(title="Sawtooth Storefront", lifespan=lifespan)

settings = get_settings()
app.state.rate_limiter = FixedWindowRateLimiter(
    limit=settings.ADMIN_RATE_LIMIT,
    window_seconds=settings.ADMIN_RATE_WINDOW_SECONDS,
)


@app.exception_handler(BaseServiceError)
async def service_error_handler(request: Request, exc: BaseServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={"Cache-Control": "no-store"},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"ok": False, "error": "Invalid request body"})


app.include_router(catalog.router)
app.include_router(checkout.router)
app.include_router(webhooks.router)  # Stripe signs its requests; no admin auth
app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(opportunities.router)
app.include_router(health.router)
