from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.core.config import Settings, get_settings
from sawtooth.core.exceptions import ValidationError
from sawtooth.dependencies import get_db, get_payment_gateway
from sawtooth.schemas.checkout import CheckoutRequest, CheckoutSessionResponse, SyncSessionRequest
from sawtooth.services.checkout import CheckoutService
from sawtooth.services.payment_gateway import PaymentGateway
from sawtooth.services.payment_notifications import PaymentNotificationHandler

router = APIRouter(prefix="/api/checkout", tags=["checkout"])


@router.post("/session", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    request: Request,
    payload: Optional[CheckoutRequest] = None,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    settings: Settings = Depends(get_settings),
):
    """Validate the cart against current inventory and open a Stripe Checkout session."""
    gateway.require_secret_key()
    service = CheckoutService(db, gateway=gateway, settings=settings)
    base_url = gateway.resolve_base_url(request.headers.get("origin"))
    session = await service.create_checkout_session(
        payload.raw_items() if payload else [], base_url
    )
    return CheckoutSessionResponse(url=session["url"], id=session["id"])


@router.post("/sync-session")
async def sync_checkout_session(
    payload: Optional[SyncSessionRequest] = None,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Success-page reconciliation: settle a paid session if the webhook has not yet."""
    session_id = (payload.session_id if payload else "").strip()
    if not session_id:
        raise ValidationError("Missing sessionId", field="sessionId")
    return await PaymentNotificationHandler(db, gateway).sync_session(session_id)
