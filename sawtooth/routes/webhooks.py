from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.dependencies import get_db, get_payment_gateway
from sawtooth.services.payment_gateway import PaymentGateway
from sawtooth.services.payment_notifications import PaymentNotificationHandler

router = APIRouter(tags=["webhooks"])


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """
    Stripe event receiver. Must stay reachable without admin auth; the
    Stripe-Signature header is the authentication.
    """
    payload = await request.body()
    signature = request.headers.get("stripe-signature", "")
    return await PaymentNotificationHandler(db, gateway).handle_webhook(payload, signature)
