"""
Payment notification handling.

Stripe delivers ``checkout.session.completed`` at least once. Both the
webhook and the success-page sync funnel into the same idempotent
settlement, so whichever arrives second is a no-op.
"""

import json
import logging
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.schemas.checkout import CartLineItem
from sawtooth.services.payment_gateway import PaymentGateway
from sawtooth.services.settlement import SettlementService

logger = logging.getLogger(__name__)

COMPLETED_EVENT = "checkout.session.completed"


def parse_cart(session: Dict[str, Any]) -> List[CartLineItem]:
    """
    Read the cart stored in ``metadata.cart`` at session creation.

    Bad JSON yields an empty cart. Entries without a product id, or with a
    qty that is not a positive integer, are dropped. Integer strings such as
    ``"2"`` count as integers.
    """
    metadata = (session or {}).get("metadata") or {}
    try:
        parsed = json.loads(metadata.get("cart") or "[]")
    except (TypeError, ValueError):
        logger.warning("Unreadable cart metadata on session %s", (session or {}).get("id"))
        return []
    if not isinstance(parsed, list):
        return []

    items = []
    for entry in parsed:
        if not isinstance(entry, dict):
            continue
        product_id = str(entry.get("productId") or "").strip()
        qty = entry.get("qty")
        if isinstance(qty, str) and qty.strip().isdigit():
            qty = int(qty.strip())
        elif isinstance(qty, float) and qty.is_integer():
            qty = int(qty)
        if not product_id or isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
            continue
        items.append(CartLineItem(product_id=product_id, qty=qty))
    return items


def is_paid(session: Dict[str, Any]) -> bool:
    return bool(session) and session.get("payment_status") == "paid"


class PaymentNotificationHandler:

    def __init__(self, db: AsyncSession, gateway: PaymentGateway):
        self.db = db
        self.gateway = gateway
        self.settlement = SettlementService(db)

    async def settle_session(self, session: Dict[str, Any]) -> Dict[str, Any]:
        session_id = str(session.get("id") or "").strip()
        if not session_id:
            return {"ok": True, "ignored": True}

        result = await self.settlement.apply_inventory_for_session(session_id, parse_cart(session))
        return {"ok": True, "applied": result.applied}

    async def handle_webhook(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify and act on one webhook delivery.

        Verification failures raise before any store access. Events other
        than a paid, completed checkout session are acknowledged and ignored.
        """
        event = self.gateway.construct_event(payload, signature)

        if event.get("type") != COMPLETED_EVENT:
            return {"ok": True, "ignored": True}

        session = (event.get("data") or {}).get("object") or {}
        if not is_paid(session):
            return {"ok": True, "ignored": True}

        logger.info("Received paid checkout session %s (event %s)", session.get("id"), event.get("id"))
        return await self.settle_session(session)

    async def sync_session(self, session_id: str) -> Dict[str, Any]:
        """Success-page reconciliation for when the webhook is late or lost."""
        session = await self.gateway.retrieve_session(session_id)
        if not is_paid(session):
            return {"ok": True, "ignored": True, "reason": "unpaid_or_missing"}

        response = await self.settle_session(session)
        response["synced"] = True
        return response
