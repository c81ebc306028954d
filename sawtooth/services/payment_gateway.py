"""
Stripe integration.

A thin wrapper over the official ``stripe`` library. The library is
synchronous, so every network call is pushed to a worker thread to keep the
event loop free. Signature verification is delegated entirely to
``stripe.Webhook.construct_event``.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import stripe

from sawtooth.core.config import Settings
from sawtooth.core.exceptions import (
    ConfigurationError,
    PaymentProviderError,
    WebhookVerificationError,
)
from sawtooth.schemas.checkout import CartLineItem, ValidatedLine

logger = logging.getLogger(__name__)

DEFAULT_SITE_URL = "https://sawtooththrift.com"


def as_plain_dict(obj: Any) -> Dict[str, Any]:
    """StripeObject (or plain dict) -> plain nested dict."""
    if obj is None:
        return {}
    if type(obj) is dict:
        return obj
    try:
        return json.loads(str(obj))
    except (TypeError, ValueError):
        return dict(obj)


class PaymentGateway:

    def __init__(self, settings: Settings, client: Any = stripe):
        self.settings = settings
        self.client = client

    def require_secret_key(self) -> str:
        if not self.settings.STRIPE_SECRET_KEY:
            raise ConfigurationError("Missing STRIPE_SECRET_KEY")
        return self.settings.STRIPE_SECRET_KEY

    def resolve_base_url(self, origin: Optional[str] = None) -> str:
        """SITE_URL first, then the request Origin, then the public domain."""
        return str(self.settings.SITE_URL or origin or DEFAULT_SITE_URL).rstrip("/")

    def build_session_params(self, lines: List[ValidatedLine], base_url: str) -> Dict[str, Any]:
        cart = [CartLineItem(product_id=line.product_id, qty=line.qty).to_metadata() for line in lines]
        return {
            "mode": "payment",
            "line_items": [
                {
                    "quantity": line.qty,
                    "price_data": {
                        "currency": line.currency,
                        "unit_amount": line.price_cents,
                        "product_data": {"name": line.title},
                    },
                }
                for line in lines
            ],
            "metadata": {"cart": json.dumps(cart, separators=(",", ":"))},
            "shipping_address_collection": {
                "allowed_countries": list(self.settings.CHECKOUT_ALLOWED_COUNTRIES or ["US"]),
            },
            "success_url": f"{base_url}/success.html?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{base_url}/cancel.html",
        }

    async def create_checkout_session(self, lines: List[ValidatedLine], base_url: str) -> Dict[str, str]:
        """
        Create a hosted Checkout Session for already validated lines.

        The cart is round-tripped in ``metadata.cart`` and read back by the
        webhook when the payment completes.

        Raises:
            ConfigurationError: STRIPE_SECRET_KEY is not set
            PaymentProviderError: Stripe rejected the request or was unreachable
        """
        api_key = self.require_secret_key()
        params = self.build_session_params(lines, base_url)

        try:
            session = await asyncio.to_thread(
                self.client.checkout.Session.create, api_key=api_key, **params
            )
        except stripe.StripeError as e:
            logger.error("Stripe checkout session creation failed: %s", e)
            raise PaymentProviderError(getattr(e, "user_message", None) or str(e) or "Payment provider error") from e

        return {"url": session["url"], "id": session["id"]}

    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify a webhook payload and return the event as a plain dict.

        Raises:
            ConfigurationError: Stripe secrets are not set
            WebhookVerificationError: missing or invalid signature, or malformed payload
        """
        if not self.settings.STRIPE_SECRET_KEY or not self.settings.STRIPE_WEBHOOK_SECRET:
            raise ConfigurationError("Missing STRIPE_SECRET_KEY or STRIPE_WEBHOOK_SECRET")
        if not signature:
            raise WebhookVerificationError("Missing stripe-signature")

        try:
            event = self.client.Webhook.construct_event(
                payload, signature, self.settings.STRIPE_WEBHOOK_SECRET
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Rejected Stripe webhook with bad signature: %s", e)
            raise WebhookVerificationError("Invalid signature") from e
        except ValueError as e:
            logger.warning("Rejected malformed Stripe webhook payload: %s", e)
            raise WebhookVerificationError("Invalid payload") from e

        return as_plain_dict(event)

    async def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        api_key = self.require_secret_key()
        try:
            session = await asyncio.to_thread(
                self.client.checkout.Session.retrieve, session_id, api_key=api_key
            )
        except stripe.StripeError as e:
            logger.error("Stripe session retrieval failed for %s: %s", session_id, e)
            raise PaymentProviderError(str(e) or "Payment provider error") from e
        return as_plain_dict(session)
