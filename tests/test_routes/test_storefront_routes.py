# tests/test_routes/test_storefront_routes.py
"""
Public surface: catalog, checkout, Stripe webhook and health endpoints.
"""
import json

import pytest
import stripe

from sawtooth.core.enums import ProductStatus
from sawtooth.models.product import Product
from sawtooth.services.image_store import ProductImageStore


def _completed_event(session_id="cs_hook", cart=None):
    return {
        "id": "evt_hook",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "payment_status": "paid",
                "metadata": {"cart": json.dumps(cart or [{"productId": "p1", "qty": 1}])},
            }
        },
    }


# --- Catalog ---

async def test_active_products_lists_only_active(test_client, make_product):
    await make_product("shown", status=ProductStatus.ACTIVE, photos=["/images/a"])
    await make_product("hidden", status=ProductStatus.DRAFT)
    await make_product("sold-out", status=ProductStatus.ACTIVE, inventory=0)

    response = test_client.get("/api/products/active")

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    ids = {p["id"] for p in response.json()["products"]}
    assert ids == {"shown", "sold-out"}
    product = next(p for p in response.json()["products"] if p["id"] == "shown")
    assert product["price"] == 25.0
    assert product["photos"] == ["/images/a"]
    assert "source_notes" not in product


async def test_image_is_served_with_long_cache(test_client, session_factory, make_product):
    await make_product("p1")
    async with session_factory() as session:
        image = await ProductImageStore(session).save("p1", "image/png", b"\x89PNGdata")
        await session.commit()

    response = test_client.get(f"/images/{image.id}")

    assert response.status_code == 200
    assert response.content == b"\x89PNGdata"
    assert response.headers["content-type"] == "image/png"
    assert "immutable" in response.headers["cache-control"]


async def test_unknown_image_is_404(test_client):
    response = test_client.get("/images/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {"ok": False, "error": "Not Found"}


# --- Checkout ---

async def test_checkout_session_returns_stripe_url(test_client, make_product, stripe_client):
    await make_product("p1", inventory=2)

    response = test_client.post("/api/checkout/session", json={"items": [{"productId": "p1", "qty": 2}]})

    assert response.status_code == 200
    assert response.json() == {
        "ok": True,
        "url": "https://checkout.stripe.test/c/pay/cs_test_123",
        "id": "cs_test_123",
    }
    stripe_client.checkout.Session.create.assert_called_once()


async def test_checkout_single_item_shape(test_client, make_product, stripe_client):
    await make_product("p1", inventory=1)

    response = test_client.post("/api/checkout/session", json={"productId": "p1"})

    assert response.status_code == 200
    cart = stripe_client.checkout.Session.create.call_args.kwargs["metadata"]["cart"]
    assert json.loads(cart) == [{"productId": "p1", "qty": 1}]


async def test_checkout_sold_out_is_409(test_client, make_product, stripe_client):
    await make_product("p1", inventory=0)

    response = test_client.post("/api/checkout/session", json={"items": [{"productId": "p1"}]})

    assert response.status_code == 409
    assert response.json() == {"ok": False, "error": "Sold out"}
    stripe_client.checkout.Session.create.assert_not_called()


async def test_checkout_insufficient_stock_reports_available(test_client, make_product):
    await make_product("p1", inventory=1)

    response = test_client.post("/api/checkout/session", json={"items": [{"productId": "p1", "qty": 3}]})

    assert response.status_code == 409
    assert response.json()["available"] == 1


@pytest.mark.parametrize("body", [{}, {"items": []}, {"items": [{"qty": 1}]}])
async def test_checkout_bad_cart_is_400(test_client, body):
    response = test_client.post("/api/checkout/session", json=body)

    assert response.status_code == 400
    assert response.json()["ok"] is False


async def test_checkout_stripe_failure_is_502(test_client, make_product, stripe_client):
    await make_product("p1", inventory=1)
    stripe_client.checkout.Session.create.side_effect = stripe.APIConnectionError("down")

    response = test_client.post("/api/checkout/session", json={"items": [{"productId": "p1"}]})

    assert response.status_code == 502


async def test_sync_session_requires_id(test_client):
    response = test_client.post("/api/checkout/sync-session", json={})

    assert response.status_code == 400
    assert response.json()["error"] == "Missing sessionId"


async def test_sync_session_settles_paid_session(test_client, make_product, session_factory, stripe_client):
    await make_product("p1", inventory=2)
    stripe_client.checkout.Session.retrieve.return_value = _completed_event("cs_sync")["data"]["object"]

    response = test_client.post("/api/checkout/sync-session", json={"sessionId": "cs_sync"})

    assert response.json() == {"ok": True, "applied": True, "synced": True}


# --- Stripe webhook ---

async def test_webhook_without_signature_is_400(test_client, stripe_client):
    response = test_client.post("/webhooks/stripe", content=b"{}")

    assert response.status_code == 400
    assert response.json()["error"] == "Missing stripe-signature"
    stripe_client.Webhook.construct_event.assert_not_called()


async def test_webhook_with_bad_signature_is_400(test_client, stripe_client):
    stripe_client.Webhook.construct_event.side_effect = stripe.SignatureVerificationError("bad", "sig")

    response = test_client.post("/webhooks/stripe", content=b"{}", headers={"stripe-signature": "sig"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid signature"


async def test_webhook_passes_raw_body_and_settles(test_client, make_product, session_factory, stripe_client):
    await make_product("p1", inventory=2)
    stripe_client.Webhook.construct_event.return_value = _completed_event()
    raw = b'{"id": "evt_hook"}'

    first = test_client.post("/webhooks/stripe", content=raw, headers={"stripe-signature": "t=1,v1=ok"})
    second = test_client.post("/webhooks/stripe", content=raw, headers={"stripe-signature": "t=1,v1=ok"})

    assert first.json() == {"ok": True, "applied": True}
    assert second.json() == {"ok": True, "applied": False}
    args = stripe_client.Webhook.construct_event.call_args.args
    assert args == (raw, "t=1,v1=ok", "whsec_test_123")

    async with session_factory() as session:
        assert (await session.get(Product, "p1")).inventory == 1


async def test_webhook_ignores_other_events(test_client, stripe_client):
    stripe_client.Webhook.construct_event.return_value = {"type": "charge.refunded", "data": {"object": {}}}

    response = test_client.post("/webhooks/stripe", content=b"{}", headers={"stripe-signature": "sig"})

    assert response.status_code == 200
    assert response.json() == {"ok": True, "ignored": True}


# --- Health ---

async def test_health(test_client):
    response = test_client.get("/health")

    assert response.json() == {"status": "healthy", "service": "Sawtooth Storefront"}


async def test_health_db_reports_tables(test_client, session_factory, monkeypatch):
    monkeypatch.setattr("sawtooth.routes.health.async_session", session_factory)

    response = test_client.get("/health/db")

    body = response.json()
    assert body["status"] == "healthy"
    assert body["missing_tables"] == []
