# tests/unit/services/test_checkout_service.py
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from sawtooth.core.enums import ProductStatus
from sawtooth.core.exceptions import (
    InsufficientStockError,
    PaymentProviderError,
    ProductNotFoundError,
    SoldOutError,
    ValidationError,
)
from sawtooth.schemas.checkout import CartLineItem
from sawtooth.services.checkout import CheckoutService
from sawtooth.services.payment_gateway import PaymentGateway


# --- normalize_items ---

def test_normalize_items_defaults_qty_and_merges_duplicates():
    items = CheckoutService.normalize_items([
        {"productId": "a"},
        {"productId": "b", "qty": 2},
        {"productId": "a", "qty": "3"},
    ])
    assert items == [CartLineItem(product_id="a", qty=4), CartLineItem(product_id="b", qty=2)]


@pytest.mark.parametrize("raw, message", [
    ([], "Missing items"),
    (None, "Missing items"),
    ([{"qty": 1}], "Item 1: productId is required"),
    ([{"productId": "a"}, {"productId": "b", "qty": 0}], "Item 2: qty must be integer >= 1"),
    ([{"productId": "a", "qty": 1.5}], "Item 1: qty must be integer >= 1"),
    ([{"productId": "a", "qty": True}], "Item 1: qty must be integer >= 1"),
])
def test_normalize_items_rejects_bad_input(raw, message):
    with pytest.raises(ValidationError) as exc_info:
        CheckoutService.normalize_items(raw)
    assert exc_info.value.message == message


# --- validate_cart ---

async def test_validate_cart_returns_priced_lines(db_session, make_product):
    await make_product("wool-coat", title="Wool Coat", inventory=2, price_cents=4800)

    lines = await CheckoutService(db_session).validate_cart([CartLineItem(product_id="wool-coat", qty=2)])

    assert len(lines) == 1
    assert lines[0].title == "Wool Coat"
    assert lines[0].price_cents == 4800
    assert lines[0].currency == "usd"
    assert lines[0].qty == 2


async def test_validate_cart_sold_out_when_inventory_zero(db_session, make_product):
    await make_product("p1", inventory=0)

    with pytest.raises(SoldOutError) as exc_info:
        await CheckoutService(db_session).validate_cart([CartLineItem(product_id="p1", qty=1)])
    assert exc_info.value.status_code == 409
    assert exc_info.value.message == "Sold out"


async def test_validate_cart_sold_out_when_not_active(db_session, make_product):
    await make_product("p1", inventory=4, status=ProductStatus.DRAFT)

    with pytest.raises(SoldOutError):
        await CheckoutService(db_session).validate_cart([CartLineItem(product_id="p1", qty=1)])


async def test_validate_cart_insufficient_stock_carries_available(db_session, make_product):
    await make_product("p1", inventory=1)

    with pytest.raises(InsufficientStockError) as exc_info:
        await CheckoutService(db_session).validate_cart([CartLineItem(product_id="p1", qty=2)])
    assert exc_info.value.available == 1
    assert exc_info.value.message == "Only 1 left"
    assert exc_info.value.to_dict()["available"] == 1


async def test_validate_cart_unknown_product(db_session):
    with pytest.raises(ProductNotFoundError):
        await CheckoutService(db_session).validate_cart([CartLineItem(product_id="nope", qty=1)])


# --- create_checkout_session ---

async def test_create_checkout_session_sends_cart_metadata(db_session, make_product, settings, stripe_client):
    await make_product("p1", title="Flannel", inventory=3, price_cents=2200)
    gateway = PaymentGateway(settings, client=stripe_client)

    session = await CheckoutService(db_session, gateway=gateway, settings=settings).create_checkout_session(
        [{"productId": "p1", "qty": 2}], "https://shop.example.test"
    )

    assert session == {"id": "cs_test_123", "url": "https://checkout.stripe.test/c/pay/cs_test_123"}
    kwargs = stripe_client.checkout.Session.create.call_args.kwargs
    assert kwargs["api_key"] == "sk_test_123"
    assert kwargs["mode"] == "payment"
    assert json.loads(kwargs["metadata"]["cart"]) == [{"productId": "p1", "qty": 2}]
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 2200
    assert kwargs["success_url"] == "https://shop.example.test/success.html?session_id={CHECKOUT_SESSION_ID}"
    assert kwargs["shipping_address_collection"] == {"allowed_countries": ["US"]}


async def test_create_checkout_session_never_calls_provider_for_bad_cart(db_session, make_product):
    await make_product("p1", inventory=0)
    gateway = MagicMock()
    gateway.create_checkout_session = AsyncMock()

    with pytest.raises(SoldOutError):
        await CheckoutService(db_session, gateway=gateway).create_checkout_session(
            [{"productId": "p1"}], "https://shop.example.test"
        )
    gateway.create_checkout_session.assert_not_awaited()


async def test_create_checkout_session_wraps_stripe_errors(db_session, make_product, settings, stripe_client):
    import stripe

    await make_product("p1", inventory=1)
    stripe_client.checkout.Session.create.side_effect = stripe.APIConnectionError("network down")
    gateway = PaymentGateway(settings, client=stripe_client)

    with pytest.raises(PaymentProviderError):
        await CheckoutService(db_session, gateway=gateway, settings=settings).create_checkout_session(
            [{"productId": "p1"}], "https://shop.example.test"
        )
