"""
Checkout reservation check.

validate_cart is advisory: it reads current availability in one batch and
takes no hold. Two buyers can both pass the check for the last unit; the
settlement decrement floors at zero.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.core.config import Settings, get_settings
from sawtooth.core.exceptions import (
    InsufficientStockError,
    ProductNotFoundError,
    SoldOutError,
    ValidationError,
)
from sawtooth.models.product import Product
from sawtooth.schemas.checkout import CartLineItem, ValidatedLine

logger = logging.getLogger(__name__)


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    return None


class CheckoutService:

    def __init__(self, db: AsyncSession, gateway=None, settings: Optional[Settings] = None):
        self.db = db
        self.gateway = gateway
        self.settings = settings or get_settings()

    @staticmethod
    def normalize_items(raw_items: Any) -> List[CartLineItem]:
        """
        Turn request items into CartLineItems, merging repeated product ids.

        A missing qty defaults to 1.

        Raises:
            ValidationError: empty cart, missing productId, or qty < 1
        """
        if not isinstance(raw_items, list) or not raw_items:
            raise ValidationError("Missing items", field="items")

        merged: Dict[str, int] = {}
        for index, raw in enumerate(raw_items, start=1):
            raw = raw if isinstance(raw, dict) else {}
            product_id = str(raw.get("productId") or raw.get("product_id") or "").strip()
            if not product_id:
                raise ValidationError(f"Item {index}: productId is required", field="items")

            raw_qty = raw.get("qty", raw.get("quantity"))
            qty = 1 if raw_qty is None else _as_int(raw_qty)
            if qty is None or qty < 1:
                raise ValidationError(f"Item {index}: qty must be integer >= 1", field="items")

            merged[product_id] = merged.get(product_id, 0) + qty

        return [CartLineItem(product_id=pid, qty=qty) for pid, qty in merged.items()]

    async def validate_cart(self, items: List[CartLineItem]) -> List[ValidatedLine]:
        """
        Confirm every line against the ledger without mutating it.

        Raises:
            ValidationError: empty cart
            ProductNotFoundError: unknown product id
            SoldOutError: product not active or inventory <= 0
            InsufficientStockError: qty exceeds inventory (carries the available count)
        """
        if not items:
            raise ValidationError("Missing items", field="items")

        ids = [item.product_id for item in items]
        result = await self.db.execute(select(Product).where(Product.id.in_(ids)))
        products = {product.id: product for product in result.scalars().all()}

        lines: List[ValidatedLine] = []
        for item in items:
            product = products.get(item.product_id)
            if product is None:
                raise ProductNotFoundError(item.product_id)

            if not product.is_buyable:
                raise SoldOutError(item.product_id)
            if item.qty > product.inventory:
                raise InsufficientStockError(item.product_id, product.inventory)

            lines.append(ValidatedLine(
                product_id=product.id,
                qty=item.qty,
                title=product.title or product.id,
                price_cents=product.price_cents or 0,
                currency=(product.currency or self.settings.DEFAULT_CURRENCY).lower(),
            ))

        return lines

    async def create_checkout_session(self, raw_items: Any, base_url: str) -> Dict[str, str]:
        """
        Validate the cart and ask the payment provider for a hosted session.

        Returns:
            {"url": ..., "id": ...}
        """
        items = self.normalize_items(raw_items)
        lines = await self.validate_cart(items)
        # read-only; release the snapshot before the provider round trip
        await self.db.rollback()

        session = await self.gateway.create_checkout_session(lines, base_url)
        logger.info(
            "Created checkout session %s for %d items",
            session["id"], sum(line.qty for line in lines),
        )
        return session
