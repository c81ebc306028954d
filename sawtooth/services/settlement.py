"""
Settlement of completed payments against the product ledger.

Every completed checkout session is applied at most once: the
``processed_payment_sessions`` row for the session id is written in the same
transaction as the inventory decrements it guards. A redelivered notification
finds the row (or collides with it on the primary key) and changes nothing.

Lock order inside one settlement:
    1. processed_payment_sessions row (primary-key claim)
    2. product rows, in ascending id order
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.core.exceptions import BaseServiceError, StoreFailure, ValidationError
from sawtooth.core.utils import to_naive_utc, utc_now
from sawtooth.models.payment_session import ProcessedPaymentSession
from sawtooth.models.product import Product
from sawtooth.schemas.checkout import CartLineItem
from sawtooth.services.activity_logger import ActivityLogger

logger = logging.getLogger(__name__)


@dataclass
class InventoryAdjustment:
    product_id: str
    quantity: int
    previous_inventory: int
    new_inventory: int


@dataclass
class SettlementResult:
    session_id: str
    applied: bool
    adjustments: List[InventoryAdjustment] = field(default_factory=list)
    missing_product_ids: List[str] = field(default_factory=list)


def merge_line_items(line_items: Iterable[Any]) -> Dict[str, int]:
    """
    Collapse line items into {product_id: total_qty}.

    Accepts CartLineItem instances or raw {"productId", "qty"} dicts.

    Raises:
        ValidationError: if any entry has no product id or a non-positive qty
    """
    quantities: Dict[str, int] = {}
    for index, item in enumerate(line_items or [], start=1):
        if not isinstance(item, CartLineItem):
            try:
                item = CartLineItem.model_validate(item)
            except PydanticValidationError as exc:
                raise ValidationError(f"Line item {index} is invalid", field="line_items") from exc
        quantities[item.product_id] = quantities.get(item.product_id, 0) + item.qty
    return quantities


class SettlementService:
    """Inventory adjustment engine for paid checkout sessions."""

    def __init__(self, db: AsyncSession, activity_logger: Optional[ActivityLogger] = None):
        self.db = db
        self.activity = activity_logger or ActivityLogger(db)

    async def is_processed(self, session_id: str) -> bool:
        result = await self.db.execute(
            select(ProcessedPaymentSession.session_id).where(
                ProcessedPaymentSession.session_id == session_id
            )
        )
        return result.scalar_one_or_none() is not None

    async def _claim_session(self, session_id: str, now: datetime) -> bool:
        """
        Insert the idempotency witness. Returns False if the session was
        already settled (by an earlier or a concurrent delivery).

        On PostgreSQL a concurrent insert of the same key blocks until the
        other transaction finishes and then fails with a unique violation.
        """
        if await self.is_processed(session_id):
            return False

        self.db.add(ProcessedPaymentSession(session_id=session_id, processed_at=now))
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            return False
        return True

    async def _lock_products(self, product_ids: List[str]) -> Dict[str, Product]:
        if not product_ids:
            return {}
        result = await self.db.execute(
            select(Product)
            .where(Product.id.in_(product_ids))
            .order_by(Product.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {product.id: product for product in result.scalars().all()}

    async def apply_inventory_for_session(
        self,
        session_id: str,
        line_items: Iterable[Any],
        now: Optional[datetime] = None,
    ) -> SettlementResult:
        """
        Apply a paid session's line items to inventory exactly once.

        Args:
            session_id: Payment-provider checkout session id
            line_items: CartLineItem objects or {"productId", "qty"} dicts; may be empty
            now: Override for the settlement timestamp (tests)

        Returns:
            SettlementResult; ``applied`` is False when the session had
            already been settled and nothing changed.

        Raises:
            ValidationError: empty session id or malformed line items (nothing written)
            StoreFailure: the transaction could not commit (nothing written; safe to retry)
        """
        session_id = str(session_id or "").strip()
        if not session_id:
            raise ValidationError("Missing session id", field="session_id")

        quantities = merge_line_items(line_items)
        now = to_naive_utc(now) or utc_now()
        result = SettlementResult(session_id=session_id, applied=False)

        try:
            if not await self._claim_session(session_id, now):
                await self.db.rollback()
                logger.info("Payment session %s already settled; skipping", session_id)
                return result

            product_ids = sorted(quantities)
            products = await self._lock_products(product_ids)

            for product_id in product_ids:
                qty = quantities[product_id]
                product = products.get(product_id)
                if product is None:
                    result.missing_product_ids.append(product_id)
                    continue

                previous = product.inventory or 0
                remaining = max(0, previous - qty)
                product.inventory = remaining
                product.updated_at = now
                if previous > 0 and remaining == 0:
                    product.sold_out_since = now

                result.adjustments.append(
                    InventoryAdjustment(product_id, qty, previous, remaining)
                )
                self.activity.log_sale(product_id, session_id, qty, previous, remaining)

            if result.missing_product_ids:
                logger.warning(
                    "Payment session %s referenced unknown products %s; skipped",
                    session_id,
                    result.missing_product_ids,
                )
                self.activity.log_settlement_mismatch(session_id, result.missing_product_ids)

            await self.db.commit()

        except BaseServiceError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Settlement of %s rolled back: %s", session_id, e)
            raise StoreFailure(f"Failed to settle payment session {session_id}") from e

        result.applied = True
        logger.info(
            "Settled payment session %s: %d products adjusted, %d missing",
            session_id,
            len(result.adjustments),
            len(result.missing_product_ids),
        )
        return result
