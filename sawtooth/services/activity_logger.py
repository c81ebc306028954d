# sawtooth/services/activity_logger.py
import logging
from typing import Dict, Any, Optional, List
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.core.utils import utc_now
from sawtooth.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)


class ActivityLogger:
    """
    Service for recording ledger activity.

    Entries are added to the caller's session and become durable only when
    the caller's transaction commits, so an audit row never outlives a
    rolled-back change.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    def log_activity(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        platform: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> ActivityLog:
        """
        Log an activity in the system.

        Args:
            action: The action performed (sale, settlement_mismatch, update, archive, ...)
            entity_type: The type of entity affected (product, payment_session, ...)
            entity_id: The ID of the affected entity
            platform: Optional origin (stripe, admin, scheduler, ai)
            details: Optional additional details as a dictionary

        Returns:
            The pending ActivityLog instance
        """
        log_entry = ActivityLog(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            platform=platform,
            details=details,
            created_at=utc_now(),
        )
        self.db.add(log_entry)

        logger.debug(
            "Activity logged: %s %s %s (platform: %s)",
            action, entity_type, entity_id, platform or "N/A",
        )
        return log_entry

    def log_sale(
        self,
        product_id: str,
        session_id: str,
        quantity: int,
        previous_inventory: int,
        new_inventory: int,
    ) -> ActivityLog:
        return self.log_activity(
            action="sale",
            entity_type="product",
            entity_id=product_id,
            platform="stripe",
            details={
                "session_id": session_id,
                "quantity": quantity,
                "previous_inventory": previous_inventory,
                "new_inventory": new_inventory,
            },
        )

    def log_settlement_mismatch(self, session_id: str, missing_product_ids: List[str]) -> ActivityLog:
        """Paid line items that named no known product; kept for manual reconciliation."""
        return self.log_activity(
            action="settlement_mismatch",
            entity_type="payment_session",
            entity_id=session_id,
            platform="stripe",
            details={"missing_product_ids": list(missing_product_ids)},
        )
