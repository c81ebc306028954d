# sawtooth/models/activity_log.py
from sqlalchemy import Column, Integer, String, TIMESTAMP

from sawtooth.database import Base, JSONType
from sawtooth.core.utils import utc_now
from sawtooth.models.product import UTC_NOW


class ActivityLog(Base):
    """
    Records significant ledger activity for auditing and reconciliation.

    This includes:
    - Settled sales (one row per decremented product)
    - Settlement mismatches (paid line items naming unknown products)
    - Admin product updates and AI draft acceptance
    - Auto-archival sweeps
    """
    __tablename__ = "activity_log"

    id = Column(Integer, primary_key=True)
    action = Column(String(50), nullable=False, index=True)  # 'sale', 'settlement_mismatch', 'update', 'archive', ...
    entity_type = Column(String(50), nullable=False, index=True)  # 'product', 'payment_session', 'opportunity'
    entity_id = Column(String(255), nullable=False, index=True)
    platform = Column(String(50), nullable=True, index=True)  # 'stripe', 'admin', 'scheduler'

    details = Column(JSONType, nullable=True)

    created_at = Column(TIMESTAMP(timezone=False), default=utc_now, server_default=UTC_NOW, nullable=False, index=True)

    def __repr__(self):
        return f"<ActivityLog {self.action} {self.entity_type} {self.entity_id}>"
