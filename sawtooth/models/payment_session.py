from sqlalchemy import Column, String, TIMESTAMP

from sawtooth.database import Base
from sawtooth.core.utils import utc_now
from sawtooth.models.product import UTC_NOW


class ProcessedPaymentSession(Base):
    """
    Idempotency witness for settlement.

    A row exists for a checkout session id iff that session's inventory
    effects have been committed. Inserted in the same transaction as the
    decrements it guards; never updated or deleted.
    """
    __tablename__ = "processed_payment_sessions"

    session_id = Column(String, primary_key=True)
    processed_at = Column(TIMESTAMP(timezone=False), default=utc_now, server_default=UTC_NOW, nullable=False)

    def __repr__(self):
        return f"<ProcessedPaymentSession {self.session_id}>"
