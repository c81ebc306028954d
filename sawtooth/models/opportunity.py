from sqlalchemy import Column, Integer, String, Text, TIMESTAMP

from sawtooth.core.utils import cents_to_dollars, utc_now
from sawtooth.database import Base, JSONType
from sawtooth.models.product import UTC_NOW


class AiOpportunity(Base):
    """A queued, AI-suggested item worth sourcing for resale."""
    __tablename__ = "ai_opportunities"

    opp_id = Column(String, primary_key=True)
    category = Column(String, nullable=False)
    title = Column(String, nullable=False)
    max_buy_price_cents = Column(Integer, nullable=False)
    suggested_price_cents = Column(Integer, nullable=False)
    expected_margin_pct = Column(Integer, nullable=True)
    search_keywords = Column(JSONType, nullable=False, default=list)
    buy_links = Column(JSONType, nullable=False, default=list)
    local_pickup = Column(JSONType, nullable=False, default=list)
    condition_checklist = Column(JSONType, nullable=False, default=list)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(TIMESTAMP(timezone=False), default=utc_now, server_default=UTC_NOW, nullable=False, index=True)

    @property
    def max_buy_price(self) -> float:
        return cents_to_dollars(self.max_buy_price_cents)

    @property
    def suggested_price(self) -> float:
        return cents_to_dollars(self.suggested_price_cents)

    @property
    def margin_estimate(self) -> str:
        return f"{self.expected_margin_pct}%" if self.expected_margin_pct is not None else ""
