from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from sawtooth.schemas.base import BaseSchema


class OpportunityRead(BaseSchema):
    opp_id: str
    category: str
    title: str
    max_buy_price_cents: int
    suggested_price_cents: int
    expected_margin_pct: Optional[int] = None
    max_buy_price: float
    suggested_price: float
    margin_estimate: str = ""
    search_keywords: List[str] = []
    buy_links: List[Dict[str, Any]] = []
    local_pickup: List[Dict[str, Any]] = []
    condition_checklist: List[str] = []
    checklist: List[str] = Field(default_factory=list)
    notes: str = ""
    created_at: Optional[datetime] = None

    @classmethod
    def from_orm_model(cls, orm_model: Any) -> "OpportunityRead":
        schema = cls.model_validate(orm_model)
        schema.checklist = list(schema.condition_checklist)
        return schema


class OpportunityAction(BaseSchema):
    opp_id: str = ""
