"""
Schemas for checkout and settlement.
"""

from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class CartLineItem(BaseModel):
    """Transient cart entry. Serialized as {"productId", "qty"} in session metadata."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    product_id: str = Field(alias="productId", validation_alias=AliasChoices("productId", "product_id"))
    qty: int = Field(default=1, validation_alias=AliasChoices("qty", "quantity"), gt=0)

    @field_validator('product_id', mode='before')
    @classmethod
    def strip_product_id(cls, v):
        value = str(v or '').strip()
        if not value:
            raise ValueError('productId is required')
        return value

    def to_metadata(self) -> dict:
        return {"productId": self.product_id, "qty": self.qty}


class CheckoutRequest(BaseModel):
    """Either a list of items or a single productId/qty pair."""
    model_config = ConfigDict(extra="ignore")

    items: Optional[List[Any]] = None
    productId: Optional[Any] = None
    qty: Optional[Any] = None

    def raw_items(self) -> List[Any]:
        if isinstance(self.items, list):
            return self.items
        if self.productId is not None or self.qty is not None:
            return [{"productId": self.productId, "qty": self.qty}]
        return []


class ValidatedLine(BaseModel):
    """A cart line confirmed against the ledger, priced for the payment provider."""
    product_id: str
    qty: int
    title: str
    price_cents: int
    currency: str


class CheckoutSessionResponse(BaseModel):
    ok: bool = True
    url: str
    id: str


class SyncSessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(default="", validation_alias=AliasChoices("sessionId", "session_id"))
