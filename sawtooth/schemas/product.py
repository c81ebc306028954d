"""
Schemas for product-related API endpoints.

ProductUpdate is the explicit optional-field update structure used by the
admin mutation paths: every field is independently optional, ``null`` means
"leave untouched", and each field carries its own validator. Cross-field
rules that depend on the current row (category vs clothing_subcategory) are
enforced by ProductService under the row lock.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from sawtooth.core.enums import ProductStatus, ProductCategory
from sawtooth.core.exceptions import ValidationError
from sawtooth.schemas.base import BaseSchema, TimestampedSchema

# field -> (reported field, message)
FIELD_ERRORS: Dict[str, tuple] = {
    "inventory": ("inventory", "Invalid inventory: must be an integer >= 0"),
    "price_cents": ("price", "Invalid price: must be >= 0"),
    "price": ("price", "Invalid price: must be >= 0"),
    "status": ("status", "Invalid status: must be one of draft, active, archived"),
    "category": ("category", "Invalid category: must be one of shoes, clothes, furniture"),
    "clothing_subcategory": ("clothing_subcategory", "Invalid subcategory"),
    "buy_price_max_cents": ("buy_price_max_cents", "buy_price_max_cents must be >= 0"),
    "title": ("title", "Title is required"),
    "id": ("id", "Invalid id"),
}


def _plain(data: Dict[str, Any]) -> Dict[str, Any]:
    # category is stored as a plain string column
    if isinstance(data.get("category"), ProductCategory):
        data["category"] = data["category"].value
    return data


def _to_validation_error(exc: PydanticValidationError) -> ValidationError:
    first = exc.errors()[0]
    loc = first.get("loc") or ("",)
    field = str(loc[0]) if loc else ""
    reported, message = FIELD_ERRORS.get(field, (field or None, first.get("msg", "Invalid value")))
    return ValidationError(message, field=reported)


class ProductUpdate(BaseModel):
    """Partial update; absent and null fields are left untouched."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    currency: Optional[str] = None
    photos: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    search_keywords: Optional[List[str]] = None
    source_notes: Optional[str] = None
    buy_price_max_cents: Optional[int] = Field(default=None, ge=0)
    inventory: Optional[int] = Field(default=None, ge=0)
    status: Optional[ProductStatus] = None
    price_cents: Optional[int] = Field(default=None, ge=0)
    price: Optional[float] = Field(default=None, ge=0)
    category: Optional[ProductCategory] = None
    clothing_subcategory: Optional[str] = None

    @field_validator('title', mode='before')
    @classmethod
    def strip_title(cls, v):
        return None if v is None else str(v).strip()

    @field_validator('description', 'source_notes', mode='before')
    @classmethod
    def coerce_text(cls, v):
        return None if v is None else str(v)

    @field_validator('currency', mode='before')
    @classmethod
    def normalize_currency(cls, v):
        if v is None:
            return None
        return str(v).lower().strip()

    @field_validator('photos', 'tags', 'search_keywords', mode='before')
    @classmethod
    def coerce_string_list(cls, v):
        if v is None:
            return None
        if not isinstance(v, list):
            return []
        return [str(item).strip() for item in v if item is not None and str(item).strip()]

    @field_validator('status', 'category', 'clothing_subcategory', mode='before')
    @classmethod
    def normalize_choice(cls, v):
        if v is None:
            return None
        return str(v).lower().strip()

    @model_validator(mode='after')
    def derive_price_cents(self):
        if self.price_cents is None and self.price is not None:
            self.price_cents = int(round(self.price * 100))
        return self

    @classmethod
    def parse(cls, data: Any) -> "ProductUpdate":
        """Validate a raw request body, reporting the first failing field."""
        if not isinstance(data, dict):
            raise ValidationError("Updates must be an object")
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            raise _to_validation_error(exc) from exc

    def changes(self) -> Dict[str, Any]:
        """Columns to write: provided, non-null fields only."""
        return _plain(self.model_dump(exclude_none=True, exclude={"price"}))


class ProductCreate(ProductUpdate):
    """Manual product creation. Title is required; everything else has a default."""
    id: Optional[str] = None
    title: str = Field(min_length=1)

    def changes(self) -> Dict[str, Any]:
        return _plain(self.model_dump(exclude_none=True, exclude={"price", "id"}))


class ProductRead(TimestampedSchema):
    """Admin view of a product."""
    id: str
    title: str
    description: str = ""
    status: ProductStatus
    category: str
    clothing_subcategory: str = ""
    price_cents: int
    price: float
    currency: str
    photos: List[str] = []
    tags: List[str] = []
    search_keywords: List[str] = []
    inventory: int
    source_notes: str = ""
    buy_price_max_cents: Optional[int] = None
    sold_out_since: Optional[datetime] = None
    archived_at: Optional[datetime] = None

    @field_validator('photos', 'tags', 'search_keywords', mode='before')
    @classmethod
    def default_list(cls, v):
        return v if isinstance(v, list) else []

    @field_validator('category', mode='before')
    @classmethod
    def default_category(cls, v):
        return str(v or ProductCategory.CLOTHES.value).lower()


class PublicProduct(BaseSchema):
    """Catalog view of an active product."""
    id: str
    title: str
    description: str = ""
    status: ProductStatus
    category: str
    clothing_subcategory: str = ""
    price: float
    price_cents: int
    currency: str
    photos: List[str] = []
    inventory: int
    tags: List[str] = []
    search_keywords: List[str] = []
    created_at: datetime
    updated_at: datetime

    @field_validator('photos', 'tags', 'search_keywords', mode='before')
    @classmethod
    def default_list(cls, v):
        return v if isinstance(v, list) else []

    @field_validator('category', mode='before')
    @classmethod
    def default_category(cls, v):
        return str(v or ProductCategory.CLOTHES.value).lower()
