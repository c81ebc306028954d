"""
Utility functions for the application.
"""
import re
from datetime import datetime, timezone
from typing import Type, TypeVar, List, Any, Optional

from pydantic import BaseModel

T = TypeVar('T', bound=BaseModel)


def utc_now() -> datetime:
    """Naive UTC timestamp, matching the store's timezone('utc', now()) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def slugify(value: Any) -> str:
    """
    Lowercase slug used for product ids.

    Example: "Levi's 501 Jeans" -> "levi-s-501-jeans"
    """
    slug = re.sub(r'[^a-z0-9]+', '-', str(value or 'item').lower()).strip('-')
    return slug or 'item'


def cents_to_dollars(cents: Optional[int]) -> float:
    return round((cents or 0) / 100, 2)


def model_to_schema(db_model: Any, schema_class: Type[T]) -> T:
    """Convert a SQLAlchemy model instance to a Pydantic schema instance."""
    return schema_class.model_validate(db_model, from_attributes=True)


def models_to_schemas(db_models: List[Any], schema_class: Type[T]) -> List[T]:
    return [model_to_schema(model, schema_class) for model in db_models]
