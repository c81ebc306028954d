"""
Core module exports.
"""
from .enums import (
    ProductStatus,
    ProductCategory,
    ClothingSubcategory,
    OpportunityCategory,
)

from .exceptions import (
    BaseServiceError,
    ValidationError,
    PayloadTooLargeError,
    NotFoundError,
    ProductNotFoundError,
    OpportunityNotFoundError,
    ConflictError,
    SoldOutError,
    InsufficientStockError,
    StoreFailure,
    UpstreamError,
    PaymentProviderError,
    WebhookVerificationError,
)

from .utils import (
    utc_now,
    slugify,
    model_to_schema,
    models_to_schemas,
)
