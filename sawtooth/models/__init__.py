from .product import Product, ProductStatus
from .payment_session import ProcessedPaymentSession
from .product_image import ProductImage
from .opportunity import AiOpportunity
from .activity_log import ActivityLog

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'Product',
    'ProductStatus',
    'ProcessedPaymentSession',
    'ProductImage',
    'AiOpportunity',
    'ActivityLog',
]
