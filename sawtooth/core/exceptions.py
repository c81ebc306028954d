from typing import Any, Dict, Optional


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    status_code = 500

    def __init__(self, message: str = "Server error"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "error": self.message}


class ValidationError(BaseServiceError):
    """Raised when client-supplied data fails validation. Nothing is written."""
    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.field:
            body["field"] = self.field
        return body


class NotFoundError(BaseServiceError):
    status_code = 404


class ProductNotFoundError(NotFoundError):
    """Raised when product is not found."""

    def __init__(self, product_id: str):
        super().__init__(f"Product not found: {product_id}")
        self.product_id = product_id


class OpportunityNotFoundError(NotFoundError):
    """Raised when an AI sourcing opportunity is not found."""

    def __init__(self, opp_id: str):
        super().__init__("Opportunity not found")
        self.opp_id = opp_id


class ImageNotFoundError(NotFoundError):
    pass


class ConflictError(BaseServiceError):
    """Checkout refused because current inventory cannot cover the cart."""
    status_code = 409


class SoldOutError(ConflictError):

    def __init__(self, product_id: str):
        super().__init__("Sold out")
        self.product_id = product_id


class InsufficientStockError(ConflictError):

    def __init__(self, product_id: str, available: int):
        super().__init__(f"Only {available} left")
        self.product_id = product_id
        self.available = available

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["available"] = self.available
        return body


class StoreFailure(BaseServiceError):
    """Raised when a transaction could not be committed. Safe to retry."""
    status_code = 500


class UpstreamError(BaseServiceError):
    """Base exception for payment provider / image store failures."""
    status_code = 502


class PaymentProviderError(UpstreamError):
    """Raised when Stripe API calls fail."""
    pass


class WebhookVerificationError(UpstreamError):
    """Raised when a payment notification fails authenticity checks."""
    status_code = 400


class ConfigurationError(BaseServiceError):
    """Raised when a required secret or setting is missing."""
    status_code = 500


class AdminAuthError(BaseServiceError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized", status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


class RateLimitExceeded(AdminAuthError):

    def __init__(self, message: str = "Too many admin requests. Please retry shortly."):
        super().__init__(message, status_code=429)


class PayloadTooLargeError(ValidationError):
    status_code = 413
