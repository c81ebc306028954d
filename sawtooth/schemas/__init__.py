from .product import ProductCreate, ProductUpdate, ProductRead, PublicProduct
from .checkout import CartLineItem, CheckoutRequest, ValidatedLine, CheckoutSessionResponse, SyncSessionRequest
from .opportunity import OpportunityRead, OpportunityAction
