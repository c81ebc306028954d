"""
Models for the storefront's core ledger.

A Product row is the single source of truth for what can be bought: its status
governs catalog visibility, its inventory governs buyability, and the two
bookkeeping timestamps (sold_out_since / archived_at) drive auto-archival.
"""

from sqlalchemy import Column, Integer, String, Text, TIMESTAMP, CheckConstraint, Enum as SAEnum, text

from sawtooth.core.enums import ProductStatus, DEFAULT_CATEGORY
from sawtooth.core.utils import cents_to_dollars, utc_now
from sawtooth.database import Base, JSONType

UTC_NOW = text("(CURRENT_TIMESTAMP)")


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("inventory >= 0", name="ck_products_inventory_non_negative"),
        CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
    )

    # Slug-like, immutable after creation
    id = Column(String, primary_key=True)

    created_at = Column(TIMESTAMP(timezone=False), default=utc_now, server_default=UTC_NOW, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=False), default=utc_now, server_default=UTC_NOW, nullable=False)

    # Core Product Information
    title = Column(String, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    category = Column(String, nullable=False, default=DEFAULT_CATEGORY, server_default=DEFAULT_CATEGORY)
    clothing_subcategory = Column(String, nullable=False, default="", server_default="")

    # Pricing (minor currency units)
    price_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="usd", server_default="usd")

    # Status and stock
    status = Column(
        SAEnum(
            ProductStatus,
            name="productstatus",
            native_enum=False,
            length=20,
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=ProductStatus.DRAFT,
        index=True,
    )
    inventory = Column(Integer, nullable=False, default=1)
    sold_out_since = Column(TIMESTAMP(timezone=False), nullable=True, index=True)
    archived_at = Column(TIMESTAMP(timezone=False), nullable=True)

    # Media and merchandising
    photos = Column(JSONType, nullable=False, default=list)
    tags = Column(JSONType, nullable=False, default=list)
    search_keywords = Column(JSONType, nullable=False, default=list)

    # Sourcing notes
    source_notes = Column(Text, nullable=False, default="")
    buy_price_max_cents = Column(Integer, nullable=True)

    @property
    def price(self) -> float:
        return cents_to_dollars(self.price_cents)

    @property
    def is_buyable(self) -> bool:
        return self.status == ProductStatus.ACTIVE and (self.inventory or 0) > 0

    def __repr__(self):
        return f"<Product {self.id} status={getattr(self.status, 'value', self.status)} inventory={self.inventory}>"
