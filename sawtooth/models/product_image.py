from sqlalchemy import Column, String, LargeBinary, TIMESTAMP, ForeignKey

from sawtooth.database import Base
from sawtooth.core.utils import utc_now
from sawtooth.models.product import UTC_NOW


class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(String, primary_key=True)
    product_id = Column(String, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    content_type = Column(String, nullable=False)
    data = Column(LargeBinary, nullable=False)
    created_at = Column(TIMESTAMP(timezone=False), default=utc_now, server_default=UTC_NOW, nullable=False)
