"""
Per-product image storage.

Images live in the ``product_images`` table so that deleting a product's
images can take part in the same transaction as the status change that
triggers it (archival).
"""

import logging
import uuid
from typing import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.core.exceptions import ImageNotFoundError
from sawtooth.models.product_image import ProductImage

logger = logging.getLogger(__name__)


class ProductImageStore:

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def url_for(image_id: str) -> str:
        return f"/images/{image_id}"

    async def save(self, product_id: str, content_type: str, data: bytes) -> ProductImage:
        image = ProductImage(
            id=str(uuid.uuid4()),
            product_id=product_id,
            content_type=content_type,
            data=data,
        )
        self.db.add(image)
        await self.db.flush()
        return image

    async def get(self, image_id: str) -> ProductImage:
        result = await self.db.execute(select(ProductImage).where(ProductImage.id == image_id))
        image = result.scalar_one_or_none()
        if image is None:
            raise ImageNotFoundError("Not Found")
        return image

    async def delete_for_product(self, product_id: str) -> int:
        """Delete every stored image for one product. Returns the number removed."""
        return await self.delete_for_products([product_id])

    async def delete_for_products(self, product_ids: Iterable[str]) -> int:
        ids = list(product_ids)
        if not ids:
            return 0
        result = await self.db.execute(
            delete(ProductImage).where(ProductImage.product_id.in_(ids))
        )
        deleted = result.rowcount or 0
        if deleted:
            logger.info("Deleted %d stored images for %d products", deleted, len(ids))
        return deleted
