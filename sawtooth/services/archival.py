"""
Auto-archival of long sold-out products.

A product that has sat at zero inventory for SOLD_OUT_ARCHIVE_DAYS is moved
to archived, its photos are cleared and its stored images deleted. The whole
candidate batch is archived in one transaction or not at all.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.core.enums import ProductStatus
from sawtooth.core.exceptions import StoreFailure
from sawtooth.core.utils import to_naive_utc, utc_now
from sawtooth.models.product import Product
from sawtooth.services.activity_logger import ActivityLogger
from sawtooth.services.image_store import ProductImageStore

logger = logging.getLogger(__name__)


class ArchivalService:

    def __init__(
        self,
        db: AsyncSession,
        image_store: Optional[ProductImageStore] = None,
        archive_after_days: int = 7,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self.db = db
        self.image_store = image_store or ProductImageStore(db)
        self.archive_after = timedelta(days=archive_after_days)
        self.activity = activity_logger or ActivityLogger(db)

    async def sweep_sold_out(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Archive every non-archived product with inventory <= 0 whose
        sold_out_since is at or before ``now - archive_after_days``.

        Returns:
            {"archived_count", "deleted_images", "product_ids"}
        """
        now = to_naive_utc(now) or utc_now()
        cutoff = now - self.archive_after

        try:
            result = await self.db.execute(
                select(Product)
                .where(
                    Product.status != ProductStatus.ARCHIVED,
                    Product.inventory <= 0,
                    Product.sold_out_since.is_not(None),
                    Product.sold_out_since <= cutoff,
                )
                .order_by(Product.id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            candidates = list(result.scalars().all())
            product_ids = [product.id for product in candidates]

            deleted_images = await self.image_store.delete_for_products(product_ids)
            for product in candidates:
                product.photos = []
                product.status = ProductStatus.ARCHIVED
                product.archived_at = now
                product.updated_at = now
                self.activity.log_activity(
                    "archive",
                    "product",
                    product.id,
                    platform="scheduler",
                    details={"sold_out_since": product.sold_out_since.isoformat()},
                )

            await self.db.commit()

        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Sold-out sweep rolled back: %s", e)
            raise StoreFailure("Failed to archive sold-out products") from e

        if product_ids:
            logger.info(
                "Archived %d sold-out products (%d images deleted): %s",
                len(product_ids), deleted_images, product_ids,
            )
        else:
            logger.debug("Sold-out sweep found nothing to archive")

        return {
            "archived_count": len(product_ids),
            "deleted_images": deleted_images,
            "product_ids": product_ids,
        }
