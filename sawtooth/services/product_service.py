"""
Purpose: The central service for managing the Product ledger from the admin side.

Every mutation here runs in one transaction that locks the product row
(SELECT ... FOR UPDATE) before reading it, so an admin edit and a concurrent
payment settlement serialize on the row instead of overwriting each other.

Derived bookkeeping kept in step with each write:
- sold_out_since: set when inventory goes from >0 to 0, cleared when it becomes >0
- archived_at: set on the transition to archived (photos and stored images
  are cleared with it), cleared when leaving archived
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import exists, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.core.config import Settings, get_settings
from sawtooth.core.enums import AI_DRAFT_TAG, ClothingSubcategory, ProductCategory, ProductStatus
from sawtooth.core.exceptions import (
    BaseServiceError,
    PayloadTooLargeError,
    ProductNotFoundError,
    StoreFailure,
    ValidationError,
)
from sawtooth.core.utils import models_to_schemas, model_to_schema, slugify, to_naive_utc, utc_now
from sawtooth.models.product import Product
from sawtooth.schemas.product import ProductCreate, ProductRead, ProductUpdate
from sawtooth.services.activity_logger import ActivityLogger
from sawtooth.services.image_store import ProductImageStore

logger = logging.getLogger(__name__)

SUBCATEGORIES = {member.value for member in ClothingSubcategory}


def resolve_subcategory(category: str, subcategory: Optional[str]) -> str:
    """
    Subcategory is required (mens|womens) for clothes and forced empty otherwise.

    Raises:
        ValidationError: clothes without a valid subcategory
    """
    if category == ProductCategory.CLOTHES.value:
        value = (subcategory or "").lower().strip()
        if value not in SUBCATEGORIES:
            raise ValidationError("Invalid subcategory", field="clothing_subcategory")
        return value
    return ""


class ProductService:

    def __init__(
        self,
        db: AsyncSession,
        image_store: Optional[ProductImageStore] = None,
        activity_logger: Optional[ActivityLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.image_store = image_store or ProductImageStore(db)
        self.activity = activity_logger or ActivityLogger(db)
        self.settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_products(self) -> List[ProductRead]:
        """All products, newest first."""
        result = await self.db.execute(
            select(Product).order_by(Product.created_at.desc(), Product.id)
        )
        return models_to_schemas(result.scalars().all(), ProductRead)

    async def list_active_products(self) -> List[Product]:
        result = await self.db.execute(
            select(Product)
            .where(Product.status == ProductStatus.ACTIVE)
            .order_by(Product.created_at.desc(), Product.id)
        )
        return list(result.scalars().all())

    async def list_ai_drafts(self) -> List[ProductRead]:
        """Draft or active products created from accepted AI opportunities."""
        result = await self.db.execute(
            select(Product)
            .where(Product.status.in_([ProductStatus.DRAFT, ProductStatus.ACTIVE]))
            .order_by(Product.created_at.desc(), Product.id)
        )
        # tags is a JSON list; filter here so the query stays portable
        drafts = [p for p in result.scalars().all() if AI_DRAFT_TAG in (p.tags or [])]
        return models_to_schemas(drafts, ProductRead)

    async def product_exists(self, product_id: str) -> bool:
        return bool(await self.db.scalar(select(exists().where(Product.id == product_id))))

    async def unique_product_id(self, base: str) -> str:
        """base, then base-2, base-3, ... until unused."""
        candidate = base
        n = 2
        while await self.product_exists(candidate):
            candidate = f"{base}-{n}"
            n += 1
        return candidate

    async def _lock_product(self, product_id: str) -> Product:
        result = await self.db.execute(
            select(Product)
            .where(Product.id == product_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        product = result.scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_product(
        self,
        data: Union[ProductCreate, Dict[str, Any]],
        now: Optional[datetime] = None,
    ) -> ProductRead:
        """
        Create a product by hand.

        The id is the slug of ``id`` (or of the title when absent), made unique
        with -2, -3, ... suffixes.
        """
        product_data = data if isinstance(data, ProductCreate) else ProductCreate.parse(data)
        now = to_naive_utc(now) or utc_now()
        fields = product_data.changes()

        category = fields.pop("category", None) or ProductCategory.CLOTHES.value
        subcategory = resolve_subcategory(category, fields.pop("clothing_subcategory", None))

        fields["currency"] = fields.get("currency") or self.settings.DEFAULT_CURRENCY
        status = fields.pop("status", ProductStatus.DRAFT)
        inventory = fields.pop("inventory", 1)

        try:
            product_id = await self.unique_product_id(slugify(product_data.id or product_data.title))
            product = Product(
                id=product_id,
                status=status,
                inventory=inventory,
                category=category,
                clothing_subcategory=subcategory,
                sold_out_since=now if inventory == 0 else None,
                archived_at=now if status == ProductStatus.ARCHIVED else None,
                created_at=now,
                updated_at=now,
                **fields,
            )
            if status == ProductStatus.ARCHIVED:
                product.photos = []
            self.db.add(product)
            self.activity.log_activity("create", "product", product_id, platform="admin")
            await self.db.commit()

        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to create product %r: %s", product_data.title, e)
            raise StoreFailure("Failed to create product") from e

        logger.info("Created product %s (%s)", product.id, status.value)
        return model_to_schema(product, ProductRead)

    async def update_product(
        self,
        product_id: str,
        updates: Union[ProductUpdate, Dict[str, Any]],
        now: Optional[datetime] = None,
    ) -> ProductRead:
        """
        Apply a partial update under a row lock.

        Args:
            product_id: Product to update
            updates: ProductUpdate or a raw dict; absent and null fields are untouched
            now: Override for the update timestamp (tests)

        Returns:
            The updated product

        Raises:
            ValidationError: a field failed validation, or nothing to update (no write)
            ProductNotFoundError: no product with this id under lock
            StoreFailure: the transaction could not commit
        """
        product_id = str(product_id or "").strip()
        if not product_id:
            raise ValidationError("Missing id", field="id")

        update = updates if isinstance(updates, ProductUpdate) else ProductUpdate.parse(updates)
        changes = update.changes()
        if not changes:
            raise ValidationError("No valid updates")
        if "currency" in changes:
            changes["currency"] = changes["currency"] or self.settings.DEFAULT_CURRENCY

        now = to_naive_utc(now) or utc_now()
        deleted_images = 0

        try:
            product = await self._lock_product(product_id)

            if "category" in changes or "clothing_subcategory" in changes:
                category = changes.get("category") or product.category or ProductCategory.CLOTHES.value
                subcategory = changes.get("clothing_subcategory", product.clothing_subcategory)
                changes["category"] = category
                changes["clothing_subcategory"] = resolve_subcategory(category, subcategory)

            if "inventory" in changes:
                previous = product.inventory or 0
                if changes["inventory"] > 0:
                    changes["sold_out_since"] = None
                elif previous > 0:
                    changes["sold_out_since"] = now

            # an archive transition clears photos below; staying archived must not add any
            stays_archived = (
                product.status == ProductStatus.ARCHIVED
                and changes.get("status", product.status) == ProductStatus.ARCHIVED
            )
            if stays_archived and changes.get("photos"):
                raise ValidationError("Cannot add photos to archived products", field="photos")

            if "status" in changes:
                previous_status = product.status
                new_status = changes["status"]
                if new_status == ProductStatus.ARCHIVED and previous_status != ProductStatus.ARCHIVED:
                    changes["photos"] = []
                    changes["archived_at"] = now
                    deleted_images = await self.image_store.delete_for_product(product_id)
                elif new_status != ProductStatus.ARCHIVED and previous_status == ProductStatus.ARCHIVED:
                    changes["archived_at"] = None

            for key, value in changes.items():
                setattr(product, key, value)
            product.updated_at = now

            self.activity.log_activity(
                "update",
                "product",
                product_id,
                platform="admin",
                details={"fields": sorted(update.changes()), "deleted_images": deleted_images},
            )
            await self.db.commit()

        except BaseServiceError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to update product %s: %s", product_id, e)
            raise StoreFailure(f"Failed to update product {product_id}") from e

        logger.info("Updated product %s fields=%s", product_id, sorted(changes))
        return model_to_schema(product, ProductRead)

    async def add_photo(self, product_id: str, content_type: str, data: bytes) -> Dict[str, Any]:
        """
        Store an uploaded image and append its URL to the product's photos.

        Raises:
            ValidationError: not an image, empty, or the product is archived
            PayloadTooLargeError: larger than MAX_IMAGE_BYTES
            ProductNotFoundError: unknown product
        """
        product_id = str(product_id or "").strip()
        if not product_id:
            raise ValidationError("Missing product_id", field="product_id")
        content_type = str(content_type or "").lower().strip()
        if not content_type.startswith("image/"):
            raise ValidationError("Only image uploads are allowed.", field="file")
        if not data:
            raise ValidationError("Uploaded file is empty.", field="file")
        if len(data) > self.settings.MAX_IMAGE_BYTES:
            limit_mb = self.settings.MAX_IMAGE_BYTES // (1024 * 1024)
            raise PayloadTooLargeError(f"Image must be {limit_mb}MB or smaller.", field="file")

        try:
            product = await self._lock_product(product_id)
            if product.status == ProductStatus.ARCHIVED:
                raise ValidationError("Cannot add photos to archived products", field="product_id")

            image = await self.image_store.save(product_id, content_type, data)
            url = self.image_store.url_for(image.id)
            product.photos = list(product.photos or []) + [url]
            product.updated_at = utc_now()
            await self.db.commit()

        except BaseServiceError:
            await self.db.rollback()
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error("Failed to store photo for %s: %s", product_id, e)
            raise StoreFailure("Failed to store image") from e

        return {"imageId": image.id, "url": url, "product": model_to_schema(product, ProductRead)}
