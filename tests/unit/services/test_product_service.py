# tests/unit/services/test_product_service.py
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import func, select

from sawtooth.core.enums import ProductStatus
from sawtooth.core.exceptions import PayloadTooLargeError, ProductNotFoundError, ValidationError
from sawtooth.models.product import Product
from sawtooth.models.product_image import ProductImage
from sawtooth.services.image_store import ProductImageStore
from sawtooth.services.product_service import ProductService

T0 = datetime(2026, 4, 1, 10, 0, 0)
T1 = datetime(2026, 4, 2, 10, 0, 0)
T2 = datetime(2026, 4, 3, 10, 0, 0)


async def _reload(session_factory, product_id):
    async with session_factory() as session:
        return await session.get(Product, product_id)


# --- Tests for unique_product_id ---

@pytest.mark.asyncio
async def test_unique_product_id_appends_counter(mocker):
    """
    Test that unique_product_id walks -2, -3 ... until a free id is found.
    """
    # 1. Arrange
    mock_session = AsyncMock()
    mock_session.scalar.side_effect = [True, True, False]

    # 2. Act
    result = await ProductService(db=mock_session).unique_product_id("levis-501")

    # 3. Assert
    assert result == "levis-501-3"
    assert mock_session.scalar.await_count == 3


# --- Tests for update_product: sold_out_since bookkeeping ---

async def test_inventory_to_zero_sets_sold_out_since(session_factory, make_product):
    await make_product("p1", inventory=3)

    async with session_factory() as session:
        updated = await ProductService(session).update_product("p1", {"inventory": 0}, now=T0)

    assert updated.sold_out_since == T0
    assert (await _reload(session_factory, "p1")).sold_out_since == T0


async def test_restock_clears_sold_out_since(session_factory, make_product):
    await make_product("p1", inventory=0, sold_out_since=T0)

    async with session_factory() as session:
        updated = await ProductService(session).update_product("p1", {"inventory": 2}, now=T1)

    assert updated.inventory == 2
    assert updated.sold_out_since is None


async def test_zero_to_zero_leaves_sold_out_since_unchanged(session_factory, make_product):
    await make_product("p1", inventory=0, sold_out_since=T0)

    async with session_factory() as session:
        updated = await ProductService(session).update_product("p1", {"inventory": 0}, now=T2)

    assert updated.sold_out_since == T0


async def test_update_without_inventory_leaves_sold_out_since(session_factory, make_product):
    await make_product("p1", inventory=0, sold_out_since=T0)

    async with session_factory() as session:
        updated = await ProductService(session).update_product("p1", {"title": "Renamed"}, now=T1)

    assert updated.title == "Renamed"
    assert updated.sold_out_since == T0
    assert updated.updated_at == T1


# --- Tests for update_product: archive side effects ---

async def test_archive_clears_photos_and_deletes_images(session_factory, make_product):
    await make_product("p1", photos=["/images/a", "/images/b"])
    async with session_factory() as session:
        await ProductImageStore(session).save("p1", "image/jpeg", b"\xff\xd8jpeg")
        await session.commit()

    async with session_factory() as session:
        updated = await ProductService(session).update_product("p1", {"status": "archived"}, now=T0)

    assert updated.status == ProductStatus.ARCHIVED
    assert updated.photos == []
    assert updated.archived_at == T0
    async with session_factory() as session:
        remaining = await session.scalar(select(func.count()).select_from(ProductImage))
    assert remaining == 0


async def test_unarchive_clears_archived_at_without_restoring_photos(session_factory, make_product):
    await make_product("p1", status=ProductStatus.ARCHIVED, archived_at=T0, photos=[])

    async with session_factory() as session:
        updated = await ProductService(session).update_product("p1", {"status": "active"}, now=T1)

    assert updated.status == ProductStatus.ACTIVE
    assert updated.archived_at is None
    assert updated.photos == []


async def test_archived_to_archived_keeps_original_timestamp(session_factory, make_product):
    await make_product("p1", status=ProductStatus.ARCHIVED, archived_at=T0)

    async with session_factory() as session:
        updated = await ProductService(session).update_product("p1", {"status": "ARCHIVED"}, now=T2)

    assert updated.archived_at == T0


# --- Tests for update_product: validation ---

@pytest.mark.parametrize("updates, field", [
    ({"inventory": -1}, "inventory"),
    ({"inventory": "lots"}, "inventory"),
    ({"price_cents": -5}, "price"),
    ({"price": -1.0}, "price"),
    ({"status": "sold"}, "status"),
    ({"category": "toys"}, "category"),
    ({"buy_price_max_cents": -1}, "buy_price_max_cents"),
])
async def test_invalid_fields_are_rejected_before_any_write(session_factory, make_product, updates, field):
    await make_product("p1", inventory=3, price_cents=1000)

    async with session_factory() as session:
        with pytest.raises(ValidationError) as exc_info:
            await ProductService(session).update_product("p1", updates)

    assert exc_info.value.field == field
    product = await _reload(session_factory, "p1")
    assert product.inventory == 3
    assert product.price_cents == 1000


async def test_clothes_requires_valid_subcategory(session_factory, make_product):
    await make_product("p1", category="shoes", clothing_subcategory="")

    async with session_factory() as session:
        with pytest.raises(ValidationError) as exc_info:
            await ProductService(session).update_product("p1", {"category": "clothes"})

    assert exc_info.value.message == "Invalid subcategory"
    assert (await _reload(session_factory, "p1")).category == "shoes"


async def test_non_clothes_category_forces_empty_subcategory(session_factory, make_product):
    await make_product("p1", category="clothes", clothing_subcategory="womens")

    async with session_factory() as session:
        updated = await ProductService(session).update_product(
            "p1", {"category": "furniture", "clothing_subcategory": "mens"}
        )

    assert updated.category == "furniture"
    assert updated.clothing_subcategory == ""


async def test_price_in_dollars_is_rounded_to_cents(session_factory, make_product):
    await make_product("p1")

    async with session_factory() as session:
        updated = await ProductService(session).update_product("p1", {"price": 19.99})

    assert updated.price_cents == 1999
    assert updated.price == 19.99


async def test_blank_currency_falls_back_to_default(session_factory, make_product):
    await make_product("p1", currency="cad")

    async with session_factory() as session:
        updated = await ProductService(session).update_product("p1", {"currency": "  "})

    assert updated.currency == "usd"


async def test_empty_update_is_rejected(db_session, make_product):
    await make_product("p1")

    with pytest.raises(ValidationError) as exc_info:
        await ProductService(db_session).update_product("p1", {"unknown": 1, "title": None})
    assert exc_info.value.message == "No valid updates"


async def test_update_unknown_product(db_session):
    with pytest.raises(ProductNotFoundError):
        await ProductService(db_session).update_product("missing", {"title": "x"})


# --- Tests for create_product ---

async def test_create_product_slugifies_and_uniquifies_id(session_factory, make_product):
    await make_product("levi-s-501-jeans")

    async with session_factory() as session:
        created = await ProductService(session).create_product(
            {"title": "Levi's 501 Jeans", "price": 45, "clothing_subcategory": "mens"}
        )

    assert created.id == "levi-s-501-jeans-2"
    assert created.status == ProductStatus.DRAFT
    assert created.inventory == 1
    assert created.price_cents == 4500
    assert created.category == "clothes"


async def test_create_product_with_zero_inventory_is_sold_out(db_session):
    created = await ProductService(db_session).create_product(
        {"title": "Empty Shelf", "inventory": 0, "category": "furniture"}, now=T0
    )

    assert created.sold_out_since == T0
    assert created.clothing_subcategory == ""


async def test_create_archived_product_sets_archived_at(db_session):
    created = await ProductService(db_session).create_product(
        {"title": "Old Stock", "status": "archived", "category": "furniture", "photos": ["/images/x"]}, now=T0
    )

    assert created.archived_at == T0
    assert created.photos == []


async def test_create_product_requires_title(db_session):
    with pytest.raises(ValidationError) as exc_info:
        await ProductService(db_session).create_product({"title": "   "})
    assert exc_info.value.field == "title"


# --- Tests for list_ai_drafts ---

async def test_list_ai_drafts_filters_by_tag_and_status(db_session, make_product):
    await make_product("ai-one", tags=["ai-draft"], status=ProductStatus.DRAFT)
    await make_product("ai-archived", tags=["ai-draft"], status=ProductStatus.ARCHIVED)
    await make_product("manual", tags=[], status=ProductStatus.DRAFT)

    drafts = await ProductService(db_session).list_ai_drafts()

    assert [d.id for d in drafts] == ["ai-one"]


# --- Tests for add_photo ---

async def test_add_photo_appends_url(session_factory, make_product):
    await make_product("p1", photos=["/images/existing"])

    async with session_factory() as session:
        result = await ProductService(session).add_photo("p1", "image/png", b"\x89PNG")

    assert result["url"] == f"/images/{result['imageId']}"
    assert (await _reload(session_factory, "p1")).photos == ["/images/existing", result["url"]]


async def test_add_photo_refuses_archived_product(session_factory, make_product):
    await make_product("p1", status=ProductStatus.ARCHIVED, archived_at=T0)

    async with session_factory() as session:
        with pytest.raises(ValidationError) as exc_info:
            await ProductService(session).add_photo("p1", "image/png", b"\x89PNG")
    assert exc_info.value.message == "Cannot add photos to archived products"


async def test_add_photo_rejects_non_images_and_oversized_files(settings):
    mock_session = AsyncMock()
    service = ProductService(mock_session, image_store=MagicMock(), settings=settings)

    with pytest.raises(ValidationError):
        await service.add_photo("p1", "application/pdf", b"%PDF")
    with pytest.raises(PayloadTooLargeError):
        await service.add_photo("p1", "image/jpeg", b"x" * (settings.MAX_IMAGE_BYTES + 1))
    mock_session.execute.assert_not_awaited()


# --- Invariants on admin write paths ---

async def test_create_clothes_without_subcategory_is_rejected(db_session):
    """A product is never created as clothes with an empty subcategory."""
    with pytest.raises(ValidationError) as exc_info:
        await ProductService(db_session).create_product({"title": "Plain Tee"})

    assert exc_info.value.message == "Invalid subcategory"
    assert exc_info.value.field == "clothing_subcategory"
    assert await db_session.scalar(select(func.count()).select_from(Product)) == 0


@pytest.mark.parametrize("updates", [
    {"photos": ["/images/x"]},
    {"status": "archived", "photos": ["/images/x"]},
])
async def test_archived_product_cannot_regain_photos(session_factory, make_product, updates):
    await make_product("gone", status=ProductStatus.ARCHIVED, archived_at=T0, photos=[])

    async with session_factory() as session:
        with pytest.raises(ValidationError) as exc_info:
            await ProductService(session).update_product("gone", updates)

    assert exc_info.value.field == "photos"
    assert (await _reload(session_factory, "gone")).photos == []


async def test_archived_product_accepts_empty_photo_list(session_factory, make_product):
    await make_product("gone", status=ProductStatus.ARCHIVED, archived_at=T0, photos=[])

    async with session_factory() as session:
        updated = await ProductService(session).update_product("gone", {"photos": [], "title": "Gone"})

    assert updated.photos == []
    assert updated.title == "Gone"


async def test_archiving_with_photos_in_body_still_clears_them(session_factory, make_product):
    await make_product("p1", photos=["/images/a"])

    async with session_factory() as session:
        updated = await ProductService(session).update_product(
            "p1", {"status": "archived", "photos": ["/images/a"]}, now=T0
        )

    assert updated.status == ProductStatus.ARCHIVED
    assert updated.photos == []
