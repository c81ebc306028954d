from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.dependencies import get_db, get_image_store
from sawtooth.schemas.product import PublicProduct
from sawtooth.services.image_store import ProductImageStore
from sawtooth.services.product_service import ProductService

router = APIRouter(tags=["catalog"])

NO_STORE = {"Cache-Control": "no-store"}


@router.get("/api/products/active")
async def list_active_products(response: Response, db: AsyncSession = Depends(get_db)):
    """Public catalog: active products, newest first."""
    products = await ProductService(db).list_active_products()
    response.headers.update(NO_STORE)
    return {"ok": True, "products": [PublicProduct.from_orm_model(p) for p in products]}


@router.get("/images/{image_id}")
async def get_image(image_id: str, store: ProductImageStore = Depends(get_image_store)):
    image = await store.get(image_id)
    return Response(
        content=bytes(image.data),
        media_type=image.content_type or "application/octet-stream",
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )
