"""
Authenticated admin API: product ledger edits, AI drafts, photos, archival.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.core.config import Settings, get_settings
from sawtooth.core.exceptions import ValidationError
from sawtooth.core.security import require_admin
from sawtooth.core.utils import utc_now
from sawtooth.dependencies import get_db
from sawtooth.services.archival import ArchivalService
from sawtooth.services.product_service import ProductService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/api", tags=["admin"], dependencies=[Depends(require_admin)])


def split_update_body(body: Optional[Dict[str, Any]]) -> tuple:
    """Accept {"id", "updates": {...}} or a flat body carrying id beside the fields."""
    body = body if isinstance(body, dict) else {}
    product_id = str(body.get("id") or "").strip()
    if not product_id:
        raise ValidationError("Missing id", field="id")
    updates = body.get("updates")
    if not isinstance(updates, dict):
        updates = {key: value for key, value in body.items() if key != "id"}
    return product_id, updates


@router.get("/products")
async def list_products(db: AsyncSession = Depends(get_db)):
    products = await ProductService(db).list_products()
    return {"ok": True, "products": products}


@router.post("/products")
async def create_product(
    body: Optional[Dict[str, Any]] = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    product = await ProductService(db).create_product(body or {})
    return {"ok": True, "product": product}


@router.patch("/products")
async def update_product(
    body: Optional[Dict[str, Any]] = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    product_id, updates = split_update_body(body)
    product = await ProductService(db).update_product(product_id, updates)
    return {"ok": True, "product": product}


@router.patch("/products/{product_id}")
async def update_product_by_id(
    product_id: str,
    body: Optional[Dict[str, Any]] = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    body = body if isinstance(body, dict) else {}
    updates = body.get("updates") if isinstance(body.get("updates"), dict) else body
    product = await ProductService(db).update_product(product_id, updates)
    return {"ok": True, "product": product}


@router.get("/drafts")
async def list_drafts(db: AsyncSession = Depends(get_db)):
    drafts = await ProductService(db).list_ai_drafts()
    return {"ok": True, "drafts": drafts}


@router.patch("/drafts")
async def update_draft(
    body: Optional[Dict[str, Any]] = Body(default=None),
    db: AsyncSession = Depends(get_db),
):
    product_id, updates = split_update_body(body)
    service = ProductService(db)
    draft = await service.update_product(product_id, updates)
    return {"ok": True, "draft": draft, "drafts": await service.list_ai_drafts()}


@router.post("/products/{product_id}/photos")
async def upload_photo(
    product_id: str,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
):
    data = await file.read()
    result = await ProductService(db).add_photo(product_id, file.content_type, data)
    return {"ok": True, **result}


@router.post("/archive-sold-out")
async def archive_sold_out(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Run the sold-out sweep now instead of waiting for the schedule."""
    result = await ArchivalService(db, archive_after_days=settings.SOLD_OUT_ARCHIVE_DAYS).sweep_sold_out()
    return {"ok": True, **result}


@router.get("/health")
async def admin_health(settings: Settings = Depends(get_settings)):
    return {
        "ok": True,
        "stripe_key_present": bool(settings.STRIPE_SECRET_KEY),
        "site_url": (settings.SITE_URL or "").rstrip("/"),
        "timestamp": utc_now().isoformat() + "Z",
    }
