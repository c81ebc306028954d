from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.core.security import require_admin
from sawtooth.dependencies import get_db, get_opportunity_generator
from sawtooth.schemas.opportunity import OpportunityAction, OpportunityRead
from sawtooth.schemas.product import ProductRead
from sawtooth.services.sourcing import OpportunityGenerator, OpportunityService

router = APIRouter(
    prefix="/admin/api/opportunities",
    tags=["ai-sourcing"],
    dependencies=[Depends(require_admin)],
)


def _format(opportunities):
    return [OpportunityRead.from_orm_model(opp) for opp in opportunities]


@router.get("")
async def list_opportunities(
    db: AsyncSession = Depends(get_db),
    generator: OpportunityGenerator = Depends(get_opportunity_generator),
):
    """The three oldest queued opportunities, generating more when the queue runs low."""
    opportunities = await OpportunityService(db, generator).ensure_opportunities()
    return {"ok": True, "opportunities": _format(opportunities)}


@router.post("/accept")
async def accept_opportunity(
    payload: Optional[OpportunityAction] = None,
    db: AsyncSession = Depends(get_db),
    generator: OpportunityGenerator = Depends(get_opportunity_generator),
):
    service = OpportunityService(db, generator)
    product = await service.accept(payload.opp_id if payload else "")
    draft = ProductRead.from_orm_model(product)
    opportunities = await service.ensure_opportunities()
    return {"ok": True, "product": draft, "draft_product": draft, "opportunities": _format(opportunities)}


@router.post("/decline")
async def decline_opportunity(
    payload: Optional[OpportunityAction] = None,
    db: AsyncSession = Depends(get_db),
    generator: OpportunityGenerator = Depends(get_opportunity_generator),
):
    opportunities = await OpportunityService(db, generator).decline(payload.opp_id if payload else "")
    return {"ok": True, "opportunities": _format(opportunities)}
