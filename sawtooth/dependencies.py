from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sawtooth.core.config import Settings, get_settings
from sawtooth.database import async_session
from sawtooth.services.image_store import ProductImageStore
from sawtooth.services.payment_gateway import PaymentGateway
from sawtooth.services.sourcing import OpportunityGenerator


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def get_payment_gateway(settings: Settings = Depends(get_settings)) -> PaymentGateway:
    return PaymentGateway(settings)


def get_opportunity_generator(settings: Settings = Depends(get_settings)) -> OpportunityGenerator:
    return OpportunityGenerator(settings)


def get_image_store(db: AsyncSession = Depends(get_db)) -> ProductImageStore:
    return ProductImageStore(db)
