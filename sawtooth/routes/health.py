import logging

from fastapi import APIRouter
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from sawtooth.database import async_session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

REQUIRED_TABLES = ("products", "processed_payment_sessions", "product_images", "ai_opportunities", "activity_log")


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "Sawtooth Storefront"}


@router.get("/health/db")
async def database_health():
    """Check database connectivity and that the ledger tables exist"""
    try:
        async with async_session() as session:
            await session.execute(text("SELECT 1"))
            connection = await session.connection()
            tables = await connection.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database health check failed: %s", e)
        return {"status": "unhealthy", "database": "error", "error": str(e)}

    missing = [name for name in REQUIRED_TABLES if name not in tables]
    return {
        "status": "healthy" if not missing else "degraded",
        "database": "connected",
        "tables_count": len(tables),
        "missing_tables": missing,
    }
