# sawtooth/database.py

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base

from sawtooth.core.config import get_settings

settings = get_settings()
database_url = settings.async_database_url

engine_kwargs = {"echo": False, "future": True}
if not database_url.startswith("sqlite"):
    engine_kwargs.update(
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=1800,
    )

engine = create_async_engine(database_url, **engine_kwargs)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (lists and objects)
JSONType = JSON().with_variant(JSONB(), "postgresql")
