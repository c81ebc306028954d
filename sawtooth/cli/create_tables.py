# sawtooth/cli/create_tables.py
import asyncio

import click
from sqlalchemy.ext.asyncio import create_async_engine

from sawtooth.database import Base
from sawtooth import models  # noqa: F401  registers every table on Base.metadata


async def create_all(database_url: str, echo: bool = False) -> None:
    engine = create_async_engine(database_url, echo=echo)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


@click.command("create-tables")
@click.option("--echo/--no-echo", default=False, help="Log the emitted DDL.")
def create_tables(echo):
    """Create all database tables directly from the ORM metadata"""
    from sawtooth.core.config import get_settings
    settings = get_settings()

    asyncio.run(create_all(settings.async_database_url, echo=echo))
    click.echo("All tables created successfully!")


if __name__ == "__main__":
    create_tables()
