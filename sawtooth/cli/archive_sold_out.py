# sawtooth/cli/archive_sold_out.py
import asyncio

import click

from sawtooth.core.logging_config import configure_logging
from sawtooth.scheduler import run_sold_out_sweep


@click.command("archive-sold-out")
def archive_sold_out():
    """Run the sold-out archive sweep once, outside the scheduler"""
    configure_logging()
    result = asyncio.run(run_sold_out_sweep())
    click.echo(
        f"Archived {result['archived_count']} products, "
        f"deleted {result['deleted_images']} images"
    )


if __name__ == "__main__":
    archive_sold_out()
