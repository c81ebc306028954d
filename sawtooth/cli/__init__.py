import click

from sawtooth.cli.archive_sold_out import archive_sold_out
from sawtooth.cli.create_tables import create_tables


@click.group()
def cli():
    """Sawtooth storefront maintenance commands"""


cli.add_command(create_tables)
cli.add_command(archive_sold_out)
