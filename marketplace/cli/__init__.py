# marketplace/cli/__init__.py
import click

from marketplace.cli.create_tables import create_tables
from marketplace.cli.register_agent import register_agent


@click.group()
def cli():
    """Marketplace order core admin commands"""
    from marketplace.core.logging_config import configure_logging
    configure_logging()


cli.add_command(create_tables)
cli.add_command(register_agent)
