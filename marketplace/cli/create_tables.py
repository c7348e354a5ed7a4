# marketplace/cli/create_tables.py
import asyncio
import click

from marketplace.database import Base, build_engine, database_url

# Import all models to ensure they're registered with the Base
from marketplace import models  # noqa: F401

@click.command("create-tables")
@click.option('--echo/--no-echo', default=False, help='Echo the DDL statements')
def create_tables(echo):
    """Create all database tables directly using SQLAlchemy"""

    async def _create_tables():
        engine = build_engine(database_url, echo=echo)
        try:
            async with engine.begin() as conn:
                # This will create all tables defined in models that inherit from Base
                await conn.run_sync(Base.metadata.create_all)
        finally:
            await engine.dispose()
        click.echo("All tables created successfully!")

    asyncio.run(_create_tables())

if __name__ == "__main__":
    create_tables()
