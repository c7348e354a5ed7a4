# marketplace/cli/register_agent.py
import asyncio
import click

from marketplace.database import async_session

@click.command("register-agent")
@click.option('--name', required=True, help='Agent display name')
@click.option('--state', 'service_state', default=None, help='Service region; omit to serve every region')
@click.option('--max-deliveries', type=int, default=None, help='Concurrent delivery cap')
def register_agent(name, service_state, max_deliveries):
    """Create a delivery agent record"""
    from marketplace.services.delivery_service import DeliveryService

    async def _register():
        async with async_session() as session:
            agent = await DeliveryService(session).register_agent(name, service_state, max_deliveries)
            click.echo(
                f"Registered agent {agent.id}: {agent.name} "
                f"(region: {agent.service_state or 'all'}, max deliveries: {agent.max_deliveries})"
            )

    asyncio.run(_register())

if __name__ == "__main__":
    register_agent()
