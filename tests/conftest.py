"""Pytest fixtures for fooddelivery tests."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from fooddelivery.core.config import Settings
from fooddelivery.database import Database, unit_of_work
from fooddelivery.models import DeliveryAgent

from fakes import FakeAgentClient, FakeOrderClient

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def settings(tmp_path):
    """Settings pointing every service at its own SQLite file."""
    return Settings(
        env_mode="development",
        agent_database_url=f"sqlite+aiosqlite:///{tmp_path / 'agents.db'}",
        order_database_url=f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}",
        restaurant_database_url=f"sqlite+aiosqlite:///{tmp_path / 'restaurants.db'}",
        agent_service_url="http://agent-service",
        order_service_url="http://order-service",
        restaurant_service_url="http://restaurant-service",
        http_timeout_seconds=1.0,
    )


@pytest.fixture
def run_db(tmp_path):
    """
    Run an async scenario against a fresh SQLite database.

    The scenario receives the ``Database``; the engine is disposed when it
    returns, so a test may call ``run_db`` several times against the same file.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'store.db'}"

    def run(scenario):
        async def main():
            database = Database(url)
            await database.init()
            try:
                return await scenario(database)
            finally:
                await database.dispose()

        return asyncio.run(main())

    return run


async def add_agent(database, name, minutes, is_available=True):
    """Insert an agent with a fixed ``created_at`` so FIFO order is deterministic."""
    async with database.session() as session:
        agent = DeliveryAgent(
            name=name,
            phone_number="555-0100",
            is_available=is_available,
            created_at=EPOCH + timedelta(minutes=minutes),
        )
        async with unit_of_work(session):
            session.add(agent)
        return agent.id


@pytest.fixture
def agent_client():
    return FakeAgentClient()


@pytest.fixture
def order_client():
    return FakeOrderClient()
