"""Integration-test fixtures.

These tests talk to a real PostgreSQL with migrations applied
(``alembic upgrade head``) and are skipped unless RUN_INTEGRATION=1.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool (created at import time) remains valid across the
entire test session.
"""

import os
import uuid
from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.main import app
from src.sx_common.database import async_session_factory
from src.sx_gateway.auth.jwt_handler import create_access_token


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if os.environ.get("RUN_INTEGRATION") == "1":
        return
    skip = pytest.mark.skip(reason="set RUN_INTEGRATION=1 to run against PostgreSQL")
    for item in items:
        if "integration" in item.nodeid:
            item.add_marker(skip)


@dataclass
class Seeded:
    listing_id: str
    seller_id: str
    buyer_id: str
    other_buyer_id: str


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Session-scoped async HTTP client: keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session")
async def seeded() -> Seeded:
    """Fresh users and a listing per test, so tests never see each other's orders."""
    uid = uuid.uuid4().hex[:8]
    data = Seeded(
        listing_id=f"lst-{uid}",
        seller_id=f"seller-{uid}",
        buyer_id=f"buyer-{uid}",
        other_buyer_id=f"buyer2-{uid}",
    )
    async with async_session_factory() as session, session.begin():
        for user_id in (data.seller_id, data.buyer_id, data.other_buyer_id):
            await session.execute(
                text("INSERT INTO users (id, username) VALUES (:id, :username)"),
                {"id": user_id, "username": f"u_{user_id}"},
            )
        await session.execute(
            text(
                "INSERT INTO listings (id, name, seller_id, retail_price) "
                "VALUES (:id, :name, :seller_id, 180.00)"
            ),
            {"id": data.listing_id, "name": f"Air Jordan 1 {uid}", "seller_id": data.seller_id},
        )
    return data


@pytest.fixture
def auth() -> Callable[[str], dict[str, str]]:
    def _header(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _header
