"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.

The session is skipped when PostgreSQL is not reachable. Otherwise the schema
is migrated to head once; each test seeds its own users and listings.
"""

import asyncio
import uuid
from dataclasses import dataclass
from pathlib import Path

import pytest
import pytest_asyncio
from alembic import command
from alembic.config import Config
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.main import app
from src.mp_common.database import async_session_factory, engine
from src.mp_gateway.auth.jwt_handler import create_access_token

_ROOT = Path(__file__).resolve().parents[2]

_INSERT_USER_SQL = text("""
    INSERT INTO users (email, display_name, is_admin)
    VALUES (:email, :display_name, :is_admin)
    RETURNING id
""")

_INSERT_LISTING_SQL = text("""
    INSERT INTO listings (seller_id, title, asking_price, shipping_cost, status)
    VALUES (:seller_id, :title, :asking_price, :shipping_cost, 'ACTIVE')
    RETURNING id
""")


@dataclass
class Actor:
    id: str
    headers: dict[str, str]


@pytest_asyncio.fixture(loop_scope="session", scope="session", autouse=True)
async def migrated_database() -> None:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001 - any connect failure means "no database"
        pytest.skip(f"PostgreSQL not reachable: {exc}")
    cfg = Config(str(_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(_ROOT / "alembic"))
    cfg.attributes["configure_logger"] = False
    await asyncio.to_thread(command.upgrade, cfg, "head")


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client; keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _create_user(is_admin: bool = False) -> Actor:
    tag = uuid.uuid4().hex[:10]
    async with async_session_factory() as session:
        user_id = (
            await session.execute(
                _INSERT_USER_SQL,
                {"email": f"it_{tag}@example.com", "display_name": f"it {tag}", "is_admin": is_admin},
            )
        ).scalar_one()
        await session.commit()
    token = create_access_token(str(user_id))
    return Actor(id=str(user_id), headers={"Authorization": f"Bearer {token}"})


@pytest_asyncio.fixture(loop_scope="session")
async def seller() -> Actor:
    return await _create_user()


@pytest_asyncio.fixture(loop_scope="session")
async def buyer() -> Actor:
    return await _create_user()


@pytest_asyncio.fixture(loop_scope="session")
async def other_buyer() -> Actor:
    return await _create_user()


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def admin() -> Actor:
    return await _create_user(is_admin=True)


@pytest.fixture
def make_listing():
    async def _make(seller: Actor, asking_price: int, shipping_cost: int | None = None) -> str:
        async with async_session_factory() as session:
            listing_id = (
                await session.execute(
                    _INSERT_LISTING_SQL,
                    {
                        "seller_id": seller.id,
                        "title": "Integration bike",
                        "asking_price": asking_price,
                        "shipping_cost": shipping_cost,
                    },
                )
            ).scalar_one()
            await session.commit()
        return str(listing_id)

    return _make


async def _user_counters(user_id: str) -> tuple[int, int]:
    async with async_session_factory() as session:
        row = (
            await session.execute(
                text("SELECT total_sales, total_purchases FROM users WHERE id = CAST(:id AS UUID)"),
                {"id": user_id},
            )
        ).fetchone()
    return row.total_sales, row.total_purchases


@pytest.fixture
def user_counters():
    """(total_sales, total_purchases) for a user, read straight from the table."""
    return _user_counters
