import uuid
from decimal import Decimal
from types import SimpleNamespace

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine

from teestudio.canvas import ProductSnapshot
from teestudio.db import Base, build_session_maker, get_db
from teestudio.models import Product
from teestudio.products import seed_catalog
from teestudio.server import app

PASSWORD = "correct-horse-battery"


@pytest.fixture
def tee() -> ProductSnapshot:
    return ProductSnapshot(
        id=7,
        name="Scenario Tee",
        description="A plain tee",
        base_price=Decimal("20.00"),
        category="t-shirts",
        colors=["white", "black"],
        sizes=["S", "M"],
    )


@pytest.fixture
def user():
    return SimpleNamespace(id=uuid.uuid4(), email="shopper@example.com")


@pytest.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    maker = build_session_maker(engine)
    async with maker() as session:
        await seed_catalog(session)
    yield maker
    await engine.dispose()


@pytest.fixture
async def scenario_product_id(session_maker) -> int:
    async with session_maker() as session:
        product = Product(
            name="Scenario Tee",
            description="A plain tee",
            base_price=Decimal("20.00"),
            category="t-shirts",
            colors=["white", "black"],
            sizes=["S", "M"],
        )
        session.add(product)
        await session.commit()
        return product.id


@pytest.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.mockups = {}
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def login(client: httpx.AsyncClient, email: str = "ada@example.com") -> dict:
    """Registers `email` (if needed) and returns bearer auth headers for it."""
    await client.post("/api/auth/register", json={"email": email, "password": PASSWORD})
    response = await client.post("/api/auth/login", data={"username": email, "password": PASSWORD})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def login_as(client):
    async def _login(email: str) -> dict:
        return await login(client, email)
    return _login


@pytest.fixture
async def auth_headers(client) -> dict:
    return await login(client)
