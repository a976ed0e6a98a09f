"""Shared fixtures: a throwaway SQLite database per test and an API client bound to it."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from siteledger.config import settings
from siteledger.database import Base, create_engine, get_db
from siteledger.main import app
from siteledger.services.access import ensure_admin_user, seed_access_control
import siteledger.models  # noqa: F401


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        await seed_access_control(session)
        await ensure_admin_user(session)

    yield maker
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_db, None)


async def login(client: AsyncClient, email: str, password: str) -> dict:
    response = await client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['data']['accessToken']}"}


async def role_id(client: AsyncClient, headers: dict, name: str) -> int:
    response = await client.get("/api/access-control/roles", params={"perPage": 100}, headers=headers)
    return next(r["id"] for r in response.json()["data"] if r["name"] == name)


@pytest_asyncio.fixture
async def admin_headers(client):
    return await login(client, settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)


@pytest.fixture
def make_user(client, admin_headers):
    """Create a user with a built-in role and return its auth headers"""

    async def _make_user(email: str, role: str = "user", password: str = "secret123") -> dict:
        payload = {
            "name": email.split("@")[0],
            "email": email,
            "password": password,
            "roleId": await role_id(client, admin_headers, role),
        }
        response = await client.post("/api/users", json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return await login(client, email, password)

    return _make_user


@pytest.fixture
def create(client, admin_headers):
    """POST as admin and return the created record"""

    async def _create(path: str, payload: dict) -> dict:
        response = await client.post(path, json=payload, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest_asyncio.fixture
async def site(create):
    return await create("/api/sites", {"site": "Riverside Tower"})


@pytest_asyncio.fixture
async def other_site(create):
    return await create("/api/sites", {"site": "Hill Road Bridge"})


@pytest_asyncio.fixture
async def unit(create):
    return await create("/api/units", {"unitName": "Cum"})


@pytest_asyncio.fixture
async def item(create, unit):
    return await create("/api/items", {"itemCode": "CEM-53", "item": "Cement OPC 53", "unitId": unit["id"]})


@pytest_asyncio.fixture
async def vendor(create):
    return await create("/api/vendors", {"vendorName": "Shree Traders"})


@pytest_asyncio.fixture
async def head(create):
    return await create("/api/cashbook-heads", {"cashbookHeadName": "Site Expenses"})
