"""Shared fixtures for KiddieRewards backend tests.

Uses SQLite (aiosqlite) by default, no PostgreSQL required.
Set TEST_DATABASE_URL to override (e.g. for CI with real PostgreSQL).
"""

import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")

# Ensure settings can be loaded without .env
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-unit-tests")

from kiddierewards.database import Base  # noqa: E402

API = "/api/v1"
PARENT_PIN = "4321"

# ---------------------------------------------------------------------------
# Engine: SQLite in-memory with StaticPool (shared across connections)
# ---------------------------------------------------------------------------

_engine_kwargs = {}
if TEST_DATABASE_URL.startswith("sqlite"):
    _engine_kwargs = {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool,
    }

_engine = create_async_engine(TEST_DATABASE_URL, echo=False, **_engine_kwargs)
_TestSession = async_sessionmaker(
    bind=_engine, class_=AsyncSession, expire_on_commit=False,
)


# ---------------------------------------------------------------------------
# Session-scoped: create / drop tables
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(scope="session", loop_scope="session", autouse=True)
async def _setup_tables():
    import kiddierewards.models  # noqa: F401  populate Base.metadata

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await _engine.dispose()


# ---------------------------------------------------------------------------
# Reset rate-limiter counters before every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_rate_limits():
    """Clear in-memory rate-limit counters so tests never block each other."""
    from kiddierewards.core.rate_limit import limiter

    storage = getattr(limiter, "_storage", None)
    if storage is not None and hasattr(storage, "reset"):
        storage.reset()


# ---------------------------------------------------------------------------
# No Redis in tests: PIN sessions are token-only
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _no_redis(monkeypatch):
    async def _get_redis():
        return None

    monkeypatch.setattr("kiddierewards.core.redis_client.get_redis", _get_redis)
    monkeypatch.setattr("kiddierewards.services.pin_session_service.get_redis", _get_redis)


# ---------------------------------------------------------------------------
# Per-test session with rollback
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def db_session():
    async with _TestSession() as session:
        yield session
        await session.rollback()


@pytest.fixture()
def locking_statements(db_session: AsyncSession, monkeypatch):
    """SQL of every ``SELECT ... FOR UPDATE`` the session runs, as PostgreSQL renders it.

    SQLite drops the clause, so row locks are checked on the compiled SQL.
    """
    from sqlalchemy.dialects import postgresql

    dialect = postgresql.dialect()
    seen: list[str] = []
    execute = db_session.execute

    async def _recording_execute(statement, *args, **kwargs):
        sql = str(statement.compile(dialect=dialect))
        if "FOR UPDATE" in sql:
            seen.append(sql)
        return await execute(statement, *args, **kwargs)

    monkeypatch.setattr(db_session, "execute", _recording_execute)
    return seen


# ---------------------------------------------------------------------------
# HTTP test client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def client(db_session: AsyncSession):
    from kiddierewards.database import get_db
    from kiddierewards.main import app

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Convenience: registered parent with tokens, PIN session + family_id
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def registered_parent(client: AsyncClient, db_session: AsyncSession):
    """Register a parent, pass the PIN gate and return a context dict.

    Keys: headers (Authorization + X-Pin-Token), auth_headers (Authorization
    only), member_id, family_id, family_name, email, pin, tokens
    """
    from kiddierewards.core.security import decode_token
    from kiddierewards.models.member import Member

    suffix = uuid.uuid4().hex[:8]
    email = f"parent-{suffix}@test.de"
    family_name = f"Test Family {suffix}"
    resp = await client.post(f"{API}/auth/register", json={
        "email": email,
        "password": "testpassword123",
        "display_name": "Test Parent",
        "family_name": family_name,
        "pin": PARENT_PIN,
    })
    assert resp.status_code == 200, resp.text
    tokens = resp.json()
    auth_headers = {"Authorization": f"Bearer {tokens['access_token']}"}

    resp = await client.post(
        f"{API}/auth/pin/verify", headers=auth_headers, json={"pin": PARENT_PIN},
    )
    assert resp.status_code == 200, resp.text
    headers = {**auth_headers, "X-Pin-Token": resp.json()["pin_token"]}

    payload = decode_token(tokens["access_token"])
    member_id = uuid.UUID(payload["sub"])

    result = await db_session.execute(select(Member).where(Member.id == member_id))
    member = result.scalar_one()

    return {
        "headers": headers,
        "auth_headers": auth_headers,
        "member_id": str(member.id),
        "family_id": str(member.family_id),
        "family_name": family_name,
        "email": email,
        "pin": PARENT_PIN,
        "tokens": tokens,
    }


@pytest_asyncio.fixture()
async def children(client: AsyncClient, registered_parent: dict):
    """Two active children (Léo, PIN 1111 and Mia, PIN 2222) in the parent's family."""
    p = registered_parent
    created = []
    for name, avatar, pin in (("Léo", "lion", "1111"), ("Mia", "panda", "2222")):
        resp = await client.post(
            f"{API}/families/{p['family_id']}/members/",
            headers=p["headers"],
            json={"display_name": name, "avatar_key": avatar, "role": "child", "pin": pin},
        )
        assert resp.status_code == 201, resp.text
        created.append({**resp.json(), "pin": pin})
    return created


# ---------------------------------------------------------------------------
# Service-level helpers
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture()
async def family_with_children(db_session: AsyncSession):
    """A family with one parent and two children created directly in the DB.

    Hashes are placeholders; service tests never verify these PINs.
    Keys: family, parent, leo, mia
    """
    from kiddierewards.models import Family, Member, MemberRole

    family = Family(name=f"Service Family {uuid.uuid4().hex[:6]}")
    db_session.add(family)
    await db_session.flush()

    def _member(name: str, role: MemberRole) -> Member:
        return Member(
            family_id=family.id,
            display_name=name,
            role=role,
            pin_hash=f"placeholder-{uuid.uuid4().hex}",
        )

    parent = _member("Parent", MemberRole.PARENT)
    leo = _member("Léo", MemberRole.CHILD)
    mia = _member("Mia", MemberRole.CHILD)
    db_session.add_all([parent, leo, mia])
    await db_session.flush()

    return {"family": family, "parent": parent, "leo": leo, "mia": mia}
