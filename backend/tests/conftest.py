"""Shared pytest fixtures for the Logistics Price Admin test suite.

Provides:
- In-memory async SQLite database (fresh per test)
- AsyncSession factory
- FastAPI test client (httpx.AsyncClient)
- Seeded permissions and default roles
- Organization/user factories and auth helpers (JWT tokens)
"""

import os
from typing import AsyncGenerator, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Override settings BEFORE any app imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SEED_ON_STARTUP", "false")
os.environ.setdefault("LOG_FORMAT", "text")

from db.base import Base  # noqa: E402
from core.security import create_access_token, hash_password  # noqa: E402

TEST_PASSWORD = "Secret123!"


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine():
    """A private in-memory database for one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    # Import all models so Base.metadata knows about them
    import db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging data. Fixtures commit so the app sees their rows."""
    async with session_factory() as session:
        yield session
        await session.commit()


# ---------------------------------------------------------------------------
# App / HTTP client fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app(db_engine, session_factory):
    """Create a FastAPI app instance wired to the test database."""
    import db.database as db_mod

    original_engine = db_mod.engine
    original_session = db_mod.AsyncSessionLocal
    db_mod.engine = db_engine
    db_mod.AsyncSessionLocal = session_factory

    from app.main import create_app

    yield create_app()

    db_mod.engine = original_engine
    db_mod.AsyncSessionLocal = original_session


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Test data fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def seeded(db_session):
    """Registry permissions and the default roles, keyed by role slug."""
    from services.seed_service import seed_permissions, seed_roles

    permissions = await seed_permissions(db_session)
    roles = await seed_roles(db_session, permissions)
    await db_session.commit()
    return roles


@pytest_asyncio.fixture
async def make_org(db_session):
    """Factory: ``await make_org("Branch", parent)``."""
    from db.models.organization import Organization

    async def _make(name: Optional[str] = None, parent=None):
        org = Organization(
            id=str(uuid4()),
            name=name or f"Org {uuid4().hex[:8]}",
            parent_id=parent.id if parent is not None else None,
            level=parent.level + 1 if parent is not None else 1,
        )
        db_session.add(org)
        await db_session.commit()
        return org

    return _make


@pytest_asyncio.fixture
async def make_role(db_session, seeded):
    """Factory for a custom role holding exactly ``codes``."""
    from db.models.permission import Permission
    from db.models.role import Role
    from sqlalchemy import select

    async def _make(*codes: str, slug: Optional[str] = None):
        codes = [getattr(c, "value", c) for c in codes]
        result = await db_session.execute(select(Permission).where(Permission.code.in_(codes)))
        suffix = uuid4().hex[:8]
        role = Role(
            name=f"Role {suffix}",
            slug=slug or f"role-{suffix}",
            description="",
        )
        role.permissions = list(result.scalars().all())
        db_session.add(role)
        await db_session.commit()
        return role

    return _make


@pytest_asyncio.fixture
async def make_user(db_session, seeded):
    """Factory: ``await make_user(org=branch, roles=["internal"])``.

    ``roles`` accepts default role slugs or Role objects.
    """
    from db.models.user import User

    async def _make(org=None, roles=(), username: Optional[str] = None, is_active: bool = True):
        resolved = [seeded[r] if isinstance(r, str) else r for r in roles]
        user = User(
            id=str(uuid4()),
            username=username or f"user-{uuid4().hex[:8]}",
            password_hash=hash_password(TEST_PASSWORD),
            real_name="Test User",
            organization_id=org.id if org is not None else None,
            is_active=is_active,
        )
        user.roles = resolved
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


def headers_for(user) -> dict:
    """Authorization headers with a valid access token for ``user``."""
    token = create_access_token(
        user_id=user.id,
        username=user.username,
        org_id=user.organization_id,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def org_tree(make_org):
    """Head Office -> Region -> Branch, plus an unrelated Sister region."""
    head = await make_org("Head Office")
    region = await make_org("North Region", head)
    branch = await make_org("Harbor Branch", region)
    sister = await make_org("South Region", head)
    return {"head": head, "region": region, "branch": branch, "sister": sister}


@pytest_asyncio.fixture
async def admin_user(make_user, org_tree):
    return await make_user(org=org_tree["head"], roles=["admin"], username="root-admin")


@pytest_asyncio.fixture
async def auth_headers(admin_user) -> dict:
    return headers_for(admin_user)
