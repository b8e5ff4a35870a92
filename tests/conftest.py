"""
Pytest configuration and fixtures.

API tests run against a fresh SQLite file per test; the app's get_db dependency
is overridden so nothing touches the configured database.
"""
import asyncio
import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-12345")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test-unused.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.database.base import Base
from app.core.database.engine import get_db, import_models
from app.core.limiter import limiter
from app.features.audit_logs.models import AuditAction, AuditLog
from app.features.organizations.models import Organization
from app.features.permissions.registry import Role
from app.features.tasks.models import Task
from app.features.users.auth import create_access_token
from app.features.users.models import User
from app.main import app


class Seeder:
    """Creates rows directly through the test session factory."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def _add(self, obj):
        async def add():
            async with self.session_factory() as session:
                session.add(obj)
                await session.commit()
                await session.refresh(obj)
            return obj
        return asyncio.run(add())

    def organization(self, name: str) -> Organization:
        return self._add(Organization(name=name))

    def user(self, email: str, role: Role = Role.VIEWER, organization: Organization | None = None) -> User:
        return self._add(User(
            email=email,
            name=email.split("@")[0],
            # Not a valid bcrypt hash, so password login always fails for seeded users
            password_hash="!",
            role=role,
            organization_id=organization.id if organization else None,
        ))

    def task(self, owner: User, title: str = "Task", assigned_to: User | None = None, **fields) -> Task:
        return self._add(Task(
            title=title,
            owner_id=owner.id,
            organization_id=owner.organization_id,
            assigned_to_id=assigned_to.id if assigned_to else None,
            **fields,
        ))

    def fetch(self, model, id_: str):
        async def get():
            async with self.session_factory() as session:
                return await session.get(model, id_)
        return asyncio.run(get())

    def audit_logs(self, action: AuditAction | None = None) -> list[AuditLog]:
        async def get():
            async with self.session_factory() as session:
                stmt = select(AuditLog).order_by(AuditLog.created_at, AuditLog.id)
                if action is not None:
                    stmt = stmt.where(AuditLog.action == action)
                return list((await session.execute(stmt)).scalars().all())
        return asyncio.run(get())


@pytest.fixture
def session_factory(tmp_path):
    """Session factory bound to a throwaway SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    import_models()

    async def create_all():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_all())
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def client(session_factory):
    """Test client with get_db overridden and rate limiting disabled."""
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    limiter.enabled = False
    yield TestClient(app)
    app.dependency_overrides.clear()
    limiter.enabled = True


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)


@pytest.fixture
def acme(seed):
    """
    Two organizations.

    acme: owner, admin, viewer, other_viewer
    globex: globex_owner
    """
    acme_org = seed.organization("Acme")
    globex_org = seed.organization("Globex")

    class Acme:
        org = acme_org
        owner = seed.user("owner@acme.com", Role.OWNER, acme_org)
        admin = seed.user("admin@acme.com", Role.ADMIN, acme_org)
        viewer = seed.user("viewer@acme.com", Role.VIEWER, acme_org)
        other_viewer = seed.user("other@acme.com", Role.VIEWER, acme_org)
        globex = globex_org
        globex_owner = seed.user("owner@globex.com", Role.OWNER, globex_org)

    return Acme


def auth_headers(user: User) -> dict:
    """Authorization header carrying a freshly issued token for user."""
    return {"Authorization": f"Bearer {create_access_token(user)}"}
