"""Shared test fixtures and helpers."""

import asyncio

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.core.database.base import Base
from app.core.database.engine import get_db
from app.core.rate_limit import limiter
from app.features.directory_sync.dependencies import get_primary_store, get_secondary_store
from app.features.directory_sync.stores import PrimaryMemberStore, SecondaryMemberStore
from app.features.members.models import Member  # noqa: F401
from app.features.permissions.models import UserRole
from app.features.users.dependencies import get_current_identity
from app.features.users.schemas import Identity
from app.main import app


@pytest.fixture
def anyio_backend():
    return "asyncio"


def make_engine(path) -> AsyncEngine:
    return create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)


async def create_primary_schema(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
def primary_engine(tmp_path):
    engine = make_engine(tmp_path / "primary.db")
    asyncio.run(create_primary_schema(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def secondary_engine(tmp_path):
    engine = make_engine(tmp_path / "secondary.db")
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def primary_store(primary_engine):
    return PrimaryMemberStore(primary_engine, batch_size=2)


@pytest.fixture
def secondary_store(secondary_engine):
    return SecondaryMemberStore(secondary_engine, batch_size=2)


async def add_roles(engine: AsyncEngine, user_id: str, *roles: str) -> None:
    sessions = async_sessionmaker(engine, expire_on_commit=False)
    async with sessions() as session:
        session.add_all(UserRole(user_id=user_id, role=role) for role in roles)
        await session.commit()


class Caller:
    """The identity the overridden auth dependency returns; None means unauthenticated."""

    def __init__(self) -> None:
        self.identity: Identity | None = None

    def login(self, user_id: str, *roles: str, engine: AsyncEngine | None = None) -> Identity:
        if roles:
            asyncio.run(add_roles(engine, user_id, *roles))
        self.identity = Identity(id=user_id, email=f"{user_id}@example.org", name=user_id)
        return self.identity


@pytest.fixture
def caller():
    return Caller()


@pytest.fixture
def client(primary_engine, primary_store, secondary_store, caller):
    """TestClient wired to temporary SQLite stores and an overridable caller."""
    sessions = async_sessionmaker(primary_engine, expire_on_commit=False, autoflush=False)

    async def override_get_db():
        async with sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_current_identity() -> Identity:
        if caller.identity is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return caller.identity

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_identity] = override_get_current_identity
    app.dependency_overrides[get_primary_store] = lambda: primary_store
    app.dependency_overrides[get_secondary_store] = lambda: secondary_store
    limiter.enabled = False
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        limiter.enabled = True
