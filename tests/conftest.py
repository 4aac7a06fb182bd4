"""Pytest fixtures for service and API tests."""

import os

# Must be set before annotool.core.database builds its module-level engine
os.environ.setdefault("ANNOTOOL_DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")

from collections.abc import AsyncGenerator  # noqa: E402
from pathlib import Path  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402

from annotool.core.database import Base, get_db  # noqa: E402
from annotool.core.security import Principal  # noqa: E402
from annotool.models import models  # noqa: E402,F401
from annotool.services.annotation import ExtendedAnnotationService  # noqa: E402
from annotool.services.host.platform import (  # noqa: E402
    ANNOTATE_ACTION,
    ANNOTATE_ADMIN_ACTION,
    MediaPackage,
    RegistryMediaLookup,
    RoleAclEvaluator,
    get_media_lookup,
)


@pytest.fixture
async def session_factory(tmp_path: Path) -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'annotations.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
async def db(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def media_lookup() -> RegistryMediaLookup:
    """Open lookup plus one package only administrators may annotate."""
    lookup = RegistryMediaLookup(open_lookup=True)
    lookup.register(
        MediaPackage(
            id="locked-mp",
            acl={ANNOTATE_ACTION: ["ROLE_ADMIN"], ANNOTATE_ADMIN_ACTION: ["ROLE_ADMIN"]},
        )
    )
    return lookup


@pytest.fixture
def alice() -> Principal:
    return Principal("alice", frozenset({"ROLE_USER"}))


@pytest.fixture
def make_service(db: AsyncSession, media_lookup: RegistryMediaLookup):
    """Build a service acting as the given principal on the shared test session."""

    def _make(principal: Principal) -> ExtendedAnnotationService:
        return ExtendedAnnotationService(db, principal, media_lookup, RoleAclEvaluator())

    return _make


@pytest.fixture
async def service(make_service, alice: Principal) -> ExtendedAnnotationService:
    """Service acting as ``alice``, who already has an annotation user."""
    svc = make_service(alice)
    await svc.create_user("alice", "Alice", None, await svc.create_resource())
    return svc


@pytest.fixture
async def client(
    session_factory: async_sessionmaker, media_lookup: RegistryMediaLookup
) -> AsyncGenerator[AsyncClient, None]:
    """Async client against the app, wired to the per-test database."""
    from annotool.main import app

    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_media_lookup] = lambda: media_lookup

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()

