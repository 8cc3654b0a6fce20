"""Shared pytest fixtures: an in-memory link store, a SQLite database and the API client."""

import asyncio
import datetime
from collections.abc import AsyncGenerator, Callable
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
import redis.asyncio as redis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.auth import create_session_token
from app.background import BackgroundTaskRunner
from app.config import Settings
from app.database import Base, get_db
from app.dependencies import ServiceManager
from app.enums import AppEnvironment
from app.main import app
from app.models import Link, User, utcnow
from app.store import DuplicateShortCodeError, PersistenceError
from app.users import IdentityProfile

ADMIN_EMAIL = "admin@example.com"


class InMemoryLinkStore:
    """Dict-backed stand-in for SQLAlchemyLinkStore.

    Operation names listed in ``fail_on`` raise PersistenceError; every call
    is recorded in ``calls``.
    """

    def __init__(self) -> None:
        self.links: dict[int, Link] = {}
        self.calls: list[str] = []
        self.fail_on: set[str] = set()
        self.conflict_on_insert = False
        self._next_id = 1

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise PersistenceError(f"{operation} failed")

    def add(self, short_code: str, original_url: str = "https://example.com", **fields) -> Link:
        link = Link(
            id=self._next_id,
            short_code=short_code,
            original_url=original_url,
            owner_id=fields.get("owner_id"),
            description=fields.get("description"),
            clicks=fields.get("clicks", 0),
            is_custom=fields.get("is_custom", False),
            expires_at=fields.get("expires_at"),
            created_at=fields.get("created_at", utcnow()),
            last_accessed=None,
        )
        self.links[link.id] = link
        self._next_id += 1
        return link

    def by_code(self, short_code: str) -> Link | None:
        return next((link for link in self.links.values() if link.short_code == short_code), None)

    async def find_by_code(self, short_code: str) -> Link | None:
        self._record("find_by_code")
        found = self.by_code(short_code)
        # Yield so concurrent creations interleave between lookup and insert.
        await asyncio.sleep(0)
        return found

    async def find_duplicate_by_url(self, original_url: str) -> Link | None:
        self._record("find_duplicate_by_url")
        matches = [
            link for link in self.links.values() if link.original_url == original_url and not link.is_custom
        ]
        return min(matches, key=lambda link: link.id) if matches else None

    async def insert(self, link: Link) -> Link:
        self._record("insert")
        if self.conflict_on_insert or self.by_code(link.short_code) is not None:
            raise DuplicateShortCodeError(link.short_code)
        link.id = self._next_id
        self._next_id += 1
        self.links[link.id] = link
        return link

    async def increment_clicks(self, link_id: int) -> bool:
        self._record("increment_clicks")
        link = self.links.get(link_id)
        if link is None:
            return False
        link.clicks += 1
        link.last_accessed = utcnow()
        return True

    async def delete_by_id(self, link_id: int) -> bool:
        self._record("delete_by_id")
        return self.links.pop(link_id, None) is not None

    async def list_for_owner(
        self,
        owner_id: int,
        *,
        search: str = "",
        year: int | None = None,
        month: int | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Link], int]:
        self._record("list_for_owner")
        needle = search.lower()
        matches = [
            link
            for link in self.links.values()
            if link.owner_id == owner_id
            and (
                not needle
                or needle in link.original_url.lower()
                or needle in link.short_code.lower()
                or needle in (link.description or "").lower()
            )
            and (not year or link.created_at.year == year)
            and (not year or not month or link.created_at.month == month)
        ]
        matches.sort(key=lambda link: (link.created_at, link.id), reverse=True)
        return matches[offset : offset + limit], len(matches)

    async def delete_expired(self, now: datetime.datetime) -> int:
        self._record("delete_expired")
        expired = [link_id for link_id, link in self.links.items() if link.is_expired(now)]
        for link_id in expired:
            del self.links[link_id]
        return len(expired)


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        APP_ENV=AppEnvironment.TEST,
        BASE_URL="http://short.test",
        SESSION_SECRET="test-secret",
        ADMIN_EMAILS=ADMIN_EMAIL,
        CLEANUP_INTERVAL_SECONDS=0,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def store() -> InMemoryLinkStore:
    return InMemoryLinkStore()


@pytest.fixture
def member() -> User:
    return User(id=1, google_id="google-1", email="member@example.com", name="Member")


@pytest.fixture
def other_member() -> User:
    return User(id=2, google_id="google-2", email="other@example.com", name="Other")


@pytest_asyncio.fixture
async def runner() -> AsyncGenerator[BackgroundTaskRunner, None]:
    background = BackgroundTaskRunner()
    yield background
    await background.drain(timeout=1.0)


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'links.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def redis_client() -> AsyncMock:
    client = AsyncMock(spec=redis.Redis)
    client.ping = AsyncMock(return_value=True)
    client.incr = AsyncMock(return_value=1)
    client.expire = AsyncMock(return_value=True)
    return client


@pytest_asyncio.fixture(scope="function")
async def services(
    test_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    redis_client: AsyncMock,
) -> AsyncGenerator[ServiceManager, None]:
    manager = ServiceManager()
    await manager.cleanup()
    await manager.initialize(settings=test_settings, session_factory=session_factory, cache=redis_client)
    yield manager
    await manager.cleanup()


@pytest_asyncio.fixture(scope="function")
async def client(
    services: ServiceManager,
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def sign_in(services: ServiceManager) -> Callable:
    """Create (or reuse) a user and return the cookie header for their session."""

    async def _sign_in(email: str = "member@example.com", google_id: str | None = None) -> dict[str, str]:
        user = await services.users.upsert_user_from_profile(
            IdentityProfile(google_id=google_id or f"google-{email}", email=email, name=email.split("@")[0])
        )
        token = create_session_token(user.id, services.settings)
        return {"Cookie": f"{services.settings.SESSION_COOKIE_NAME}={token}"}

    return _sign_in
