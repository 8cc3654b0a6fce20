"""SQLAlchemyLinkStore tests on a SQLite database."""

import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Link, User, as_utc, utcnow
from app.store import DuplicateShortCodeError, PersistenceError, SQLAlchemyLinkStore


def new_link(short_code: str, original_url: str = "https://example.com", **fields) -> Link:
    return Link(
        short_code=short_code,
        original_url=original_url,
        owner_id=fields.get("owner_id"),
        description=fields.get("description"),
        clicks=0,
        is_custom=fields.get("is_custom", False),
        expires_at=fields.get("expires_at"),
        created_at=fields.get("created_at", utcnow()),
    )


@pytest.fixture
def link_store(session_factory: async_sessionmaker[AsyncSession]) -> SQLAlchemyLinkStore:
    return SQLAlchemyLinkStore(session_factory)


@pytest.mark.asyncio
async def test_insert_and_find_by_code(link_store: SQLAlchemyLinkStore) -> None:
    created = await link_store.insert(new_link("abc1234", description="Landing page"))

    found = await link_store.find_by_code("abc1234")

    assert created.id is not None
    assert found.id == created.id
    assert found.description == "Landing page"
    assert found.clicks == 0
    assert await link_store.find_by_code("missing") is None


@pytest.mark.asyncio
async def test_duplicate_code_raises_duplicate_error(link_store: SQLAlchemyLinkStore) -> None:
    await link_store.insert(new_link("taken"))

    with pytest.raises(DuplicateShortCodeError) as exc_info:
        await link_store.insert(new_link("taken", "https://other.example.com"))

    assert exc_info.value.short_code == "taken"


@pytest.mark.asyncio
async def test_find_duplicate_skips_custom_links(link_store: SQLAlchemyLinkStore) -> None:
    await link_store.insert(new_link("custom1", "https://example.com/d", is_custom=True))
    assert await link_store.find_duplicate_by_url("https://example.com/d") is None

    generated = await link_store.insert(new_link("gen0001", "https://example.com/d"))
    duplicate = await link_store.find_duplicate_by_url("https://example.com/d")

    assert duplicate.id == generated.id


@pytest.mark.asyncio
async def test_increment_clicks_updates_count_and_last_accessed(link_store: SQLAlchemyLinkStore) -> None:
    link = await link_store.insert(new_link("abc1234"))

    assert await link_store.increment_clicks(link.id) is True
    assert await link_store.increment_clicks(link.id) is True
    refreshed = await link_store.find_by_code("abc1234")

    assert refreshed.clicks == 2
    assert refreshed.last_accessed is not None
    assert await link_store.increment_clicks(9999) is False


@pytest.mark.asyncio
async def test_delete_by_id(link_store: SQLAlchemyLinkStore) -> None:
    link = await link_store.insert(new_link("abc1234"))

    assert await link_store.delete_by_id(link.id) is True
    assert await link_store.delete_by_id(link.id) is False
    assert await link_store.find_by_code("abc1234") is None


@pytest.mark.asyncio
async def test_expiry_round_trips_as_utc(link_store: SQLAlchemyLinkStore) -> None:
    expires_at = utcnow() - datetime.timedelta(hours=1)
    await link_store.insert(new_link("old1234", expires_at=expires_at))

    found = await link_store.find_by_code("old1234")

    assert abs((as_utc(found.expires_at) - expires_at).total_seconds()) < 1
    assert found.is_expired() is True


@pytest.mark.asyncio
async def test_list_for_owner_filters_and_orders(
    link_store: SQLAlchemyLinkStore, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    async with session_factory() as session:
        owner = User(google_id="g-owner", email="owner@example.com", created_at=utcnow())
        stranger = User(google_id="g-stranger", email="stranger@example.com", created_at=utcnow())
        session.add_all([owner, stranger])
        await session.commit()

    await link_store.insert(
        new_link("march01", "https://shop.example.com", owner_id=owner.id,
                 created_at=datetime.datetime(2025, 3, 1, tzinfo=datetime.UTC))
    )
    await link_store.insert(
        new_link("april01", "https://blog.example.com", owner_id=owner.id, description="Shop launch",
                 created_at=datetime.datetime(2025, 4, 1, tzinfo=datetime.UTC))
    )
    await link_store.insert(new_link("theirs1", "https://shop.example.org", owner_id=stranger.id))

    links, total = await link_store.list_for_owner(owner.id)
    assert [link.short_code for link in links] == ["april01", "march01"]
    assert total == 2

    links, total = await link_store.list_for_owner(owner.id, search="shop")
    assert {link.short_code for link in links} == {"march01", "april01"}

    links, total = await link_store.list_for_owner(owner.id, year=2025, month=3)
    assert [link.short_code for link in links] == ["march01"]
    assert total == 1

    links, total = await link_store.list_for_owner(owner.id, limit=1, offset=1)
    assert [link.short_code for link in links] == ["march01"]
    assert total == 2


@pytest.mark.asyncio
async def test_delete_expired_removes_only_past_links(link_store: SQLAlchemyLinkStore) -> None:
    now = utcnow()
    await link_store.insert(new_link("past001", expires_at=now - datetime.timedelta(days=1)))
    await link_store.insert(new_link("future1", "https://example.com/f", expires_at=now + datetime.timedelta(days=1)))
    await link_store.insert(new_link("never01", "https://example.com/n"))

    removed = await link_store.delete_expired(now)

    assert removed == 1
    assert await link_store.find_by_code("past001") is None
    assert await link_store.find_by_code("future1") is not None
    assert await link_store.find_by_code("never01") is not None


@pytest.mark.asyncio
async def test_database_errors_become_persistence_errors(
    link_store: SQLAlchemyLinkStore, session_factory: async_sessionmaker[AsyncSession]
) -> None:
    async with session_factory.kw["bind"].begin() as conn:
        await conn.run_sync(Link.__table__.drop)

    with pytest.raises(PersistenceError):
        await link_store.find_by_code("abc1234")
