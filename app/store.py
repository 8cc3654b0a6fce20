"""Persistence collaborator for link records.

The core services depend on the ``LinkStore`` protocol only, so tests can
substitute an in-memory fake. ``SQLAlchemyLinkStore`` is the production
implementation on top of the async session factory.

Store Contract
==============
::
    find_by_code(code)            → Link | None
    find_duplicate_by_url(url)    → Link | None   (non-custom records only)
    insert(link)                  → Link          (DuplicateShortCodeError on code clash)
    increment_clicks(link_id)     → bool          (atomic clicks + 1, last_accessed = now)
    delete_by_id(link_id)         → bool
    list_for_owner(...)           → (links, total)
    delete_expired(now)           → int

Error Translation
=================
::
    IntegrityError on short_code ──► DuplicateShortCodeError
    any other SQLAlchemyError ─────► PersistenceError

Key Behaviours
===============
- Every operation opens and closes its own session, so concurrent callers
  and detached background tasks never share one.
- Uniqueness of ``short_code`` is enforced by the database constraint; the
  store never takes an in-process lock.
- Sessions use ``expire_on_commit=False``; returned records stay readable
  after their session is closed.
"""

import datetime
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol

from sqlalchemy import delete, extract, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Link, utcnow

__all__ = [
    "DuplicateShortCodeError",
    "LinkStore",
    "PersistenceError",
    "SQLAlchemyLinkStore",
]


class DuplicateShortCodeError(Exception):
    """The short code is already held by another record."""

    def __init__(self, short_code: str):
        super().__init__(f"Short code '{short_code}' already exists")
        self.short_code = short_code


class PersistenceError(Exception):
    """Any store failure other than a short-code uniqueness violation."""


class LinkStore(Protocol):
    async def find_by_code(self, short_code: str) -> Link | None: ...

    async def find_duplicate_by_url(self, original_url: str) -> Link | None: ...

    async def insert(self, link: Link) -> Link: ...

    async def increment_clicks(self, link_id: int) -> bool: ...

    async def delete_by_id(self, link_id: int) -> bool: ...

    async def list_for_owner(
        self,
        owner_id: int,
        *,
        search: str = "",
        year: int | None = None,
        month: int | None = None,
        limit: int = 10,
        offset: int = 0,
    ) -> tuple[list[Link], int]: ...

    async def delete_expired(self, now: datetime.datetime) -> int: ...


def _is_short_code_violation(exc: IntegrityError) -> bool:
    # Postgres names the unique index ix_links_short_code; SQLite reports links.short_code.
    return "short_code" in str(exc.orig)


class SQLAlchemyLinkStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    async def find_by_code(self, short_code: str) -> Link | None:
        async with self._session() as session:
            result = await session.execute(select(Link).where(Link.short_code == short_code))
            return result.scalar_one_or_none()

    async def find_duplicate_by_url(self, original_url: str) -> Link | None:
        async with self._session() as session:
            result = await session.execute(
                select(Link)
                .where(Link.original_url == original_url, Link.is_custom.is_(False))
                .order_by(Link.id)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def insert(self, link: Link) -> Link:
        async with self._session() as session:
            session.add(link)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if _is_short_code_violation(exc):
                    raise DuplicateShortCodeError(link.short_code) from exc
                raise PersistenceError(str(exc)) from exc
            await session.refresh(link)
            return link

    async def increment_clicks(self, link_id: int) -> bool:
        async with self._session() as session:
            result = await session.execute(
                update(Link)
                .where(Link.id == link_id)
                .values(clicks=Link.clicks + 1, last_accessed=utcnow())
            )
            await session.commit()
            return result.rowcount > 0

    async def delete_by_id(self, link_id: int) -> bool:
        async with self._session() as session:
            result = await session.execute(delete(Link).where(Link.id == link_id))
            await session.commit()
            return result.rowcount > 0

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
        conditions = [Link.owner_id == owner_id]
        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(
                    Link.original_url.ilike(pattern),
                    Link.short_code.ilike(pattern),
                    Link.description.ilike(pattern),
                )
            )
        if year:
            conditions.append(extract("year", Link.created_at) == year)
            if month:
                conditions.append(extract("month", Link.created_at) == month)

        async with self._session() as session:
            rows = await session.execute(
                select(Link)
                .where(*conditions)
                .order_by(Link.created_at.desc(), Link.id.desc())
                .limit(limit)
                .offset(offset)
            )
            total = await session.execute(select(func.count()).select_from(Link).where(*conditions))
            return list(rows.scalars().all()), total.scalar_one()

    async def delete_expired(self, now: datetime.datetime) -> int:
        async with self._session() as session:
            result = await session.execute(
                delete(Link).where(Link.expires_at.is_not(None), Link.expires_at < now)
            )
            await session.commit()
            return result.rowcount
