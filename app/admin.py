"""Administrative metrics and maintenance.

General Stats
=============
::
    total_users      COUNT(users)
    total_links      COUNT(links)
    total_clicks     SUM(links.clicks)
    active_links     expires_at IS NULL OR expires_at > now
    expired_links    expires_at <= now
    custom_links     is_custom
    generated_links  total_links - custom_links
    recent_links     created in the last 30 days
    recent_users     created in the last 30 days
"""

import datetime
import logging
from dataclasses import dataclass

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import Link, User, utcnow
from app.store import LinkStore, PersistenceError
from app.sweeper import sweep_expired

__all__ = ["AdminService", "GeneralStats", "RECENT_WINDOW_DAYS"]

RECENT_WINDOW_DAYS = 30


@dataclass(frozen=True)
class GeneralStats:
    total_users: int
    total_links: int
    total_clicks: int
    active_links: int
    expired_links: int
    custom_links: int
    generated_links: int
    recent_links: int
    recent_users: int


class AdminService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        store: LinkStore,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._session_factory = session_factory
        self._store = store
        self._logger = logger or logging.getLogger("linkshortener")

    async def general_stats(self) -> GeneralStats:
        now = utcnow()
        recent_since = now - datetime.timedelta(days=RECENT_WINDOW_DAYS)
        try:
            async with self._session_factory() as session:
                total_users = await session.scalar(select(func.count()).select_from(User))
                total_links = await session.scalar(select(func.count()).select_from(Link))
                total_clicks = await session.scalar(select(func.coalesce(func.sum(Link.clicks), 0)))
                active_links = await session.scalar(
                    select(func.count())
                    .select_from(Link)
                    .where(or_(Link.expires_at.is_(None), Link.expires_at > now))
                )
                expired_links = await session.scalar(
                    select(func.count())
                    .select_from(Link)
                    .where(Link.expires_at.is_not(None), Link.expires_at <= now)
                )
                custom_links = await session.scalar(
                    select(func.count()).select_from(Link).where(Link.is_custom.is_(True))
                )
                recent_links = await session.scalar(
                    select(func.count()).select_from(Link).where(Link.created_at >= recent_since)
                )
                recent_users = await session.scalar(
                    select(func.count()).select_from(User).where(User.created_at >= recent_since)
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

        return GeneralStats(
            total_users=total_users or 0,
            total_links=total_links or 0,
            total_clicks=int(total_clicks or 0),
            active_links=active_links or 0,
            expired_links=expired_links or 0,
            custom_links=custom_links or 0,
            generated_links=(total_links or 0) - (custom_links or 0),
            recent_links=recent_links or 0,
            recent_users=recent_users or 0,
        )

    async def clean_expired(self) -> int:
        return await sweep_expired(self._store, self._logger)
