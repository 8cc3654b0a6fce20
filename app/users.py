"""User records for signed-in link owners.

Users are created from the profile returned by the external identity
provider; the provider handshake itself lives outside this service.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models import User, utcnow
from app.store import PersistenceError

__all__ = ["IdentityProfile", "UserRepository"]


@dataclass(frozen=True)
class IdentityProfile:
    google_id: str
    email: str | None = None
    name: str | None = None
    picture: str | None = None


class UserRepository:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self._session_factory = session_factory
        self._logger = logger or logging.getLogger("linkshortener")

    async def get(self, user_id: int) -> User | None:
        try:
            async with self._session_factory() as session:
                return await session.get(User, user_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    async def upsert_user_from_profile(self, profile: IdentityProfile) -> User:
        """Return the user for ``profile.google_id``, creating it on first sign-in.

        Existing users get ``last_login`` refreshed; profile fields are kept
        as first recorded.
        """
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(User).where(User.google_id == profile.google_id))
                user = result.scalar_one_or_none()
                now = utcnow()
                if user is None:
                    user = User(
                        google_id=profile.google_id,
                        email=profile.email,
                        name=profile.name,
                        picture=profile.picture,
                        created_at=now,
                        last_login=now,
                    )
                    session.add(user)
                    self._logger.info(f"New user registered: {profile.email}")
                else:
                    user.last_login = now
                await session.commit()
                await session.refresh(user)
                return user
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc
