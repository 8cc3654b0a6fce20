"""Deletion authorization for links.

Decision Table
==============
::
    requester   record     owner_id          outcome
    ─────────   ────────   ───────────────   ────────────
    None        any        any               UNAUTHORIZED
    user        missing    -                 NOT_FOUND
    user        present    NULL (guest)      authorized
    user        present    != requester.id   FORBIDDEN
    user        present    == requester.id   authorized

Guest-created links carry no owner, so any signed-in user may delete them.
"""

import logging

from app.enums import ErrorKind
from app.models import Link, User
from app.results import Result
from app.store import LinkStore, PersistenceError

__all__ = ["OwnershipGuard"]


class OwnershipGuard:
    def __init__(self, store: LinkStore, logger: logging.Logger | logging.LoggerAdapter | None = None):
        self._store = store
        self._logger = logger or logging.getLogger("linkshortener")

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "OwnershipGuard":
        return cls(ctx.store, ctx.logger)

    async def authorize_delete(self, short_code: str, requester: User | None) -> Result[Link]:
        if requester is None:
            return Result.failure(ErrorKind.UNAUTHORIZED, "Authentication required")

        try:
            link = await self._store.find_by_code(short_code)
        except PersistenceError as exc:
            self._logger.error(f"Ownership lookup failed for {short_code}: {exc}")
            return Result.failure(ErrorKind.PERSISTENCE_FAILURE, "Failed to delete URL")

        if link is None:
            return Result.failure(ErrorKind.NOT_FOUND, "URL not found")
        if link.owner_id is not None and link.owner_id != requester.id:
            self._logger.warning(
                f"User {requester.id} denied delete of {short_code}",
                extra={"short_code": short_code, "user_id": requester.id},
            )
            return Result.failure(ErrorKind.FORBIDDEN, "You are not allowed to delete this URL")
        return Result.success(link)

    async def delete_link(self, short_code: str, requester: User | None) -> Result[Link]:
        """Authorize, then delete by id.

        A record removed between the check and the delete reports NOT_FOUND.
        """
        authorized = await self.authorize_delete(short_code, requester)
        if not authorized.ok:
            return authorized

        link = authorized.value
        try:
            deleted = await self._store.delete_by_id(link.id)
        except PersistenceError as exc:
            self._logger.error(f"Delete failed for {short_code}: {exc}")
            return Result.failure(ErrorKind.PERSISTENCE_FAILURE, "Failed to delete URL")

        if not deleted:
            return Result.failure(ErrorKind.NOT_FOUND, "URL not found")

        self._logger.info(f"Link deleted: {short_code}", extra={"short_code": short_code, "user_id": requester.id})
        return Result.success(link)
