"""Read-side link operations: per-link statistics and owner listings."""

import logging
import math
from dataclasses import dataclass, field

from app.enums import ErrorKind
from app.models import Link, User, utcnow
from app.results import Result
from app.store import LinkStore, PersistenceError

__all__ = ["LinkListing", "LinkQueries", "MAX_PAGE_SIZE", "DEFAULT_PAGE_SIZE"]

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
MAX_SEARCH_LENGTH = 255


@dataclass
class LinkListing:
    links: list[Link] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


class LinkQueries:
    def __init__(self, store: LinkStore, logger: logging.Logger | logging.LoggerAdapter | None = None):
        self._store = store
        self._logger = logger or logging.getLogger("linkshortener")

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "LinkQueries":
        return cls(ctx.store, ctx.logger)

    async def get_stats(self, short_code: str) -> Result[Link]:
        """Public statistics for one link. Expired links are removed and reported GONE."""
        try:
            link = await self._store.find_by_code(short_code)
            if link is None:
                return Result.failure(ErrorKind.NOT_FOUND, "URL not found")
            if link.is_expired(utcnow()):
                await self._store.delete_by_id(link.id)
                self._logger.info(f"Expired link removed on stats access: {short_code}")
                return Result.failure(ErrorKind.GONE, "This link has expired")
        except PersistenceError as exc:
            self._logger.error(f"Stats lookup failed for {short_code}: {exc}")
            return Result.failure(ErrorKind.PERSISTENCE_FAILURE, "Failed to get URL statistics")
        return Result.success(link)

    async def list_links(
        self,
        requester: User | None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        search: str = "",
        month: int | None = None,
        year: int | None = None,
    ) -> Result[LinkListing]:
        """Newest-first page of the requester's own links.

        Guests always get an empty page. ``search`` matches the URL, the code
        or the description; ``month`` only applies together with ``year``.
        """
        errors: dict[str, str] = {}
        if page < 1:
            errors["page"] = "Page must be 1 or greater."
        if not 1 <= limit <= MAX_PAGE_SIZE:
            errors["limit"] = f"Limit must be between 1 and {MAX_PAGE_SIZE}."
        if month is not None and not 1 <= month <= 12:
            errors["month"] = "Month must be between 1 and 12."
        if errors:
            return Result.failure(ErrorKind.VALIDATION_FAILED, "Invalid query parameters", errors)

        if requester is None:
            return Result.success(LinkListing(page=page, limit=limit))

        search = (search or "").strip()[:MAX_SEARCH_LENGTH]
        try:
            links, total = await self._store.list_for_owner(
                requester.id,
                search=search,
                year=year,
                month=month,
                limit=limit,
                offset=(page - 1) * limit,
            )
        except PersistenceError as exc:
            self._logger.error(f"Listing links failed for user {requester.id}: {exc}")
            return Result.failure(ErrorKind.PERSISTENCE_FAILURE, "Failed to fetch URLs")

        return Result.success(LinkListing(links=links, total=total, page=page, limit=limit))
