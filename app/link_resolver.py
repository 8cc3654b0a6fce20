"""Link creation: validation, de-duplication, code assignment and insert.

Link Creation Flow
==================
::
    ┌──────────────┐
    │ POST /api    │
    │ /shorten     │
    └──────┬───────┘
           ▼
    ┌──────────────┐   guest: no custom code, no description,
    │ Apply guest  │   fixed GUEST_EXPIRATION_DAYS
    │ policy       │
    └──────┬───────┘
           ▼
    ┌──────────────┐   any violation ──► VALIDATION_FAILED (store untouched)
    │ Validate     │
    └──────┬───────┘
    custom code?
    ┌──────┴───────────────┐
    │ YES                  │ NO
    ▼                      ▼
┌───────────┐      ┌────────────────┐   live duplicate ──► return it (no insert)
│ Code held?│      │ Duplicate URL? │   expired duplicate ─► delete, continue
│ ─► TAKEN  │      └───────┬────────┘
└─────┬─────┘              ▼
      │            ┌────────────────┐   SHORT_CODE_MAX_ATTEMPTS draws, then one
      │            │ Generate code  │   unchecked draw of length + 2
      │            └───────┬────────┘
      └──────┬─────────────┘
             ▼
    ┌──────────────┐   unique violation ──► CODE_TAKEN
    │ Insert       │   other store error ─► PERSISTENCE_FAILURE
    └──────┬───────┘
           ▼
    ┌──────────────┐
    │ Return link  │
    └──────────────┘

Key Behaviours
===============
- At most one insert and at most one delete per call.
- De-duplication only considers generated (non-custom) records, regardless
  of who owns them.
- ``expires_in`` of 0 or absent means the link never expires.
"""

import datetime
import logging
from collections.abc import Callable
from dataclasses import dataclass

from prometheus_client import Counter

from app.codegen import generate_short_code, widened_length
from app.config import Settings
from app.enums import ErrorKind, RequestStatus
from app.models import Link, User, utcnow
from app.results import Result
from app.schemas import LinkCreate
from app.store import DuplicateShortCodeError, LinkStore, PersistenceError
from app.validation import validate_create_request

__all__ = ["CreatedLink", "LinkResolver"]

LINK_CREATIONS_TOTAL = Counter(
    "link_shortener_creations_total",
    "Link creation requests by outcome",
    ["status"],
)


@dataclass(frozen=True)
class CreatedLink:
    """The persisted link, and whether an existing record was handed back."""

    link: Link
    deduplicated: bool = False


class LinkResolver:
    """Turns a creation request into a persisted link record.

    Example:
        >>> resolver = LinkResolver.from_context(ctx)
        >>> result = await resolver.create_short_link(LinkCreate(url="https://example.com"), None)
        >>> result.value.link.short_code
        'aZ3k9Qe'
    """

    def __init__(
        self,
        store: LinkStore,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        code_generator: Callable[[int], str] = generate_short_code,
        clock: Callable[[], datetime.datetime] = utcnow,
    ):
        self._store = store
        self._settings = settings
        self._logger = logger or logging.getLogger("linkshortener")
        self._generate = code_generator
        self._now = clock

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "LinkResolver":
        return cls(ctx.store, ctx.settings, ctx.logger)

    async def create_short_link(self, request: LinkCreate, requester: User | None) -> Result[CreatedLink]:
        """Create a short link, or hand back a live de-duplicated one.

        Args:
            request: Destination URL plus the optional custom code,
                description and expiration in days.
            requester: The signed-in user, or None for a guest.

        Returns:
            Result[CreatedLink]: the record on success; VALIDATION_FAILED,
            CODE_TAKEN or PERSISTENCE_FAILURE otherwise.
        """
        if requester is None:
            custom_code = None
            description = None
            expires_in = self._settings.GUEST_EXPIRATION_DAYS
        else:
            custom_code = request.custom_code or None
            description = request.description or None
            expires_in = request.expires_in

        field_errors = validate_create_request(
            request.url, custom_code, description, expires_in, self._settings.APP_ENV
        )
        if field_errors:
            LINK_CREATIONS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR).inc()
            self._logger.info(f"Link creation rejected: {sorted(field_errors)}")
            return Result.failure(
                ErrorKind.VALIDATION_FAILED,
                "Validation failed",
                {name: error.message for name, error in field_errors.items()},
            )

        now = self._now()
        try:
            if custom_code:
                holder = await self._store.find_by_code(custom_code)
                if holder is not None:
                    if not holder.is_expired(now):
                        LINK_CREATIONS_TOTAL.labels(status=RequestStatus.CONFLICT).inc()
                        return Result.failure(ErrorKind.CODE_TAKEN, "This custom code is already in use.")
                    await self._store.delete_by_id(holder.id)
                    self._logger.info(f"Released expired code {holder.short_code}")
                short_code = custom_code
            else:
                duplicate = await self._store.find_duplicate_by_url(request.url)
                if duplicate is not None:
                    if not duplicate.is_expired(now):
                        LINK_CREATIONS_TOTAL.labels(status=RequestStatus.DEDUPLICATED).inc()
                        self._logger.info(f"Reusing existing link {duplicate.short_code}")
                        return Result.success(CreatedLink(link=duplicate, deduplicated=True))
                    await self._store.delete_by_id(duplicate.id)
                    self._logger.info(f"Removed expired duplicate {duplicate.short_code}")
                short_code = await self._unique_code()

            link = Link(
                owner_id=requester.id if requester is not None else None,
                original_url=request.url,
                short_code=short_code,
                description=description,
                clicks=0,
                is_custom=bool(custom_code),
                expires_at=now + datetime.timedelta(days=expires_in) if expires_in and expires_in > 0 else None,
                created_at=now,
            )
            link = await self._store.insert(link)

        except DuplicateShortCodeError as exc:
            LINK_CREATIONS_TOTAL.labels(status=RequestStatus.CONFLICT).inc()
            self._logger.warning(f"Short code collided on insert: {exc.short_code}")
            return Result.failure(ErrorKind.CODE_TAKEN, "This custom code is already in use.")
        except PersistenceError as exc:
            LINK_CREATIONS_TOTAL.labels(status=RequestStatus.ERROR).inc()
            self._logger.error(f"Link creation failed: {exc}")
            return Result.failure(ErrorKind.PERSISTENCE_FAILURE, "Failed to create short URL")

        LINK_CREATIONS_TOTAL.labels(status=RequestStatus.SUCCESS).inc()
        self._logger.info(
            f"Link created: {link.short_code}",
            extra={"short_code": link.short_code, "is_custom": link.is_custom},
        )
        return Result.success(CreatedLink(link=link))

    async def _unique_code(self) -> str:
        length = self._settings.SHORT_CODE_LENGTH
        for _ in range(self._settings.SHORT_CODE_MAX_ATTEMPTS):
            candidate = self._generate(length)
            if await self._store.find_by_code(candidate) is None:
                return candidate
        # Budget exhausted: a wider code is accepted without a further lookup.
        return self._generate(widened_length(length))
