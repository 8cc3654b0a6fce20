"""Pydantic schemas for request/response serialization in the link shortener.

Field rules (URL shape, code charset, description length) are enforced by
``app.validation`` so that every violation is reported together in one
400 response; the schemas here only fix the wire shape.

Schema Hierarchy
=================
::
    LinkCreate (Input)
    ├─ url: str
    ├─ custom_code: str | None      (signed-in users only)
    ├─ description: str | None      (signed-in users only)
    └─ expires_in: int | None       (days; 0 or absent = never)

    LinkResponse (Output)
    ├─ short_code / short_url / original_url
    ├─ description / clicks / is_custom
    └─ expires_at / created_at / last_accessed

    LinkPage (Output)
    └─ links: list[LinkResponse], total, page, limit, pages

    ErrorResponse (Output)
    ├─ error: str
    └─ errors: dict[str, str] | None

How to Use
===========
**Step 1 — Input parsing**::
    @router.post("/api/shorten")
    async def shorten_url(payload: LinkCreate): ...

**Step 2 — Response serialization**::
    return LinkResponse.from_link(link, settings.BASE_URL)

Key Behaviours
===============
- Datetimes read back without a zone are serialized as UTC.
- Models are configured for ORM attribute mapping.
- FastAPI generates OpenAPI docs from these schemas.
"""

import datetime

from pydantic import BaseModel

from app.enums import HealthStatus
from app.models import Link, User, as_utc

__all__ = [
    "AdminStatsResponse",
    "AuthStatusResponse",
    "CleanupResponse",
    "ErrorResponse",
    "GeneralStatsResponse",
    "HealthResponse",
    "LinkCreate",
    "LinkPage",
    "LinkResponse",
    "MessageResponse",
    "UserEnvelope",
    "UserResponse",
]


class LinkCreate(BaseModel):
    url: str | None = None
    custom_code: str | None = None
    description: str | None = None
    expires_in: int | None = None


class LinkResponse(BaseModel):
    short_code: str
    short_url: str
    original_url: str
    description: str | None = None
    clicks: int
    is_custom: bool
    expires_at: datetime.datetime | None = None
    created_at: datetime.datetime
    last_accessed: datetime.datetime | None = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_link(cls, link: Link, base_url: str) -> "LinkResponse":
        return cls(
            short_code=link.short_code,
            short_url=f"{base_url.rstrip('/')}/{link.short_code}",
            original_url=link.original_url,
            description=link.description,
            clicks=link.clicks or 0,
            is_custom=bool(link.is_custom),
            expires_at=as_utc(link.expires_at),
            created_at=as_utc(link.created_at),
            last_accessed=as_utc(link.last_accessed),
        )


class LinkPage(BaseModel):
    links: list[LinkResponse]
    total: int
    page: int
    limit: int
    pages: int


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus


class UserResponse(BaseModel):
    id: int
    name: str | None = None
    email: str | None = None
    picture: str | None = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_user(cls, user: User | None) -> "UserResponse | None":
        return cls.model_validate(user) if user is not None else None


class UserEnvelope(BaseModel):
    success: bool
    user: UserResponse | None = None


class AuthStatusResponse(BaseModel):
    authenticated: bool
    user: UserResponse | None = None


class GeneralStatsResponse(BaseModel):
    total_users: int
    total_links: int
    total_clicks: int
    active_links: int
    expired_links: int
    custom_links: int
    generated_links: int
    recent_links: int
    recent_users: int

    model_config = {"from_attributes": True}


class AdminStatsResponse(BaseModel):
    general: GeneralStatsResponse


class CleanupResponse(BaseModel):
    removed: int


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    errors: dict[str, str] | None = None
