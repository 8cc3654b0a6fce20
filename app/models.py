"""SQLAlchemy ORM models for the link shortener application.

This module defines the database schema using SQLAlchemy declarative models
with proper indexing and timestamp management for links and their owners.

Data Model Layout
=================
::
    users table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ google_id (VARCHAR(255) UNIQUE, INDEXED)
    ├─ email (VARCHAR(255))
    ├─ name (VARCHAR(255))
    ├─ picture (TEXT)
    ├─ created_at (TIMESTAMPTZ, DEFAULT NOW())
    └─ last_login (TIMESTAMPTZ)

    links table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ owner_id (INTEGER NULL → users.id)
    ├─ original_url (TEXT NOT NULL)
    ├─ short_code (VARCHAR(40) UNIQUE, INDEXED)
    ├─ description (VARCHAR(255) NULL)
    ├─ clicks (INTEGER DEFAULT 0)
    ├─ is_custom (BOOLEAN DEFAULT FALSE)
    ├─ expires_at (TIMESTAMPTZ NULL)
    ├─ created_at (TIMESTAMPTZ, DEFAULT NOW())
    └─ last_accessed (TIMESTAMPTZ NULL)

Class Relationship Diagram
=========================
::
    User 1 ──── * Link
                  (owner_id NULL = guest link)

How to Use
===========
**Step 1 — Import**::
    from app.models import Link, User

**Step 2 — Check expiration**::
    if link.is_expired():
        ...

Key Behaviours
===============
- short_code is unique and indexed for fast lookups during redirects.
- clicks starts at 0 and only the redirect path increments it.
- is_custom and short_code never change after insert.
- Timestamps read back without zone information are treated as UTC.

Classes:
    User:  A person identified by the external identity provider.
    Link:  A short code mapped to a destination URL.
"""

import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

__all__ = ["User", "Link", "as_utc", "utcnow"]


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def as_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    """Attach UTC to naive timestamps (SQLite drops the zone on round trip)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=datetime.UTC)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    google_id: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    picture: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    last_login: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


class Link(Base):
    __tablename__ = "links"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    owner_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id"), index=True, nullable=True
    )
    original_url: Mapped[str] = mapped_column(Text, nullable=False)
    short_code: Mapped[str] = mapped_column(String(40), unique=True, index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    clicks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_custom: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    last_accessed: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def is_expired(self, now: datetime.datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) < (now or utcnow())

    def __repr__(self) -> str:
        return f"<Link(id={self.id}, short_code='{self.short_code}', clicks={self.clicks})>"
