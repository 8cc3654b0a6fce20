"""Dependency injection with a singleton service manager.

Shared collaborators (settings, logger, Redis client, link store, user
repository, background runner, sweeper) are created once and handed to
every request through a lightweight ``RequestContext``.

Dependency Graph
================
::
    ServiceManager (singleton)
    ├─ settings, logger
    ├─ cache ─────────► CreateRateLimiter
    ├─ store ─────────► LinkResolver / RedirectProcessor / OwnershipGuard / LinkQueries
    ├─ users ─────────► get_current_user
    ├─ runner ────────► RedirectProcessor (click increments)
    └─ sweeper

    get_request_context ──► RequestContext(database, service_manager, request_id, ...)
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.admin import AdminService
from app.auth import decode_session_token, is_admin
from app.background import BackgroundTaskRunner
from app.config import Settings, get_settings
from app.database import async_session, get_db
from app.link_queries import LinkQueries
from app.link_resolver import LinkResolver
from app.models import User
from app.ownership import OwnershipGuard
from app.rate_limit import CreateRateLimiter
from app.redirect_processor import RedirectProcessor
from app.redis import get_redis
from app.store import LinkStore, PersistenceError, SQLAlchemyLinkStore
from app.sweeper import ExpiredLinkSweeper
from app.users import UserRepository


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton holder for resources shared across requests.

    Every collaborator can be supplied to ``initialize``; anything left out
    is built from settings. Tests use this to plug in a SQLite session
    factory and a mocked Redis client.
    """

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(
        self,
        settings: Settings | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        cache: redis.Redis | None = None,
        store: LinkStore | None = None,
    ) -> None:
        """Initialize shared resources once at startup."""
        if self._initialized:
            return
        self.settings = settings or get_settings()
        self.logger = self._setup_logger()
        self.session_factory = session_factory or async_session
        self.cache = cache or await get_redis()
        self.store = store or SQLAlchemyLinkStore(self.session_factory)
        self.users = UserRepository(self.session_factory, self.logger)
        self.runner = BackgroundTaskRunner(self.logger)
        self.sweeper = ExpiredLinkSweeper(self.store, self.settings.CLEANUP_INTERVAL_SECONDS, self.logger)
        self._initialized = True

    def _setup_logger(self) -> logging.Logger:
        logger = logging.getLogger("linkshortener")
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            handler.setFormatter(formatter)
            logger.addHandler(handler)
        logger.setLevel(self.settings.LOG_LEVEL.upper())
        return logger

    async def cleanup(self) -> None:
        """Stop background work at shutdown; in-flight click increments get a short grace period."""
        if not self._initialized:
            return
        await self.sweeper.stop()
        await self.runner.drain(timeout=5.0)
        self._initialized = False


# Global singleton instance
_service_manager = ServiceManager()


# ============================================================================
# LIGHTWEIGHT REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view over the shared resources.

    Attributes:
        database: Async database session (only per-request resource)
        service_manager: Singleton service manager with shared resources
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
        tags: Request tags for categorization
    """

    database: AsyncSession
    service_manager: ServiceManager
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=lambda: time.time())
    tags: list[str] = field(default_factory=list)

    @property
    def settings(self) -> Settings:
        return self.service_manager.settings

    @property
    def store(self) -> LinkStore:
        return self.service_manager.store

    @property
    def runner(self) -> BackgroundTaskRunner:
        return self.service_manager.runner

    @property
    def cache(self) -> redis.Redis:
        return self.service_manager.cache

    @property
    def logger(self) -> logging.LoggerAdapter:
        """Shared logger with request context attached to every record."""
        return logging.LoggerAdapter(
            self.service_manager.logger,
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
                "tags": ",".join(self.tags),
            },
        )

    def add_tag(self, tag: str) -> None:
        if tag not in self.tags:
            self.tags.append(tag)

    def get_duration(self) -> float:
        """Request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager.initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
    manager: ServiceManager = Depends(get_service_manager),
) -> RequestContext:
    return RequestContext(
        database=db,
        service_manager=manager,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


async def get_current_user(
    request: Request,
    manager: ServiceManager = Depends(get_service_manager),
) -> User | None:
    """The signed-in user from the session cookie, or None for guests.

    Invalid, expired or orphaned tokens count as a guest.
    """
    token = request.cookies.get(manager.settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    user_id = decode_session_token(token, manager.settings)
    if user_id is None:
        return None
    try:
        return await manager.users.get(user_id)
    except PersistenceError as exc:
        manager.logger.error(f"Session user lookup failed: {exc}")
        return None


async def require_admin(
    user: User | None = Depends(get_current_user),
    manager: ServiceManager = Depends(get_service_manager),
) -> User:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    if not is_admin(user, manager.settings):
        manager.logger.warning(f"Non-admin user {user.id} attempted admin access")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


async def enforce_create_rate_limit(ctx: RequestContext = Depends(get_request_context)) -> None:
    limiter = CreateRateLimiter(
        ctx.cache,
        ctx.settings.RATE_LIMIT_CREATE_PER_MINUTE,
        ctx.settings.RATE_LIMIT_KEY_PREFIX,
        ctx.logger,
    )
    if not await limiter.allow(ctx.client_ip or "unknown"):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many links created. Please try again in a minute.",
        )


def get_link_resolver(ctx: RequestContext = Depends(get_request_context)) -> LinkResolver:
    return LinkResolver.from_context(ctx)


def get_redirect_processor(ctx: RequestContext = Depends(get_request_context)) -> RedirectProcessor:
    return RedirectProcessor.from_context(ctx)


def get_ownership_guard(ctx: RequestContext = Depends(get_request_context)) -> OwnershipGuard:
    return OwnershipGuard.from_context(ctx)


def get_link_queries(ctx: RequestContext = Depends(get_request_context)) -> LinkQueries:
    return LinkQueries.from_context(ctx)


def get_admin_service(manager: ServiceManager = Depends(get_service_manager)) -> AdminService:
    return AdminService(manager.session_factory, manager.store, manager.logger)
