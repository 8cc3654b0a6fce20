"""FastAPI route definitions for the link shortener REST API.

API Endpoint Overview
=====================
::
    GET    /health
        └─ HealthResponse (200)

    POST   /api/shorten
        ├─ LinkCreate (request body)
        └─ LinkResponse (201 new / 200 de-duplicated) or 400/409/429

    GET    /api/urls?page&limit&search&month&year
        └─ LinkPage (200) or 400

    GET    /api/stats/:short_code
        └─ LinkResponse (200) or 404/410

    GET    /api/qr/:short_code
        └─ image/png (200) or 404/410

    DELETE /api/urls/:short_code
        └─ MessageResponse (200) or 401/403/404

    GET    /auth/user | /auth/status | /auth/logout

    GET    /admin/api/stats
    POST   /admin/api/maintenance/clean-expired
        └─ 401 anonymous / 403 non-admin

    GET    /:short_code
        └─ 307 Redirect, or 404/410 HTML page

Error Mapping
=============
::
    ErrorKind                HTTP
    ───────────────────────  ────
    VALIDATION_FAILED        400
    UNAUTHORIZED             401
    FORBIDDEN                403
    NOT_FOUND                404
    CODE_TAKEN               409
    GONE                     410
    PERSISTENCE_FAILURE      500

API errors are JSON ``{"error": message, "errors": {field: message}}``;
redirect failures are small HTML pages.

Key Behaviours
===============
- The catch-all ``/{short_code}`` route is registered last.
- 307 redirects preserve the HTTP method.
- The destination URL is passed through exactly as stored.
"""

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from sqlalchemy import text

from app.admin import AdminService
from app.dependencies import (
    RequestContext,
    enforce_create_rate_limit,
    get_admin_service,
    get_current_user,
    get_link_queries,
    get_link_resolver,
    get_ownership_guard,
    get_redirect_processor,
    get_request_context,
    require_admin,
)
from app.enums import ErrorKind, HealthStatus
from app.link_queries import DEFAULT_PAGE_SIZE, LinkQueries
from app.link_resolver import LinkResolver
from app.models import User
from app.ownership import OwnershipGuard
from app.qr import render_qr_png
from app.redirect_processor import RedirectProcessor
from app.results import LinkError
from app.schemas import (
    AdminStatsResponse,
    AuthStatusResponse,
    CleanupResponse,
    ErrorResponse,
    GeneralStatsResponse,
    HealthResponse,
    LinkCreate,
    LinkPage,
    LinkResponse,
    MessageResponse,
    UserEnvelope,
    UserResponse,
)
from app.store import PersistenceError

__all__ = ["router", "STATUS_BY_KIND"]

router = APIRouter()

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CODE_TAKEN: 409,
    ErrorKind.GONE: 410,
    ErrorKind.PERSISTENCE_FAILURE: 500,
}

ERROR_RESPONSES = {code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409, 410, 429, 500)}

REDIRECT_ERROR_PAGE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{title}</title></head>
<body>
<h1>{title}</h1>
<p>{message}</p>
<p><a href="/">Create a new short link</a></p>
</body>
</html>
"""

REDIRECT_PAGES = {
    ErrorKind.NOT_FOUND: ("Link not found", "The short link you followed does not exist."),
    ErrorKind.GONE: ("Link expired", "The short link you followed has expired and is no longer available."),
}


def _error_response(error: LinkError) -> JSONResponse:
    content = {"error": error.message}
    if error.errors:
        content["errors"] = error.errors
    return JSONResponse(status_code=STATUS_BY_KIND.get(error.kind, 500), content=content)


def _redirect_error_page(error: LinkError) -> HTMLResponse:
    title, message = REDIRECT_PAGES.get(error.kind, ("Something went wrong", "Please try again later."))
    return HTMLResponse(
        REDIRECT_ERROR_PAGE.format(title=title, message=message),
        status_code=STATUS_BY_KIND.get(error.kind, 500),
    )


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(ctx: RequestContext = Depends(get_request_context)) -> HealthResponse:
    db_status = HealthStatus.HEALTHY
    cache_status = HealthStatus.HEALTHY

    try:
        await ctx.database.execute(text("SELECT 1"))
    except Exception as e:
        ctx.logger.error(f"Database health check failed: {e}")
        db_status = HealthStatus.UNHEALTHY

    try:
        await ctx.cache.ping()
    except Exception as e:
        ctx.logger.error(f"Cache health check failed: {e}")
        cache_status = HealthStatus.UNHEALTHY

    status = (
        HealthStatus.HEALTHY
        if db_status is HealthStatus.HEALTHY and cache_status is HealthStatus.HEALTHY
        else HealthStatus.UNHEALTHY
    )
    return HealthResponse(status=status, database=db_status, cache=cache_status)


@router.post(
    "/api/shorten",
    response_model=LinkResponse,
    status_code=201,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(enforce_create_rate_limit)],
    tags=["links"],
)
async def shorten_url(
    payload: LinkCreate,
    response: Response,
    ctx: RequestContext = Depends(get_request_context),
    resolver: LinkResolver = Depends(get_link_resolver),
    user: User | None = Depends(get_current_user),
) -> LinkResponse | JSONResponse:
    ctx.add_tag("link_creation")
    ctx.logger.info(
        f"Link shortening requested: {payload.url}",
        extra={
            "operation": "create_short_link",
            "target_url": payload.url,
            "custom_code": payload.custom_code,
            "user_id": user.id if user else None,
        },
    )

    result = await resolver.create_short_link(payload, user)
    if not result.ok:
        ctx.logger.warning(
            f"Link shortening failed: {result.error.message}",
            extra={
                "operation": "create_short_link",
                "error": result.error.kind,
                "duration_ms": ctx.get_duration(),
            },
        )
        return _error_response(result.error)

    created = result.value
    if created.deduplicated:
        response.status_code = 200
    return LinkResponse.from_link(created.link, ctx.settings.BASE_URL)


@router.get("/api/urls", response_model=LinkPage, responses=ERROR_RESPONSES, tags=["links"])
async def list_urls(
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    search: str = "",
    month: int | None = Query(None),
    year: int | None = Query(None),
    ctx: RequestContext = Depends(get_request_context),
    queries: LinkQueries = Depends(get_link_queries),
    user: User | None = Depends(get_current_user),
) -> LinkPage | JSONResponse:
    result = await queries.list_links(user, page=page, limit=limit, search=search, month=month, year=year)
    if not result.ok:
        return _error_response(result.error)

    listing = result.value
    return LinkPage(
        links=[LinkResponse.from_link(link, ctx.settings.BASE_URL) for link in listing.links],
        total=listing.total,
        page=listing.page,
        limit=listing.limit,
        pages=listing.pages,
    )


@router.get("/api/stats/{short_code}", response_model=LinkResponse, responses=ERROR_RESPONSES, tags=["links"])
async def get_stats(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    queries: LinkQueries = Depends(get_link_queries),
) -> LinkResponse | JSONResponse:
    ctx.logger.info(f"Stats requested for short code: {short_code}")
    result = await queries.get_stats(short_code)
    if not result.ok:
        return _error_response(result.error)
    return LinkResponse.from_link(result.value, ctx.settings.BASE_URL)


@router.get(
    "/api/qr/{short_code}",
    response_class=Response,
    responses={200: {"content": {"image/png": {}}}, **ERROR_RESPONSES},
    tags=["links"],
)
async def get_qr_code(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    queries: LinkQueries = Depends(get_link_queries),
) -> Response:
    result = await queries.get_stats(short_code)
    if not result.ok:
        return _error_response(result.error)
    image = render_qr_png(f"{ctx.settings.BASE_URL.rstrip('/')}/{short_code}")
    return Response(content=image, media_type="image/png")


@router.delete("/api/urls/{short_code}", response_model=MessageResponse, responses=ERROR_RESPONSES, tags=["links"])
async def delete_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    guard: OwnershipGuard = Depends(get_ownership_guard),
    user: User | None = Depends(get_current_user),
) -> MessageResponse | JSONResponse:
    result = await guard.delete_link(short_code, user)
    if not result.ok:
        ctx.logger.warning(f"Delete of {short_code} rejected: {result.error.kind}")
        return _error_response(result.error)
    return MessageResponse(message="URL deleted successfully")


@router.get("/auth/user", response_model=UserEnvelope, tags=["auth"])
async def current_user(user: User | None = Depends(get_current_user)) -> UserEnvelope:
    return UserEnvelope(success=user is not None, user=UserResponse.from_user(user))


@router.get("/auth/status", response_model=AuthStatusResponse, tags=["auth"])
async def auth_status(user: User | None = Depends(get_current_user)) -> AuthStatusResponse:
    return AuthStatusResponse(authenticated=user is not None, user=UserResponse.from_user(user))


@router.get("/auth/logout", tags=["auth"])
async def logout(ctx: RequestContext = Depends(get_request_context)) -> RedirectResponse:
    response = RedirectResponse(url="/", status_code=302)
    response.delete_cookie(ctx.settings.SESSION_COOKIE_NAME)
    return response


@router.get("/admin/api/stats", response_model=AdminStatsResponse, responses=ERROR_RESPONSES, tags=["admin"])
async def admin_stats(
    admin: User = Depends(require_admin),
    ctx: RequestContext = Depends(get_request_context),
    service: AdminService = Depends(get_admin_service),
) -> AdminStatsResponse | JSONResponse:
    try:
        stats = await service.general_stats()
    except PersistenceError as exc:
        ctx.logger.error(f"Admin stats failed: {exc}")
        return _error_response(LinkError(ErrorKind.PERSISTENCE_FAILURE, "Failed to load statistics"))
    return AdminStatsResponse(general=GeneralStatsResponse.model_validate(stats))


@router.post(
    "/admin/api/maintenance/clean-expired",
    response_model=CleanupResponse,
    responses=ERROR_RESPONSES,
    tags=["admin"],
)
async def admin_clean_expired(
    admin: User = Depends(require_admin),
    ctx: RequestContext = Depends(get_request_context),
    service: AdminService = Depends(get_admin_service),
) -> CleanupResponse | JSONResponse:
    try:
        removed = await service.clean_expired()
    except PersistenceError as exc:
        ctx.logger.error(f"Expired link cleanup failed: {exc}")
        return _error_response(LinkError(ErrorKind.PERSISTENCE_FAILURE, "Failed to clean expired links"))
    ctx.logger.info(f"Admin {admin.id} removed {removed} expired links")
    return CleanupResponse(removed=removed)


@router.get("/{short_code}", tags=["redirect"])
async def redirect_to_url(
    short_code: str,
    ctx: RequestContext = Depends(get_request_context),
    processor: RedirectProcessor = Depends(get_redirect_processor),
) -> Response:
    ctx.add_tag("redirect")
    result = await processor.resolve(short_code)
    if not result.ok:
        ctx.logger.warning(
            f"Redirect failed for {short_code}: {result.error.kind}",
            extra={"operation": "redirect", "short_code": short_code, "error": result.error.kind},
        )
        return _redirect_error_page(result.error)

    ctx.logger.info(
        f"Redirect successful: {short_code} -> {result.value}",
        extra={"operation": "redirect", "short_code": short_code, "duration_ms": ctx.get_duration()},
    )
    return RedirectResponse(url=result.value, status_code=307)
