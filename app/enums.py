"""Shared enums for the link shortener application.

This module defines all status and state enums used across the codebase.
Using enums instead of string literals provides type safety and prevents typos.
"""

from enum import StrEnum

__all__ = ["HealthStatus", "AppEnvironment", "ErrorKind", "RequestStatus", "RedirectOutcome"]


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class AppEnvironment(StrEnum):
    """Deployment classification; only PRODUCTION enables host blocking."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TEST = "test"


class ErrorKind(StrEnum):
    """Failure kinds returned by the core link operations.

    Each kind maps to exactly one HTTP status at the API boundary
    (see ``app.routes.STATUS_BY_KIND``). The per-field kinds (invalid URL,
    blocked host, invalid or reserved code, description, expiration) only
    appear inside a VALIDATION_FAILED error.
    """

    VALIDATION_FAILED = "validation_failed"
    INVALID_URL = "invalid_url"
    BLOCKED_HOST = "blocked_host"
    INVALID_CODE = "invalid_code"
    RESERVED_CODE = "reserved_code"
    DESCRIPTION_TOO_LONG = "description_too_long"
    INVALID_EXPIRATION = "invalid_expiration"
    CODE_TAKEN = "code_taken"
    NOT_FOUND = "not_found"
    GONE = "gone"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    PERSISTENCE_FAILURE = "persistence_failure"


class RequestStatus(StrEnum):
    """Request status values for metrics and logging."""

    SUCCESS = "success"
    DEDUPLICATED = "deduplicated"
    VALIDATION_ERROR = "validation_error"
    CONFLICT = "conflict"
    ERROR = "error"


class RedirectOutcome(StrEnum):
    """Redirect outcome labels for metrics."""

    REDIRECTED = "redirected"
    NOT_FOUND = "not_found"
    GONE = "gone"
    ERROR = "error"
