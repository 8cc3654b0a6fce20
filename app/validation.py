"""Input validation for link creation.

Every check here is pure and synchronous: no store access, no DNS lookups.

Validation Pipeline
===================
::
    url ─────────► validate_url ──────────┐
    custom_code ─► validate_custom_code ──┤
    description ─► validate_description ──┼──► {field: FieldError}
    expires_in ──► validate_expires_in ───┘

Key Behaviours
===============
- Only absolute http/https URLs are accepted; well-formedness is checked
  with the ``validators`` library.
- In production, loopback names and private IPv4 literals are rejected.
  The match is lexical on the hostname string; a public name that resolves
  to a private address is NOT caught.
- Custom codes: letters, digits and hyphens, 3 to 30 characters, not a
  reserved path (case-insensitive).
- Descriptions are capped at 255 characters.
"""

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

import validators

from app.enums import AppEnvironment, ErrorKind

__all__ = [
    "BLOCKED_HOSTS",
    "DESCRIPTION_MAX_LENGTH",
    "EXPIRES_IN_MAX_DAYS",
    "FieldError",
    "RESERVED_CODES",
    "SHORT_CODE_MAX_LENGTH",
    "SHORT_CODE_MIN_LENGTH",
    "validate_create_request",
    "validate_custom_code",
    "validate_description",
    "validate_expires_in",
    "validate_url",
]

SHORT_CODE_MIN_LENGTH = 3
SHORT_CODE_MAX_LENGTH = 30
DESCRIPTION_MAX_LENGTH = 255
# 100 years; keeps now + expires_in well inside datetime range.
EXPIRES_IN_MAX_DAYS = 36500

ALLOWED_SCHEMES = ("http", "https")

RESERVED_CODES = frozenset(
    {
        "api",
        "admin",
        "public",
        "static",
        "assets",
        "health",
        "status",
        "auth",
        "dashboard",
        "settings",
        "login",
        "logout",
        "register",
        "bio",
        "docs",
        "swagger",
        "metrics",
        "redoc",
    }
)

BLOCKED_HOSTS = frozenset({"localhost", "127.0.0.1", "0.0.0.0", "::1"})

SHORT_CODE_PATTERN = re.compile(r"[A-Za-z0-9-]+")
PRIVATE_IPV4_PATTERN = re.compile(r"^(10\.|172\.(1[6-9]|2[0-9]|3[01])\.|192\.168\.)")


@dataclass(frozen=True)
class FieldError:
    kind: ErrorKind
    message: str


def validate_url(candidate: str | None, environment: AppEnvironment) -> FieldError | None:
    if not candidate or not isinstance(candidate, str):
        return FieldError(ErrorKind.INVALID_URL, "Invalid URL. Please provide a valid URL.")

    try:
        parts = urlsplit(candidate)
        hostname = (parts.hostname or "").lower()
    except ValueError:
        return FieldError(ErrorKind.INVALID_URL, "Invalid URL. Please provide a valid URL.")

    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        return FieldError(ErrorKind.INVALID_URL, "Only HTTP and HTTPS URLs are allowed.")

    if not hostname or not validators.url(candidate, simple_host=True):
        return FieldError(ErrorKind.INVALID_URL, "Invalid URL. Please provide a valid URL.")

    if environment is AppEnvironment.PRODUCTION:
        if hostname in BLOCKED_HOSTS:
            return FieldError(ErrorKind.BLOCKED_HOST, "Localhost URLs are not allowed in production.")
        if PRIVATE_IPV4_PATTERN.match(hostname):
            return FieldError(ErrorKind.BLOCKED_HOST, "URLs pointing to private IP addresses are not allowed.")

    return None


def validate_custom_code(candidate: str) -> FieldError | None:
    if (
        not SHORT_CODE_PATTERN.fullmatch(candidate)
        or not SHORT_CODE_MIN_LENGTH <= len(candidate) <= SHORT_CODE_MAX_LENGTH
    ):
        return FieldError(
            ErrorKind.INVALID_CODE,
            f"Custom code may only contain letters, digits and hyphens "
            f"({SHORT_CODE_MIN_LENGTH}-{SHORT_CODE_MAX_LENGTH} characters).",
        )

    if candidate.lower() in RESERVED_CODES:
        return FieldError(ErrorKind.RESERVED_CODE, "This code is reserved and cannot be used.")

    return None


def validate_description(description: str) -> FieldError | None:
    if len(description) > DESCRIPTION_MAX_LENGTH:
        return FieldError(
            ErrorKind.DESCRIPTION_TOO_LONG,
            f"Description cannot be longer than {DESCRIPTION_MAX_LENGTH} characters.",
        )
    return None


def validate_expires_in(expires_in: int) -> FieldError | None:
    if expires_in < 0:
        return FieldError(ErrorKind.INVALID_EXPIRATION, "Invalid expiration value.")
    if expires_in > EXPIRES_IN_MAX_DAYS:
        return FieldError(
            ErrorKind.INVALID_EXPIRATION,
            f"Expiration cannot be longer than {EXPIRES_IN_MAX_DAYS} days.",
        )
    return None


def validate_create_request(
    url: str | None,
    custom_code: str | None,
    description: str | None,
    expires_in: int | None,
    environment: AppEnvironment,
) -> dict[str, FieldError]:
    """Run every field check and collect the failures by field name.

    Empty custom codes and descriptions count as absent.
    """
    errors: dict[str, FieldError] = {}

    url_error = validate_url(url, environment)
    if url_error:
        errors["url"] = url_error

    if custom_code:
        code_error = validate_custom_code(custom_code)
        if code_error:
            errors["custom_code"] = code_error

    if description:
        description_error = validate_description(description)
        if description_error:
            errors["description"] = description_error

    if expires_in is not None:
        expiration_error = validate_expires_in(expires_in)
        if expiration_error:
            errors["expires_in"] = expiration_error

    return errors
