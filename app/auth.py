"""Signed session tokens and admin checks.

The session cookie holds a JWT whose ``sub`` claim is the user id::

    {"sub": "42", "exp": 1767225600}

Tokens are signed with ``SESSION_SECRET`` using ``SESSION_ALGORITHM``
(HS256 by default) and expire after ``SESSION_TTL_DAYS``.
"""

import datetime

from jose import JWTError, jwt

from app.config import Settings
from app.models import User, utcnow

__all__ = ["create_session_token", "decode_session_token", "is_admin"]


def create_session_token(user_id: int, settings: Settings, expires_delta: datetime.timedelta | None = None) -> str:
    expire = utcnow() + (expires_delta or datetime.timedelta(days=settings.SESSION_TTL_DAYS))
    to_encode = {"sub": str(user_id), "exp": expire}
    return jwt.encode(to_encode, settings.SESSION_SECRET, algorithm=settings.SESSION_ALGORITHM)


def decode_session_token(token: str, settings: Settings) -> int | None:
    """Return the user id carried by ``token``, or None if it is invalid or expired."""
    try:
        payload = jwt.decode(token, settings.SESSION_SECRET, algorithms=[settings.SESSION_ALGORITHM])
    except JWTError:
        return None
    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        return None
    return int(subject)


def is_admin(user: User | None, settings: Settings) -> bool:
    return user is not None and bool(user.email) and user.email.lower() in settings.admin_emails
