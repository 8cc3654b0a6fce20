"""Result type returned by the core link operations.

Core operations never raise for expected failures; they return a ``Result``
holding either a value or a ``LinkError`` whose ``kind`` callers branch on::

    result = await resolver.create_short_link(request, requester)
    if not result.ok:
        if result.error.kind is ErrorKind.CODE_TAKEN:
            ...
    link = result.value
"""

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from app.enums import ErrorKind

__all__ = ["LinkError", "Result"]

T = TypeVar("T")


@dataclass(frozen=True)
class LinkError:
    kind: ErrorKind
    message: str
    errors: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: LinkError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, errors: dict[str, str] | None = None) -> "Result[T]":
        return cls(error=LinkError(kind=kind, message=message, errors=errors or {}))
