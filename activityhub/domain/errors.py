"""Errors raised by the activity pipeline."""

from __future__ import annotations

from typing import Any


class ActivityError(Exception):
    """Base class for pipeline errors carrying an HTTP-like status code."""

    code = 500

    def __init__(self, msg: str, *, code: int | None = None) -> None:
        super().__init__(msg)
        self.msg = msg
        if code is not None:
            self.code = code


class InvalidSeedError(ActivityError, ValueError):
    """A seed is missing its verb, actor or object, or is otherwise malformed."""

    code = 400


class ValidationError(ActivityError, ValueError):
    """A caller supplied an empty or invalid value."""

    code = 400


class RecipientResolutionError(ActivityError):
    """Recipients of an activity stream could not be resolved."""

    def __init__(self, msg: str, *, resource: Any = None, stream: str | None = None) -> None:
        super().__init__(msg)
        self.resource = resource
        self.stream = stream


class PersistenceUnavailableError(ActivityError):
    """The database rejected or failed a read or write."""

    code = 503


class TransportError(ActivityError):
    """A pub/sub publish could not be delivered to the transport."""

    code = 503


__all__ = [
    "ActivityError",
    "InvalidSeedError",
    "PersistenceUnavailableError",
    "RecipientResolutionError",
    "TransportError",
    "ValidationError",
]
