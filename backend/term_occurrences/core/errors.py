"""Error taxonomy for the occurrence subsystem."""

from __future__ import annotations


class OccurrenceError(Exception):
    """Base class for errors raised by Term Occurrences."""


class NotFoundError(OccurrenceError, LookupError):
    """Referenced occurrence, target, or resource does not exist."""

    @classmethod
    def create(cls, entity: str, identifier: object) -> "NotFoundError":
        return cls(f"{entity} with id {identifier} not found")


class ValidationError(OccurrenceError, ValueError):
    pass


class UnsupportedContentError(OccurrenceError, ValueError):
    pass


class PersistenceError(OccurrenceError, RuntimeError):
    """Storage-layer failure; the original exception is chained as the cause."""


__all__ = [
    "OccurrenceError",
    "NotFoundError",
    "ValidationError",
    "UnsupportedContentError",
    "PersistenceError",
]
