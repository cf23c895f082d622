"""Exception hierarchy raised by the resolution engine and its store.

Every error carries the HTTP status the adapter answers with, so routes
never need their own mapping table::

    ShortenerError
    ├─ InvalidInputError (422, also a ValueError)
    ├─ ConflictError (409)
    │   └─ CodeConflictError   raised by the store on a unique violation
    ├─ NotFoundError (404)
    ├─ ExpiredError (410)
    └─ DependencyUnavailableError (503)
"""

__all__ = [
    "ShortenerError",
    "InvalidInputError",
    "ConflictError",
    "CodeConflictError",
    "NotFoundError",
    "ExpiredError",
    "DependencyUnavailableError",
]


class ShortenerError(Exception):
    status_code: int = 500

    def __init__(self, message: str, short_code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.short_code = short_code


class InvalidInputError(ShortenerError, ValueError):
    status_code = 422


class ConflictError(ShortenerError):
    status_code = 409


class CodeConflictError(ConflictError):
    """The store's uniqueness constraint rejected an insert."""


class NotFoundError(ShortenerError):
    status_code = 404


class ExpiredError(ShortenerError):
    status_code = 410


class DependencyUnavailableError(ShortenerError):
    status_code = 503
