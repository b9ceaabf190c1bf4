"""Error taxonomy shared by the record store gateway and the HTTP layer."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError


class ClinicError(Exception):
    """Base for every error that may cross the HTTP boundary."""

    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str, details: str | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(ClinicError):
    """Malformed input. The message names the offending field(s)."""

    code = "VALIDATION_ERROR"
    http_status = 400


class InvalidIdentifierError(ValidationError):
    """Identifier is not in the store's id format.

    Rendered as 404: no record can ever match it.
    """

    code = "INVALID_IDENTIFIER"
    http_status = 404


class NotFoundError(ClinicError):
    code = "NOT_FOUND"
    http_status = 404


class StoreUnavailableError(ClinicError):
    code = "STORE_UNAVAILABLE"
    http_status = 500


@contextmanager
def store_operation(message: str, *, expose_details: bool = False) -> Iterator[None]:
    """Convert database faults raised inside the block into StoreUnavailableError."""
    try:
        yield
    except SQLAlchemyError as e:
        raise StoreUnavailableError(
            message, details=type(e).__name__ if expose_details else None
        ) from e
