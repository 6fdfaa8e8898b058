"""Typed failures raised by the booking engine and rendered by the API."""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Mapping, TypeVar

from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class BookingEngineError(Exception):
    status_code = 400
    retryable = False
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(BookingEngineError):
    status_code = 404
    default_detail = "Not found"


class Conflict(BookingEngineError):
    status_code = 409
    default_detail = "Conflict"


class Forbidden(BookingEngineError):
    status_code = 403
    default_detail = "Forbidden"


class ValidationError(BookingEngineError):
    status_code = 422
    default_detail = "Validation failed"

    def __init__(self, fields: Mapping[str, str], detail: str | None = None) -> None:
        self.fields = dict(fields)
        super().__init__(detail)


class StoreUnavailable(BookingEngineError):
    status_code = 503
    retryable = True
    default_detail = "Booking store is temporarily unavailable, please retry"


_STORE_FAILURES = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.TimeoutError,
    sa_exc.DisconnectionError,
)


def store_operation(func: F) -> F:
    """Translate connectivity and timeout failures into ``StoreUnavailable``.

    The wrapped function must take the session as its first argument. The
    session is rolled back so the caller can retry the whole operation.
    """

    @functools.wraps(func)
    def wrapper(db: Session, *args: Any, **kwargs: Any) -> Any:
        try:
            return func(db, *args, **kwargs)
        except _STORE_FAILURES as exc:
            db.rollback()
            logger.warning(
                "Store unavailable during %s",
                func.__name__,
                extra={"operation": func.__name__, "error": str(exc)},
            )
            raise StoreUnavailable() from exc

    return wrapper  # type: ignore[return-value]


def error_payload(exc: BookingEngineError) -> dict[str, Any]:
    payload: dict[str, Any] = {"detail": exc.detail, "retryable": exc.retryable}
    if isinstance(exc, ValidationError):
        payload["fields"] = exc.fields
    return payload


__all__ = [
    "BookingEngineError",
    "NotFound",
    "Conflict",
    "Forbidden",
    "ValidationError",
    "StoreUnavailable",
    "store_operation",
    "error_payload",
]
