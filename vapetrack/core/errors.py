from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("vapetrack.errors")


class DomainError(ValueError):
    """A business rule rejected the request."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Any | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT


class PermissionDenied(DomainError):
    status_code = status.HTTP_403_FORBIDDEN


class PaymentError(DomainError):
    """A payment split or settlement does not reconcile."""


class InsufficientStockError(DomainError):
    """Not enough sellable units for the requested quantity."""


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        error: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"error": error}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


def flatten_validation_errors(errors: list[dict[str, Any]]) -> dict[str, list[str]]:
    """Group pydantic errors by field name, dropping the request location prefix."""

    fields: dict[str, list[str]] = {}
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        key = ".".join(loc) or "form"
        message = str(err.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        fields.setdefault(key, []).append(message)
    return fields


async def domain_exception_handler(request: Request, exc: DomainError):
    return ErrorEnvelope(status_code=exc.status_code, error=exc.message, details=exc.details)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        error=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return ErrorEnvelope(
        status_code=status.HTTP_400_BAD_REQUEST,
        error="Invalid input",
        details=flatten_validation_errors(list(exc.errors())),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "request.failed",
        extra={"extra_data": {"method": request.method, "path": request.url.path}},
    )
    return ErrorEnvelope(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        error="An unexpected error occurred.",
        details=str(exc),
    )
