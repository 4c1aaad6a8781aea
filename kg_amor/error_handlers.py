"""
Application exceptions and the JSON error bodies returned for them.

Every error body carries ``error`` and ``path``. Ledger rejections also
carry ``code``, ``retryable`` and ``outcome``; partial postings carry the
full posting result so the client can see which lines were applied.
"""
from typing import Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from .ledger import LedgerError, PartialFailure
from .logging_config import get_logger

logger = get_logger("errors")


class AppException(Exception):
    """Base exception for errors raised by the API layer."""

    def __init__(self, message: str, status_code: int = 400, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ResourceNotFoundError(AppException):
    def __init__(self, resource: str, identifier: Union[int, str]):
        super().__init__(
            f"{resource} {identifier} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "identifier": str(identifier)},
        )


class DuplicateResourceError(AppException):
    def __init__(self, resource: str, field: str, value: str):
        super().__init__(
            f"{resource} with {field} '{value}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource, "field": field, "value": value},
        )


class InvalidStateError(AppException):
    """A document operation that its current status does not allow (e.g. voiding a posted receipt)."""

    def __init__(self, resource: str, identifier: Union[int, str], state: str, operation: str):
        super().__init__(
            f"Cannot {operation} {resource} {identifier} while {state}",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource, "identifier": str(identifier), "status": state},
        )


def _body(request: Request, message: str, **extra) -> dict:
    body = {"error": message, "path": request.url.path}
    body.update(extra)
    return body


async def app_exception_handler(request: Request, exc: AppException):
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=_body(request, exc.message, details=exc.details),
    )


async def ledger_exception_handler(request: Request, exc: LedgerError):
    """Rejections map to 409/422/503; a partial posting is a 207 with the line results."""
    content = _body(request, exc.message, code=exc.code, details=exc.details, retryable=exc.retryable)
    if exc.result is not None:
        content.update(exc.result.to_dict())
    else:
        content["outcome"] = "rejected"

    if isinstance(exc, PartialFailure):
        logger.error(f"{request.method} {request.url.path} partially posted: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected [{exc.code}]: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=content)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning(f"{request.method} {request.url.path} invalid payload: {errors}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_body(request, "Validation failed", validation_errors=errors),
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """Database errors raised outside the ledger (catalog and document writes)."""
    if isinstance(exc, IntegrityError):
        status_code, message = status.HTTP_409_CONFLICT, "Data integrity constraint violated"
    elif isinstance(exc, OperationalError):
        status_code, message = status.HTTP_503_SERVICE_UNAVAILABLE, "Database unavailable"
    else:
        status_code, message = status.HTTP_500_INTERNAL_SERVER_ERROR, "Database error"

    logger.error(f"{request.method} {request.url.path} {type(exc).__name__}: {exc}", exc_info=True)
    orig = getattr(exc, "orig", None)
    return JSONResponse(
        status_code=status_code,
        content=_body(request, message, detail=str(orig if orig is not None else exc)),
    )


async def generic_exception_handler(request: Request, exc: Exception):
    logger.critical(f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}: {exc}",
                    exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_body(request, "Internal server error"),
    )
