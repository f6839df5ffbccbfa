"""Error taxonomy and the JSON error responses rendered for it."""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    """Categories of errors surfaced to API clients."""

    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    INTERNAL_ERROR = "internal_error"


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type = ErrorType.INTERNAL_ERROR

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = ErrorType.UNAUTHORIZED


class Forbidden(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = ErrorType.FORBIDDEN


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = ErrorType.NOT_FOUND


class InvalidInput(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_type = ErrorType.INVALID_INPUT


class InternalFailure(ServiceError):
    pass


class ValidationErrorDetail(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    """Standardized error body."""

    error_type: ErrorType
    message: str
    detail: Optional[str] = None
    status_code: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    path: Optional[str] = None
    errors: List[ValidationErrorDetail] = Field(default_factory=list)


def _render(response: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=response.status_code,
        content=response.model_dump(mode="json", exclude_none=True),
    )


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _render(
        ErrorResponse(
            error_type=exc.error_type,
            message=exc.message,
            detail=exc.detail,
            status_code=exc.status_code,
            path=request.url.path,
        )
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: List[ValidationErrorDetail] = []
    for error in exc.errors():
        location: List[Any] = [part for part in error.get("loc", ()) if part != "body"]
        errors.append(
            ValidationErrorDetail(
                field=".".join(str(part) for part in location) or "body",
                message=error.get("msg", "Invalid value"),
            )
        )
    return _render(
        ErrorResponse(
            error_type=ErrorType.INVALID_INPUT,
            message="Request validation failed",
            detail=f"{len(errors)} validation error(s)",
            status_code=status.HTTP_400_BAD_REQUEST,
            path=request.url.path,
            errors=errors,
        )
    )


async def database_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.error(
        "Database error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return _render(
        ErrorResponse(
            error_type=ErrorType.INTERNAL_ERROR,
            message="Database operation failed",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            path=request.url.path,
        )
    )


async def response_validation_error_handler(request: Request, exc: ResponseValidationError) -> JSONResponse:
    logger.error("Stored document failed response validation on %s: %s", request.url.path, exc.errors())
    return _render(
        ErrorResponse(
            error_type=ErrorType.INTERNAL_ERROR,
            message="Stored data could not be rendered",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            path=request.url.path,
        )
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(ResponseValidationError, response_validation_error_handler)
    app.add_exception_handler(PyMongoError, database_error_handler)
