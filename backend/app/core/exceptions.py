"""
Custom exceptions and error handlers for consistent error responses.

Every failure the score and directory engines can produce maps to one
AppException subclass with a stable error code. Global handlers turn them
into the standard ``{"error_code", "message", "details"}`` body.
"""

import logging
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from typing import Any, Dict

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class InvalidInputError(AppException):
    """Raised when a request field is malformed or outside its allowed range."""

    def __init__(self, message: str, field: str = None, details: Dict[str, Any] = None):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(
            message=message,
            error_code="ERR_INVALID_INPUT",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details
        )


class ResourceNotFoundError(AppException):
    """Raised when requested resource is not found."""

    def __init__(self, resource: str, resource_id: Any = None):
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_NOT_FOUND_001",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "id": resource_id}
        )


class DuplicateNameError(AppException):
    """Raised when a person name collides case-insensitively with another person."""

    def __init__(self, name: str):
        super().__init__(
            message=f"A person named '{name}' already exists",
            error_code="ERR_DUPLICATE_NAME",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"name": name}
        )


class OutOfRangeError(AppException):
    """Raised when applying a delta would move a score outside [0, max_score]."""

    def __init__(self, bound: str, score: int, delta: int, max_score: int):
        if bound == "low":
            message = "Score cannot become negative"
        else:
            message = f"Score cannot exceed {max_score} points"
        self.bound = bound
        super().__init__(
            message=message,
            error_code="ERR_OUT_OF_RANGE",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={
                "bound": bound,
                "current_score": score,
                "delta": delta,
                "max_score": max_score
            }
        )


class InvalidReversalError(AppException):
    """Raised when undoing a ledger entry would itself break the score bound."""

    def __init__(self, entry_id: int, score: int, delta: int, max_score: int):
        super().__init__(
            message="Cannot reverse this entry: resulting score would be out of range",
            error_code="ERR_INVALID_REVERSAL",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={
                "entry_id": entry_id,
                "current_score": score,
                "delta": delta,
                "max_score": max_score
            }
        )


class StoreFailureError(AppException):
    """Raised when the store could not commit a unit of work. Safe to retry."""

    def __init__(self, message: str = "The transaction could not be committed"):
        super().__init__(
            message=message,
            error_code="ERR_STORE_FAILURE",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        401: "ERR_UNAUTHORIZED",
        403: "ERR_FORBIDDEN",
        404: "ERR_NOT_FOUND",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request-shape errors are reported as invalid input (400)."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error_code": "ERR_INVALID_INPUT",
            "message": "Validation error",
            "details": {
                "errors": jsonable_encoder(exc.errors())
            }
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.exception("Unhandled exception: %s: %s", type(exc).__name__, exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
