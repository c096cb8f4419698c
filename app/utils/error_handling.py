"""
Error Handling Module for SGI Compliance Tracker

This module provides centralized error handling with:
- Custom exception hierarchy for the compliance calendar domain
- Standardized error responses
- Error logging
- Translation of persistence/storage failures into transport errors
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union
import logging

from fastapi import FastAPI, Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import (
    SQLAlchemyError,
    IntegrityError,
    OperationalError,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

# Configure logging
logger = logging.getLogger("compliance_tracker.errors")


class ErrorCode(str, Enum):
    """Standardized error codes for the application"""

    # Validation Errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_PERIODICITY = "INVALID_PERIODICITY"
    INVALID_TARGET = "INVALID_TARGET"
    INVALID_FILE = "INVALID_FILE"

    # Authentication/Authorization Errors (401/403)
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"

    # Resource Errors (404/409)
    NOT_FOUND = "NOT_FOUND"
    REQUIREMENT_NOT_FOUND = "REQUIREMENT_NOT_FOUND"
    EVIDENCE_NOT_FOUND = "EVIDENCE_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"

    # Business Logic Errors (409/422)
    INVALID_TRANSITION = "INVALID_TRANSITION"
    MALFORMED_PLAN = "MALFORMED_PLAN"

    # Rate Limiting (429)
    RATE_LIMITED = "RATE_LIMITED"

    # Collaborator Errors (503)
    TRANSPORT_ERROR = "TRANSPORT_ERROR"

    # Database Errors (500)
    DATABASE_ERROR = "DATABASE_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DATA_INTEGRITY_ERROR = "DATA_INTEGRITY_ERROR"

    # Internal Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


class AppException(Exception):
    """Base exception for all application exceptions"""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.timestamp = datetime.utcnow()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response"""
        result = {
            "code": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat() + "Z",
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = self.details
        return result


# ============================================================================
# Validation Exceptions
# ============================================================================

class ValidationException(AppException):
    """Base validation exception"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
            field=field,
        )


class InvalidPeriodicityException(ValidationException):
    """Periodicity outside the closed enumeration"""

    def __init__(self, value: Any, requirement_id: Optional[str] = None):
        details = {
            "provided": str(value),
            "allowed": ["MONTHLY", "BIMONTHLY", "QUARTERLY", "SEMIANNUAL", "ANNUAL"],
        }
        if requirement_id:
            details["requirement_id"] = requirement_id
        super().__init__(
            message=f"Invalid periodicity: {value!r}",
            field="periodicity",
            code=ErrorCode.INVALID_PERIODICITY,
            details=details,
        )


class MalformedPlanException(ValidationException):
    """A yearly plan does not hold exactly 12 monthly records"""

    def __init__(self, requirement_id: Optional[str], year: int, month_count: int):
        self.requirement_id = requirement_id
        self.year = year
        self.month_count = month_count
        super().__init__(
            message=(
                f"Plan for requirement '{requirement_id}' in {year} has "
                f"{month_count} months, expected 12"
            ),
            field="plans",
            code=ErrorCode.MALFORMED_PLAN,
            details={
                "requirement_id": requirement_id,
                "year": year,
                "month_count": month_count,
            },
        )


class InvalidFileException(ValidationException):
    """Uploaded evidence file rejected"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            field="file",
            code=ErrorCode.INVALID_FILE,
            details=details,
        )


class InvalidTargetException(AppException):
    """Evidence action without a valid execution record context"""

    def __init__(
        self,
        message: str,
        requirement_id: Optional[str] = None,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ):
        super().__init__(
            code=ErrorCode.INVALID_TARGET,
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"requirement_id": requirement_id, "year": year, "month": month},
        )


# ============================================================================
# Resource Exceptions
# ============================================================================

class NotFoundException(AppException):
    """Resource not found exception"""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[Union[str, int]] = None,
        message: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
        details: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            if resource_id:
                message = f"{resource_type} with ID '{resource_id}' not found"
            else:
                message = f"{resource_type} not found"
        _details = {"resource_type": resource_type, "resource_id": str(resource_id) if resource_id else None}
        _details.update(details or {})
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=_details,
        )


class RequirementNotFoundException(NotFoundException):
    """Requirement not found"""

    def __init__(self, requirement_id: str):
        super().__init__(
            resource_type="Requirement",
            resource_id=requirement_id,
            code=ErrorCode.REQUIREMENT_NOT_FOUND,
        )


class EvidenceNotFoundException(NotFoundException):
    """No evidence attached to the addressed execution record"""

    def __init__(self, requirement_id: Optional[str], year: int, month: int):
        super().__init__(
            resource_type="Evidence",
            message=f"No evidence for requirement '{requirement_id}' in {year}-{month + 1:02d}",
            code=ErrorCode.EVIDENCE_NOT_FOUND,
            details={"requirement_id": requirement_id, "year": year, "month": month},
        )


class ConflictException(AppException):
    """Resource conflict exception"""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        code: ErrorCode = ErrorCode.RESOURCE_CONFLICT,
        details: Optional[Dict[str, Any]] = None,
    ):
        _details = details or {}
        if resource_type:
            _details["resource_type"] = resource_type
        super().__init__(
            code=code,
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            details=_details,
        )


class DuplicateEntryException(ConflictException):
    """Duplicate entry exception"""

    def __init__(self, resource_type: str, field: str, value: Any):
        super().__init__(
            message=f"{resource_type} with {field} '{value}' already exists",
            resource_type=resource_type,
            code=ErrorCode.DUPLICATE_ENTRY,
            details={"field": field, "value": str(value)},
        )


class InvalidTransitionException(ConflictException):
    """Evidence lifecycle transition not allowed from the current status"""

    def __init__(self, action: str, current_status: Optional[str]):
        super().__init__(
            message=f"Cannot {action} evidence in status {current_status or 'NONE'}",
            resource_type="Evidence",
            code=ErrorCode.INVALID_TRANSITION,
            details={"action": action, "current_status": current_status},
        )


# ============================================================================
# Collaborator Exceptions
# ============================================================================

class TransportException(AppException):
    """Persistence or storage collaborator failure"""

    def __init__(
        self,
        service_name: str,
        message: str,
        original_error: Optional[Exception] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        _details = details or {}
        _details["service"] = service_name
        super().__init__(
            code=ErrorCode.TRANSPORT_ERROR,
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            details=_details,
            original_error=original_error,
        )


# ============================================================================
# Exception Handlers
# ============================================================================

def create_error_response(
    code: ErrorCode,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    field: Optional[str] = None,
) -> JSONResponse:
    """Create a standardized error response"""
    content = {
        "detail": {
            "code": code.value,
            "message": message,
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }
    }
    if field:
        content["detail"]["field"] = field
    if details:
        content["detail"]["details"] = details

    return JSONResponse(status_code=status_code, content=content)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle AppException"""
    logger.error(
        f"AppException: {exc.code.value} - {exc.message}",
        extra={
            "code": exc.code.value,
            "path": request.url.path,
            "method": request.method,
            "details": exc.details,
        },
        exc_info=exc.original_error,
    )

    return create_error_response(
        code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        field=exc.field,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException"""
    # Map status codes to error codes
    code_map = {
        400: ErrorCode.INVALID_INPUT,
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.FORBIDDEN,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.RESOURCE_CONFLICT,
        422: ErrorCode.VALIDATION_ERROR,
        429: ErrorCode.RATE_LIMITED,
        500: ErrorCode.INTERNAL_ERROR,
        503: ErrorCode.TRANSPORT_ERROR,
    }

    error_code = code_map.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)

    logger.warning(
        f"HTTPException: {exc.status_code} - {message}",
        extra={"path": request.url.path, "method": request.method},
    )

    return create_error_response(
        code=error_code,
        message=message,
        status_code=exc.status_code,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle Pydantic validation errors"""
    errors = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        errors.append({
            "field": field,
            "message": error["msg"],
            "type": error["type"],
        })

    logger.warning(
        f"ValidationError: {len(errors)} validation errors",
        extra={"path": request.url.path, "method": request.method, "errors": errors},
    )

    return create_error_response(
        code=ErrorCode.VALIDATION_ERROR,
        message="Request validation failed",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"errors": errors},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy errors that escaped the store boundary"""
    error_message = "A database error occurred"
    error_code = ErrorCode.DATABASE_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    if isinstance(exc, IntegrityError):
        error_message = "Data integrity constraint violated"
        error_code = ErrorCode.DATA_INTEGRITY_ERROR
        error_str = str(exc.orig).lower() if exc.orig else ""
        if "unique" in error_str or "duplicate" in error_str:
            error_message = "A record with this value already exists"
            error_code = ErrorCode.DUPLICATE_ENTRY
            status_code = status.HTTP_409_CONFLICT
    elif isinstance(exc, OperationalError):
        error_message = "Database operation failed"
        error_code = ErrorCode.CONNECTION_ERROR

    logger.error(
        f"SQLAlchemyError: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    return create_error_response(
        code=error_code,
        message=error_message,
        status_code=status_code,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions"""
    logger.critical(
        f"UnhandledException: {type(exc).__name__} - {str(exc)}",
        extra={"path": request.url.path, "method": request.method},
        exc_info=True,
    )

    # In production, don't expose internal error details
    return create_error_response(
        code=ErrorCode.INTERNAL_ERROR,
        message="An unexpected error occurred. Please try again later.",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


# ============================================================================
# Utility Functions
# ============================================================================

def require_non_empty(value: Optional[str], field: str) -> str:
    """Validate that an opaque identifier or text field is non-empty"""
    if value is None or not str(value).strip():
        raise ValidationException(
            message=f"'{field}' must not be empty",
            field=field,
            code=ErrorCode.INVALID_INPUT,
        )
    return str(value).strip()
