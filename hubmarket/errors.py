"""
Error handling module for the delivery tracking service.

This module provides:
- Custom exception hierarchy
- Error classification
- Translation of errors into HTTP responses
"""
from typing import Optional, Dict, Any
from enum import Enum
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from hubmarket.utils.logging import setup_logger

logger = setup_logger(__name__)

class ErrorSeverity(str, Enum):
    """Severity levels for errors."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

class ErrorCategory(str, Enum):
    """Categories of errors that can occur."""
    ACCESS = "access"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    UPSTREAM = "upstream"
    SYSTEM = "system"

class HubmarketError(Exception):
    """Base error class with common attributes."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        operation: str,
        details: Optional[Dict[str, Any]] = None,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.ERROR
    ):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.details = details or {}
        self.category = category
        self.severity = severity
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary format."""
        return {
            "status": "error",
            "error": self.message,
            "operation": self.operation,
            "details": self.details,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat()
        }

class AccessDeniedError(HubmarketError):
    """Caller lacks access to the requested publication, hub or campaign."""
    status_code = 403

    def __init__(self, message: str, operation: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            operation=operation,
            details=details,
            category=ErrorCategory.ACCESS,
            severity=ErrorSeverity.WARNING
        )

class NotFoundError(HubmarketError):
    """Requested order, campaign, entry or proof does not exist."""
    status_code = 404

    def __init__(self, message: str, operation: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            operation=operation,
            details=details,
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.INFO
        )

class ValidationError(HubmarketError):
    """Malformed input or a request the current state does not allow."""
    status_code = 400

    def __init__(self, message: str, operation: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            operation=operation,
            details=details,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.WARNING
        )

class InvalidTransitionError(ValidationError):
    """Status change not permitted by the state machine."""

    def __init__(self, current: str, requested: str, operation: str, allowed: Optional[list] = None):
        super().__init__(
            message=f"Cannot change status from '{current}' to '{requested}'",
            operation=operation,
            details={"current": current, "requested": requested, "allowed": allowed or []}
        )

class ConflictError(HubmarketError):
    """Uniqueness constraint would be violated."""
    status_code = 409

    def __init__(self, message: str, operation: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            operation=operation,
            details=details,
            category=ErrorCategory.CONFLICT,
            severity=ErrorSeverity.WARNING
        )

class UpstreamError(HubmarketError):
    """A secondary collaborator (notifier, blob store) failed."""
    status_code = 502

    def __init__(self, message: str, operation: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            operation=operation,
            details=details,
            category=ErrorCategory.UPSTREAM,
            severity=ErrorSeverity.WARNING
        )

async def hubmarket_error_handler(request: Request, exc: HubmarketError) -> JSONResponse:
    """Render a HubmarketError as JSON with its HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{exc.operation} failed: {exc.message}", extra={"details": exc.details})
    else:
        logger.info(f"{exc.operation} rejected ({exc.status_code}): {exc.message}")
    body = {
        "error": exc.message,
        "details": exc.details,
        "category": exc.category.value,
    }
    return JSONResponse(status_code=exc.status_code, content=body)

async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query strings are client errors (400)."""
    errors = [
        {"field": ".".join(str(part) for part in error.get("loc", ())), "message": error.get("msg")}
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid request",
            "details": {"errors": errors},
            "category": ErrorCategory.VALIDATION.value,
        },
    )

def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error hierarchy handlers to the application."""
    app.add_exception_handler(HubmarketError, hubmarket_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
