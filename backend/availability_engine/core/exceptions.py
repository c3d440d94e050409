# backend/availability_engine/core/exceptions.py
"""
Domain-specific exceptions for the availability engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input to the engine is malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data or a concurrent writer."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UpstreamUnavailableException(DomainException):
    """Raised when the availability store or booking source cannot answer."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def to_http_exception(self) -> HTTPException:
        exc = super().to_http_exception()
        exc.headers = {"Retry-After": "2"}
        return exc


# Specific business exceptions


class InvalidStateException(ConflictException):
    """Raised when a negotiation transition is attempted from the wrong state."""

    def __init__(
        self,
        message: str,
        *,
        current_status: Optional[str] = None,
        code: str = "INVALID_STATE",
        details: Optional[Dict[str, Any]] = None,
    ):
        payload = dict(details or {})
        if current_status is not None:
            payload["current_status"] = current_status
        super().__init__(message=message, code=code, details=payload)


class BookingConflictException(ConflictException):
    """Raised when a time window conflicts with an existing booking."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class LockContentionException(ConflictException):
    """Raised when another actor holds the lesson's negotiation lock."""

    def __init__(self, lesson_id: str):
        super().__init__(
            message="Another change to this lesson is in progress. Please retry.",
            code="LESSON_LOCKED",
            details={"lesson_id": lesson_id},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
