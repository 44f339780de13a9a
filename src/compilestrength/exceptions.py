"""
Custom exceptions for CompileStrength.

This module defines a hierarchy of exceptions that provide clear error
handling throughout the application. Each exception includes:
- A descriptive message
- An error code for API responses
- HTTP status code mapping
- Optional details for debugging
"""

from typing import Any, Dict, List, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for consistent API error responses."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    UNAUTHORIZED = "UNAUTHORIZED"

    # Usage / billing errors
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    SUBSCRIPTION_NOT_FOUND = "SUBSCRIPTION_NOT_FOUND"
    WEBHOOK_SIGNATURE_INVALID = "WEBHOOK_SIGNATURE_INVALID"

    # Workout errors
    ACTIVE_SESSION_EXISTS = "ACTIVE_SESSION_EXISTS"
    AGENT_NOT_AVAILABLE = "AGENT_NOT_AVAILABLE"

    # LLM errors
    LLM_SERVICE_UNAVAILABLE = "LLM_SERVICE_UNAVAILABLE"

    # Database errors
    DATABASE_ERROR = "DATABASE_ERROR"


class CompileStrengthError(Exception):
    """
    Base exception for all CompileStrength errors.

    Attributes:
        message: Human-readable error message
        code: Error code from ErrorCode enum
        status_code: HTTP status code for API responses
        details: Optional dictionary with additional error details
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result: Dict[str, Any] = {
            "error": {
                "code": self.code.value,
                "message": self.message,
            }
        }
        if self.details:
            result["error"]["details"] = self.details
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code.value}, message={self.message!r})"


# ============================================================================
# Validation Errors (400)
# ============================================================================

class ValidationError(CompileStrengthError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[List[Dict[str, str]]] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        error_details = details or {}
        if field:
            error_details["field"] = field
        if errors:
            error_details["errors"] = errors
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            status_code=400,
            details=error_details,
        )
        self.errors = errors or []


class AgentNotAvailableError(CompileStrengthError):
    """Raised when a chat request names an agent type that is not offered."""

    def __init__(self, agent_type: str) -> None:
        super().__init__(
            message="Agent not available yet",
            code=ErrorCode.AGENT_NOT_AVAILABLE,
            status_code=400,
            details={"agentType": agent_type},
        )
        self.agent_type = agent_type


# ============================================================================
# Authentication Errors (401)
# ============================================================================

class UnauthorizedError(CompileStrengthError):
    """Raised when a request carries no usable session."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(
            message=message,
            code=ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class WebhookSignatureError(CompileStrengthError):
    """Raised when a billing webhook signature does not verify."""

    def __init__(self, message: str = "Invalid signature") -> None:
        super().__init__(
            message=message,
            code=ErrorCode.WEBHOOK_SIGNATURE_INVALID,
            status_code=401,
        )


# ============================================================================
# Quota Errors (402)
# ============================================================================

class QuotaExceededError(CompileStrengthError):
    """Raised when a usage counter is already at its period limit."""

    def __init__(
        self,
        kind: str,
        used: int,
        limit: int,
        resets_at: Optional[str] = None,
    ) -> None:
        label = kind.replace("_", " ")
        super().__init__(
            message=f"{label.capitalize()} limit reached for this period",
            code=ErrorCode.QUOTA_EXCEEDED,
            status_code=402,
            details={
                "kind": kind,
                "used": used,
                "limit": limit,
                "resetsAt": resets_at,
                "upgradeUrl": "/settings/billing",
            },
        )
        self.kind = kind
        self.used = used
        self.limit = limit
        self.resets_at = resets_at


# ============================================================================
# Not Found Errors (404)
# ============================================================================

class NotFoundError(CompileStrengthError):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        code: ErrorCode = ErrorCode.NOT_FOUND,
    ) -> None:
        details = {"resource_type": resource_type} if resource_type else None
        super().__init__(
            message=message,
            code=code,
            status_code=404,
            details=details,
        )


class SubscriptionNotFoundError(NotFoundError):
    """Raised when no (active) subscription resolves for the caller."""

    def __init__(self, message: str = "No active subscription") -> None:
        super().__init__(
            message=message,
            resource_type="subscription",
            code=ErrorCode.SUBSCRIPTION_NOT_FOUND,
        )


# ============================================================================
# Conflict Errors (409)
# ============================================================================

class ConflictError(CompileStrengthError):
    """Raised when an operation conflicts with existing state."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFLICT,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message,
            code=code,
            status_code=409,
            details=details,
        )


class ActiveSessionExistsError(ConflictError):
    """Raised when starting a workout while another one is still open."""

    def __init__(self, session_id: Optional[str] = None) -> None:
        super().__init__(
            message="You already have an active workout session",
            code=ErrorCode.ACTIVE_SESSION_EXISTS,
            details={"sessionId": session_id} if session_id else None,
        )


# ============================================================================
# Upstream / Database Errors (5xx)
# ============================================================================

class LLMError(CompileStrengthError):
    """Raised when the hosted model cannot be reached or configured."""

    def __init__(self, message: str) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.LLM_SERVICE_UNAVAILABLE,
            status_code=502,
        )


class DatabaseError(CompileStrengthError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, operation: Optional[str] = None) -> None:
        super().__init__(
            message=message,
            code=ErrorCode.DATABASE_ERROR,
            status_code=500,
            details={"operation": operation} if operation else None,
        )
