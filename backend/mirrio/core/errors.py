"""Error Hierarchy — typed, categorized exceptions for all Mirrio failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (4xx) are scoped to one group/round/vote and never fatal to the process
    - to_response() produces the REST envelope used by the global handler
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with MirrioError base: FastAPI global handler catches all
    - ConflictError is a benign race for the scheduler (swallowed) but surfaced to direct
      user actions such as "start round"
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHENTICATION = "authentication"
    PERMISSION = "permission"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    group_id: str | None = None
    round_id: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class MirrioError(Exception):
    """Base exception for all Mirrio errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "group_id": self.context.group_id,
                    "round_id": self.context.round_id,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class ConflictError(MirrioError):
    """A state-machine precondition was violated (usually a benign race)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


class NoContentError(MirrioError):
    """No eligible statement for the group's edition. Recoverable once content is added."""
    def __init__(self, edition_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Edition '{edition_id}' has no statements available",
            "NO_CONTENT", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, context, 422,
        )
        self.edition_id = edition_id


class NotFoundError(MirrioError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class ValidationError(MirrioError):
    """Input is well-formed JSON but violates a domain rule (e.g. non-member vote target)."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class AuthenticationError(MirrioError):
    """No user identity on the request."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Authentication required",
            "UNAUTHENTICATED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.ERROR, context, 401,
        )


class PermissionDeniedError(MirrioError):
    """Caller is authenticated but not allowed (non-member, non-owner, bad admin token)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "PERMISSION_DENIED", ErrorCategory.PERMISSION,
            ErrorSeverity.ERROR, context, 403,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(MirrioError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
