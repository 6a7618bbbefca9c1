"""
Custom exception hierarchy for structured error handling.

WHY: The API surfaces exactly four failure kinds to callers:
1. Unauthorized (401) - no or invalid caller identity
2. Forbidden (403) - identity known, but role/scope disallows the action
3. NotFound (404) - row missing OR outside the caller's scope
4. BadRequest (400) - malformed input, empty updates, duplicate names

Every exception below maps onto one of those kinds through its status_code
and `code`. Services raise them; only the HTTP layer translates them.

IMPORTANT: NotFound is deliberately used for out-of-scope rows. Never raise
AuthorizationError for a row the caller cannot see, or existence leaks.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    WHY: Centralizing exception handling in a base class ensures consistent
    error responses, HTTP status code mapping, and prevents sensitive data
    leaks in error messages.
    """

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with `code`, `message` and filtered `details`
        """
        # WHY: Filter out sensitive fields to prevent data leaks
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }

        return {
            "code": self.code,
            "message": self.message,
            "details": filtered_context if filtered_context else None,
        }


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when authentication fails.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Authentication failed"


class TokenExpiredError(AuthenticationError):
    """Raised when a JWT token has expired."""

    default_message = "Token has expired"


class TokenInvalidError(AuthenticationError):
    """Raised when a JWT token is malformed or has an invalid signature."""

    default_message = "Token is invalid"


class AuthorizationError(AppException):
    """
    Raised when user lacks permissions for an action.

    WHY: Distinguishing authorization (403) from authentication (401) helps
    frontends show appropriate messages. Only raised for rows the caller
    can already see (e.g. CLIENT changing a ticket status).

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    code = "FORBIDDEN"
    default_message = "You do not have permission to perform this action"


# ============================================================================
# Validation & Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    code = "BAD_REQUEST"
    default_message = "Validation failed"


class DuplicateResourceError(ValidationError):
    """
    Raised when a write violates a uniqueness rule.

    WHY: Duplicate names (client per org, project per client, membership per
    project) are malformed input from the caller's perspective, so they
    share the 400 mapping rather than a separate 409.
    """

    default_message = "Resource already exists"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist or is outside scope.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class TicketNotFoundError(ResourceNotFoundError):
    """
    Raised when a ticket is missing, soft-deleted or not visible.

    WHY: All three causes produce the same message and details so callers
    cannot discover ticket ids in other organizations or clients.
    """

    default_message = "Ticket not found"

    def __init__(self, ticket_id: int):
        super().__init__(ticket_id=ticket_id)


class ProjectNotFoundError(ResourceNotFoundError):
    """Raised when a project is missing or not visible."""

    default_message = "Project not found"


class ClientNotFoundError(ResourceNotFoundError):
    """Raised when a client is missing or belongs to another organization."""

    default_message = "Client not found"


class CommentNotFoundError(ResourceNotFoundError):
    """Raised when a comment is missing or not visible."""

    default_message = "Comment not found"


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a user is missing or belongs to another organization."""

    default_message = "User not found"


class StreamNotFoundError(ResourceNotFoundError):
    default_message = "Stream not found"


class SubjectNotFoundError(ResourceNotFoundError):
    default_message = "Subject not found"


# ============================================================================
# External Service Exceptions
# ============================================================================


class ExternalServiceError(AppException):
    """
    Base exception for external service failures.

    HTTP Status: 502 Bad Gateway
    """

    status_code = 502
    code = "BAD_GATEWAY"
    default_message = "External service error"


class EmailServiceError(ExternalServiceError):
    """
    Raised when an email could not be handed to the provider.

    WHY: The outbox processor catches this per row, records the error and
    retries on a later tick. It never reaches an HTTP caller.
    """

    default_message = "Email delivery failed"
