"""
Custom exception hierarchy for structured error handling.

Every failure in the request path resolves to one of these classes. The
exception handlers in ``practice_api.core.exception_handlers`` turn them into
JSON responses with the status code declared on the class.

Taxonomy:
1. Authentication (401): missing token, invalid/expired token, principal
   that does not resolve to a local user and membership
2. Authorization (403): no organization context, insufficient role
3. Client-correctable (400/404/409/422): validation, not found, conflict,
   amount mismatch, invalid state transition
4. Server-side (500): configuration errors and storage errors. Their details
   are logged, never returned to the caller.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    All custom exceptions inherit from this class. ``context`` carries
    debugging data (ids, field names); sensitive keys are filtered out of
    the serialized form.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    # Server-side errors are rendered with a generic body. Their message and
    # context only reach the logs.
    expose_details: bool = True

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

    def safe_context(self) -> Dict[str, Any]:
        """Context with sensitive keys removed."""
        return {
            k: v for k, v in self.context.items() if k.lower() not in SENSITIVE_FIELDS
        }

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        if not self.expose_details:
            return {
                "error": self.__class__.__name__,
                "message": self.default_message,
                "status_code": self.status_code,
                "details": None,
            }

        filtered_context = self.safe_context()
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


SENSITIVE_FIELDS = frozenset(
    {
        "password",
        "token",
        "raw_token",
        "secret",
        "key",
        "api_key",
        "jwt_key",
        "secret_key",
        "authorization",
    }
)


# ============================================================================
# Authentication Exceptions
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when authentication fails.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    default_message = "Authentication failed"


class MissingTokenError(AuthenticationError):
    """
    Raised when the Authorization header is absent or not a Bearer credential.

    Kept apart from InvalidTokenError: the caller never presented a
    credential, as opposed to presenting a bad one.

    HTTP Status: 401 Unauthorized
    """

    default_message = "No token provided"


class InvalidTokenError(AuthenticationError):
    """
    Raised when a bearer token fails verification.

    The context may list the reasons each verification strategy gave up,
    never the token itself.

    HTTP Status: 401 Unauthorized
    """

    default_message = "Invalid token"


class TokenExpiredError(InvalidTokenError):
    """
    Raised when the token signature is valid but the token has expired.

    HTTP Status: 401 Unauthorized
    """

    default_message = "Token has expired"


class PrincipalNotResolvedError(AuthenticationError):
    """
    Raised when a verified token does not map to a local user with an active
    membership in the claimed organization.

    HTTP Status: 401 Unauthorized
    """

    default_message = "User not found in organization"


# ============================================================================
# Authorization Exceptions
# ============================================================================


class AuthorizationError(AppException):
    """
    Raised when the principal lacks permission for an action.

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "You do not have permission to perform this action"


class NoOrganizationContextError(AuthorizationError):
    """
    Raised when a non-administrative principal has no resolved organization.

    HTTP Status: 403 Forbidden
    """

    default_message = "Organization context is required"


class InsufficientRoleError(AuthorizationError):
    """
    Raised when the principal's role is not among the roles a route allows.

    HTTP Status: 403 Forbidden
    """

    default_message = "Insufficient permissions"


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigurationError(AppException):
    """
    Raised when the deployment is missing required identity-provider material
    (signing key, JWKS access, authorized parties).

    This is an operator problem, not a client problem: the response is a
    generic 500 and the details go to the logs at high severity.

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    default_message = "Server configuration error"
    expose_details = False


# ============================================================================
# Validation & Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


class ImmutableFieldError(ValidationError):
    """
    Raised when an update tries to change a field that is fixed at creation
    (``organization_id``, ``created_by``).

    HTTP Status: 400 Bad Request
    """

    default_message = "Field cannot be modified"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist for the caller's tenant.

    A row that exists under another organization raises this exact error
    with the same message: callers cannot tell the two cases apart.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppException):
    """
    Raised when a write violates a uniqueness or referential constraint.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Resource conflicts with existing data"


# ============================================================================
# Business Logic Exceptions
# ============================================================================


class BusinessRuleViolation(AppException):
    """
    Raised when a business rule is violated.

    HTTP Status: 422 Unprocessable Entity
    """

    status_code = 422
    default_message = "Business rule violation"


class AmountMismatchError(BusinessRuleViolation):
    """
    Raised when sale amounts fail reconciliation: a line whose total is not
    subtotal + tax, or a header total that is not the sum of line totals.

    Always raised before any row is written.

    HTTP Status: 422 Unprocessable Entity
    """

    default_message = "Sale amounts do not reconcile"


class InvalidStateTransitionError(BusinessRuleViolation):
    """
    Raised when a status change is not allowed from the current status.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Invalid state transition"


# ============================================================================
# Storage Exceptions
# ============================================================================


class StorageError(AppException):
    """
    Raised when the persistence layer fails unexpectedly.

    Fatal for the current request only. The response is a generic 500; the
    underlying error is logged with request context.

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    default_message = "Database error"
    expose_details = False
