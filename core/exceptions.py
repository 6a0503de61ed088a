"""
Exception Hierarchy & Error Handling Framework
===============================================
Type-safe exception taxonomy with structured context propagation.

Every exception carries the HTTP status it renders as, so the API layer
can translate any domain failure into the uniform error envelope without
a lookup table of its own.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from core.enums import ErrorSeverity

# =============================================================================
# BASE EXCEPTION CLASSES
# =============================================================================


class ViralPromptsException(Exception):
    """
    Root exception for all application errors.

    Implements structured error context with:
    - Unique error ID for log correlation
    - Severity classification for alerting
    - Structured context dictionary
    - HTTP status for the API boundary
    """

    status_code: int = 500
    public_message: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[dict[str, Any]] = None,
        error_code: Optional[str] = None,
        retryable: bool = False,
        errors: Optional[list[str]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.error_id: UUID = uuid4()
        self.message: str = message
        self.severity: ErrorSeverity = severity
        self.context: dict[str, Any] = context or {}
        self.error_code: Optional[str] = error_code
        self.retryable: bool = retryable
        self.errors: list[str] = list(errors) if errors else []
        self.timestamp: datetime = datetime.now(timezone.utc)

        if cause:
            self.__cause__ = cause

    @property
    def client_message(self) -> str:
        """Message safe to show to API clients."""
        return self.public_message or self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/telemetry."""
        return {
            "error_id": str(self.error_id),
            "error_type": self.__class__.__name__,
            "message": self.message,
            "severity": self.severity.name,
            "error_code": self.error_code,
            "retryable": self.retryable,
            "errors": self.errors,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.__cause__) if self.__cause__ else None,
        }

    def __str__(self) -> str:
        parts = [f"[{self.severity.name}] {self.message}"]
        if self.error_code:
            parts.append(f"Code: {self.error_code}")
        if self.context:
            parts.append(f"Context: {self.context}")
        return " | ".join(parts)


# =============================================================================
# CLIENT ERRORS
# =============================================================================


class ValidationException(ViralPromptsException):
    """Malformed input. Carries every violation, not just the first."""

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        errors: Optional[list[str]] = None,
        **kwargs,
    ):
        kwargs.setdefault("error_code", "VALIDATION_FAILED")
        super().__init__(message, severity=ErrorSeverity.INFO, errors=errors, **kwargs)


ValidationError = ValidationException


class InvalidIdentifierError(ValidationException):
    """Path parameter is not a well-formed identifier."""

    def __init__(self, value: Any, **kwargs):
        super().__init__(
            "Invalid ID format",
            errors=[f"'{value}' is not a valid identifier"],
            context={"value": str(value)},
            error_code="INVALID_ID",
            **kwargs,
        )


class AuthenticationRequiredError(ViralPromptsException):
    status_code = 401

    def __init__(self, message: str = "Authentication required", **kwargs):
        kwargs.setdefault("error_code", "AUTHENTICATION_REQUIRED")
        super().__init__(message, severity=ErrorSeverity.INFO, **kwargs)


class AccessDeniedError(ViralPromptsException):
    """Privacy or ownership check failed."""

    status_code = 403

    def __init__(self, message: str = "Access denied", **kwargs):
        kwargs.setdefault("error_code", "ACCESS_DENIED")
        super().__init__(message, severity=ErrorSeverity.INFO, **kwargs)


class MonetizationNotUnlockedError(AccessDeniedError):
    """Paid prompts require an administrator to unlock monetization first."""

    def __init__(self, message: str = "Monetization not unlocked", **kwargs):
        kwargs.setdefault(
            "errors",
            ["Your account must have monetization unlocked by an administrator to create paid prompts"],
        )
        super().__init__(message, error_code="MONETIZATION_NOT_UNLOCKED", **kwargs)


class NotFoundError(ViralPromptsException):
    status_code = 404

    def __init__(
        self,
        entity_type: str,
        entity_id: Any = None,
        message: Optional[str] = None,
        **kwargs,
    ):
        message = message or f"{entity_type} not found"
        kwargs.setdefault("error_code", "ENTITY_NOT_FOUND")
        super().__init__(
            message,
            severity=ErrorSeverity.INFO,
            context={"entity_type": entity_type, "entity_id": str(entity_id)},
            **kwargs,
        )


class PromptNotFoundError(NotFoundError):
    def __init__(self, prompt_id: Any, **kwargs):
        super().__init__(
            "Prompt", prompt_id, errors=["Prompt does not exist"], error_code="PROMPT_NOT_FOUND", **kwargs
        )


class UserNotFoundError(NotFoundError):
    def __init__(self, user_id: Any, **kwargs):
        super().__init__(
            "User", user_id, errors=["User does not exist"], error_code="USER_NOT_FOUND", **kwargs
        )


class ConflictError(ViralPromptsException):
    """Duplicate unique field or relationship."""

    status_code = 409

    def __init__(self, message: str = "Resource already exists", **kwargs):
        kwargs.setdefault("error_code", "CONFLICT")
        super().__init__(message, severity=ErrorSeverity.INFO, **kwargs)


class RateLimitExceededError(ViralPromptsException):
    """A fixed-window or business-rule budget is exhausted."""

    status_code = 429

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: Optional[int] = None,
        data: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
        **kwargs,
    ):
        kwargs.setdefault("error_code", "RATE_LIMITED")
        super().__init__(
            message,
            severity=ErrorSeverity.INFO,
            retryable=True,
            context={"retry_after_seconds": retry_after},
            **kwargs,
        )
        self.retry_after = retry_after
        self.data = data
        self.headers = headers or {}


# =============================================================================
# FIELD CIPHER EXCEPTIONS
# =============================================================================


class DecryptionError(ViralPromptsException):
    """
    A stored envelope could not be opened.

    Treated as a data-integrity incident. The client only ever sees a
    generic message; cipher internals stay in the logs.
    """

    status_code = 500
    public_message = "Failed to decrypt prompt"

    def __init__(self, message: str = "Decryption failed", **kwargs):
        kwargs.setdefault("error_code", "DECRYPTION_FAILED")
        super().__init__(message, severity=ErrorSeverity.CRITICAL, **kwargs)


DecryptionFailure = DecryptionError


class EnvelopeFormatError(DecryptionError):
    """Envelope does not split into exactly three base64 segments."""

    def __init__(self, message: str = "Invalid encrypted data format", **kwargs):
        super().__init__(message, error_code="ENVELOPE_FORMAT", **kwargs)


FormatError = EnvelopeFormatError


class IntegrityError(DecryptionError):
    """Authentication tag did not verify: tampered data or wrong key."""

    def __init__(self, message: str = "Authentication tag verification failed", **kwargs):
        super().__init__(message, error_code="INTEGRITY_CHECK_FAILED", **kwargs)


# =============================================================================
# INFRASTRUCTURE EXCEPTIONS
# =============================================================================


class InfrastructureException(ViralPromptsException):
    """Base exception for infrastructure errors."""

    public_message = "Internal server error"

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("severity", ErrorSeverity.CRITICAL)
        super().__init__(message, **kwargs)


InfrastructureError = InfrastructureException


class DatabaseException(InfrastructureException):
    """Base exception for database errors."""


DatabaseError = DatabaseException


class DatabaseConnectionError(DatabaseException):
    def __init__(self, message: str = "Database connection failed", **kwargs):
        super().__init__(message, retryable=True, error_code="DB_CONNECTION_FAILED", **kwargs)


class CacheException(ViralPromptsException):
    """
    Counter/cache store failure.

    Never reaches clients: the rate limiter and cache service catch it and
    fail open.
    """

    def __init__(self, message: str, **kwargs):
        super().__init__(message, severity=ErrorSeverity.WARNING, error_code="CACHE_ERROR", **kwargs)


CacheError = CacheException


class StoreUnavailableError(CacheException):
    """The store is not configured or not connected."""

    def __init__(self, state: str, **kwargs):
        super().__init__(f"Key-value store unavailable ({state})", context={"state": state}, **kwargs)


class ConfigurationError(ViralPromptsException):
    """Deployment configuration is unsafe or inconsistent."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message, severity=ErrorSeverity.CRITICAL, error_code="CONFIGURATION_ERROR", **kwargs
        )
