"""
Result Types
============
Tagged union returned by decision functions: `Ok[T] | Err`.

Decision code stays free of exceptions and HTTP concerns; the service
layer converts an `Err` into the exception for its kind with
`unwrap`.
"""

from dataclasses import dataclass, field
from typing import Generic, NoReturn, Optional, TypeVar, Union

from core.enums import ErrorKind
from core.exceptions import (
    AccessDeniedError,
    AuthenticationRequiredError,
    ConflictError,
    DecryptionError,
    MonetizationNotUnlockedError,
    NotFoundError,
    RateLimitExceededError,
    ValidationError,
    ViralPromptsException,
)

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: Optional[str] = None
    errors: list[str] = field(default_factory=list)

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


def to_exception(err: Err) -> ViralPromptsException:
    """Map an error kind onto the exception taxonomy."""
    kind = err.kind
    kwargs = {"errors": err.errors} if err.errors else {}
    if kind is ErrorKind.VALIDATION:
        return ValidationError(err.message or "Validation failed", **kwargs)
    if kind is ErrorKind.AUTHENTICATION_REQUIRED:
        return AuthenticationRequiredError(err.message or "Authentication required", **kwargs)
    if kind is ErrorKind.ACCESS_DENIED:
        return AccessDeniedError(err.message or "Access denied", **kwargs)
    if kind is ErrorKind.MONETIZATION_NOT_UNLOCKED:
        return MonetizationNotUnlockedError(**kwargs)
    if kind is ErrorKind.NOT_FOUND:
        return NotFoundError("Resource", message=err.message, **kwargs)
    if kind is ErrorKind.CONFLICT:
        return ConflictError(err.message or "Resource already exists", **kwargs)
    if kind is ErrorKind.RATE_LIMITED:
        return RateLimitExceededError(err.message or "Rate limit exceeded", **kwargs)
    if kind is ErrorKind.DECRYPTION_FAILURE:
        return DecryptionError(err.message or "Decryption failed", **kwargs)
    if kind is ErrorKind.INTERNAL:
        return ViralPromptsException(err.message or "Internal server error", **kwargs)
    _assert_never(kind)


def _assert_never(value: NoReturn) -> NoReturn:
    raise AssertionError(f"Unhandled error kind: {value!r}")


def unwrap(result: "Result[T]") -> T:
    """Return the Ok value or raise the mapped exception."""
    if isinstance(result, Ok):
        return result.value
    raise to_exception(result)
