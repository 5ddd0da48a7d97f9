"""Structured error handling — typed error kinds, service-error translation, tool error model."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ErrorKind(str, Enum):
    """Closed set of failure kinds the orchestrator reasons about."""

    TRANSIENT = "TRANSIENT"
    AUTHORIZATION = "AUTHORIZATION"
    VALIDATION = "VALIDATION"
    CANCELLED = "CANCELLED"
    OTHER = "OTHER"


class ErrorCategory(str, Enum):
    """Categories reported to tool callers."""

    AUTH_REQUIRED = "AUTH_REQUIRED"
    INVALID_INPUT = "INVALID_INPUT"
    API_QUOTA_EXCEEDED = "API_QUOTA_EXCEEDED"
    GENERATION_FAILED = "GENERATION_FAILED"
    GENERATION_TIMEOUT = "GENERATION_TIMEOUT"
    CANCELLED = "CANCELLED"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    UNKNOWN = "UNKNOWN"


class GenerationError(Exception):
    """Base class for every error raised by the generation orchestrator."""

    kind: ErrorKind = ErrorKind.OTHER


class TransientServiceError(GenerationError):
    """Rate limiting or server overload — expected to clear after a delay."""

    kind = ErrorKind.TRANSIENT


class AuthorizationError(GenerationError):
    """Credential is missing, invalid, or expired.

    Callers should prompt for re-authentication instead of showing a
    generic failure.
    """

    kind = ErrorKind.AUTHORIZATION


class InputValidationError(GenerationError, ValueError):
    """Required input is missing or malformed. Raised before any network call."""

    kind = ErrorKind.VALIDATION


class GenerationCancelledError(GenerationError):
    """The run was cancelled through its cancel token."""

    kind = ErrorKind.CANCELLED


class GenerationFailedError(GenerationError):
    """A phase could not produce a usable result."""


class RemoteJobError(GenerationFailedError):
    """The remote operation finished with an error or without any output."""


class PollTimeoutError(GenerationFailedError, TimeoutError):
    """The remote operation did not finish before the polling deadline."""


_TRANSIENT_CODES = {429, 500, 503}
_AUTH_CODES = {401, 403}

_TRANSIENT_PATTERNS: tuple[str, ...] = (
    "429",
    "resource_exhausted",
    "500",
    "503",
)

_AUTH_PATTERNS: tuple[str, ...] = (
    "requested entity was not found",
    "permission_denied",
    "unauthenticated",
    "api key not valid",
)


def classify_service_error(error: BaseException) -> ErrorKind:
    """Translate an arbitrary exception into an :class:`ErrorKind`.

    Typed errors keep their own kind. SDK errors carrying an HTTP ``code``
    or an RPC ``status`` are mapped from those; a code outside the transient
    and auth sets is final. Errors without a code fall back to the substring
    signals the service embeds in its messages.
    """
    if isinstance(error, GenerationError):
        return error.kind

    code = getattr(error, "code", None)
    status = str(getattr(error, "status", "") or "").upper()
    msg = str(error).lower()

    if any(p in msg for p in _AUTH_PATTERNS):
        return ErrorKind.AUTHORIZATION
    if isinstance(code, int):
        # An explicit HTTP code is authoritative over message text.
        if code in _TRANSIENT_CODES:
            return ErrorKind.TRANSIENT
        if code in _AUTH_CODES:
            return ErrorKind.AUTHORIZATION
        return ErrorKind.OTHER
    if status == "RESOURCE_EXHAUSTED":
        return ErrorKind.TRANSIENT
    if any(p in msg for p in _TRANSIENT_PATTERNS):
        return ErrorKind.TRANSIENT
    return ErrorKind.OTHER


_KIND_TO_ERROR: dict[ErrorKind, type[GenerationError]] = {
    ErrorKind.TRANSIENT: TransientServiceError,
    ErrorKind.AUTHORIZATION: AuthorizationError,
    ErrorKind.VALIDATION: InputValidationError,
    ErrorKind.CANCELLED: GenerationCancelledError,
    ErrorKind.OTHER: GenerationFailedError,
}


def to_generation_error(error: BaseException) -> GenerationError:
    """Wrap a raw service exception in the matching typed error.

    The original exception is kept as ``__cause__``.
    """
    if isinstance(error, GenerationError):
        return error
    wrapped = _KIND_TO_ERROR[classify_service_error(error)](str(error))
    wrapped.__cause__ = error
    return wrapped


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    hint: str
    retryable: bool = False
    retry_after_seconds: int | None = None


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + human-readable hint."""
    if isinstance(error, FileNotFoundError):
        return (ErrorCategory.FILE_NOT_FOUND, "Seed image not found — check the path")
    if isinstance(error, PollTimeoutError):
        return (
            ErrorCategory.GENERATION_TIMEOUT,
            "Generation did not finish in time — raise VEO_POLL_MAX_WAIT or retry later",
        )

    kind = classify_service_error(error)
    if kind is ErrorKind.AUTHORIZATION:
        return (
            ErrorCategory.AUTH_REQUIRED,
            "API key is missing, invalid, or lost video access — select a key again and retry",
        )
    if kind is ErrorKind.VALIDATION or isinstance(error, ValueError):
        return (ErrorCategory.INVALID_INPUT, "Invalid input — check instruction, image, and options")
    if kind is ErrorKind.TRANSIENT:
        return (
            ErrorCategory.API_QUOTA_EXCEEDED,
            "Service is rate limited or overloaded — wait and retry",
        )
    if kind is ErrorKind.CANCELLED:
        return (ErrorCategory.CANCELLED, "Generation was cancelled")
    if isinstance(error, GenerationFailedError):
        return (ErrorCategory.GENERATION_FAILED, "The service could not produce a video for this request")

    return (ErrorCategory.UNKNOWN, str(error))


def make_tool_error(error: Exception) -> dict:
    """Create a serialisable ToolError dict from an exception."""
    cat, hint = categorize_error(error)
    retryable = cat in {
        ErrorCategory.API_QUOTA_EXCEEDED,
        ErrorCategory.GENERATION_TIMEOUT,
    }
    return ToolError(
        error=str(error),
        category=cat.value,
        hint=hint,
        retryable=retryable,
        retry_after_seconds=60 if cat == ErrorCategory.API_QUOTA_EXCEEDED else None,
    ).model_dump(mode="json")
