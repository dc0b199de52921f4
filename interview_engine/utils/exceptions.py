"""Error taxonomy for the Interview Session Engine.

Only validation, not-found, invalid-state and authentication errors reach the
caller as distinguishable kinds. Provider errors are absorbed by the AI gateway;
storage and configuration errors surface as an opaque server error.
"""

from typing import Any, Dict, Optional


class InterviewEngineError(Exception):
    """Base exception for all engine errors.

    Keyword context passed to the constructor (``session_id=...``,
    ``provider_name=...``) is kept in ``details`` and exposed as attributes.
    """

    error_code = "ENGINE_ERROR"
    default_user_message = "Server error"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = dict(details or {})
        for key, value in context.items():
            setattr(self, key, value)
            if value is not None:
                self.details[key] = value

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    @property
    def user_message(self) -> str:
        """Text safe to show the caller."""
        return self.default_user_message

    @property
    def is_caller_visible(self) -> bool:
        return False


class CallerVisibleError(InterviewEngineError):
    """Errors the caller sees and can tell apart. Never retried."""

    @property
    def user_message(self) -> str:
        return self.message

    @property
    def is_caller_visible(self) -> bool:
        return True


class ValidationError(CallerVisibleError):
    """Missing or malformed input, rejected before any I/O."""

    error_code = "VALIDATION_ERROR"
    field_name: Optional[str] = None


class ResourceNotFoundError(CallerVisibleError):
    """A session, question, user or resume is absent, or owned by another user."""

    error_code = "NOT_FOUND"
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None


class InvalidStateError(CallerVisibleError):
    """The operation is not legal for the session's status or question count."""

    error_code = "INVALID_STATE"
    session_id: Optional[str] = None
    status: Optional[str] = None


class AuthenticationError(CallerVisibleError):
    error_code = "UNAUTHORIZED"
    auth_method: Optional[str] = None

    def __init__(self, message: str = "Unauthorized", **context: Any):
        super().__init__(message, **context)


class ConfigurationError(InterviewEngineError):
    error_code = "CONFIG_ERROR"
    config_key: Optional[str] = None


class LLMProviderError(InterviewEngineError):
    """The generative-text provider failed or returned unusable output."""

    error_code = "LLM_PROVIDER_ERROR"
    provider_name: Optional[str] = None
    status_code: Optional[int] = None


class ServiceUnavailableError(LLMProviderError):
    """Transient provider overload (HTTP 503). The only retryable provider error."""

    error_code = "SERVICE_UNAVAILABLE"
    status_code = 503


class RateLimitError(LLMProviderError):
    error_code = "RATE_LIMITED"
    status_code = 429
    retry_after: Optional[int] = None


class ResponseParsingError(LLMProviderError):
    """Provider output is not JSON or does not fit the expected schema."""

    error_code = "RESPONSE_PARSING_ERROR"
    raw_text: Optional[str] = None


class StorageError(InterviewEngineError):
    error_code = "STORAGE_ERROR"
    file_path: Optional[str] = None


class ConcurrentModificationError(StorageError):
    """A conditional save found a different version than the one it read."""

    error_code = "CONCURRENT_MODIFICATION"
    session_id: Optional[str] = None
    expected_version: Optional[int] = None
    actual_version: Optional[int] = None
