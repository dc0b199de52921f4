"""Utility modules for the Interview Session Engine."""

from .logging import setup_logging, get_logger, set_correlation_id, log_performance
from .exceptions import (
    InterviewEngineError,
    CallerVisibleError,
    ValidationError,
    ResourceNotFoundError,
    InvalidStateError,
    AuthenticationError,
    ConfigurationError,
    LLMProviderError,
    ServiceUnavailableError,
    RateLimitError,
    ResponseParsingError,
    StorageError,
    ConcurrentModificationError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "set_correlation_id",
    "log_performance",
    "InterviewEngineError",
    "CallerVisibleError",
    "ValidationError",
    "ResourceNotFoundError",
    "InvalidStateError",
    "AuthenticationError",
    "ConfigurationError",
    "LLMProviderError",
    "ServiceUnavailableError",
    "RateLimitError",
    "ResponseParsingError",
    "StorageError",
    "ConcurrentModificationError",
]
