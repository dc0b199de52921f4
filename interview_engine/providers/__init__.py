"""LLM provider implementations for the Interview Session Engine."""

from .gemini_provider import GeminiProvider

__all__ = [
    "GeminiProvider",
]
