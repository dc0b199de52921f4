"""Interview Session Engine: AI-driven interview practice sessions."""

__version__ = "1.0.0"
