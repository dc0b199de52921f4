"""Agent modules for the Interview Session Engine."""

from .base_agent import BaseAgent
from .orchestrator_agent import SessionOrchestrator

__all__ = [
    "BaseAgent",
    "SessionOrchestrator",
]
