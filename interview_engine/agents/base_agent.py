"""Lifecycle and logging shared by the engine's agents."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..utils.logging import get_logger, set_correlation_id


class BaseAgent(ABC):
    """An agent owns resources that are opened once and released once.

    Subclasses implement ``_initialize_resources`` and ``_cleanup_resources``;
    ``initialize`` and ``cleanup`` make both calls idempotent.
    """

    def __init__(self, agent_name: str):
        self.agent_name = agent_name
        self.logger = get_logger(f"agent.{agent_name}")
        self._initialized = False

    async def initialize(self) -> None:
        if self._initialized:
            self.logger.debug(f"{self.agent_name} is already initialized")
            return
        try:
            await self._initialize_resources()
        except Exception as e:
            self.logger.error(f"{self.agent_name} failed to initialize: {e}")
            raise
        self._initialized = True
        self.logger.info(f"{self.agent_name} ready")

    async def cleanup(self) -> None:
        if not self._initialized:
            return
        # Marked down first so a failing release is not retried on the next call.
        self._initialized = False
        try:
            await self._cleanup_resources()
        except Exception as e:
            self.logger.error(f"{self.agent_name} failed to release resources: {e}")
            raise
        self.logger.info(f"{self.agent_name} stopped")

    @abstractmethod
    async def _initialize_resources(self) -> None:
        pass

    @abstractmethod
    async def _cleanup_resources(self) -> None:
        pass

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def bind_session(self, session_id: str) -> None:
        """Tag log records emitted in the current task with a session id."""
        set_correlation_id(session_id)

    def log_operation(self, operation: str, details: Optional[Dict[str, Any]] = None) -> None:
        extra: Dict[str, Any] = {"agent": self.agent_name}
        extra.update(details or {})
        self.logger.info(f"{operation} done", extra=extra)
