"""Service modules for the Interview Session Engine."""

from .ai_gateway import AIGateway, LLMProvider, create_provider
from .configuration_manager import AppConfig, ConfigurationManager, GatewayConfig
from .directory_service import IdentityProvider, InMemoryDirectory, ProfileProvider, ResumeProvider, YamlDirectory
from .storage_manager import FileStorageManager, MemoryStorageManager, StorageManager

__all__ = [
    "AIGateway",
    "LLMProvider",
    "create_provider",
    "AppConfig",
    "ConfigurationManager",
    "GatewayConfig",
    "IdentityProvider",
    "InMemoryDirectory",
    "ProfileProvider",
    "ResumeProvider",
    "YamlDirectory",
    "FileStorageManager",
    "MemoryStorageManager",
    "StorageManager",
]
