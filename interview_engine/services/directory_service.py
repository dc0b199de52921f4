"""Narrow read-only interfaces to identity, profile and resume collaborators."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError as SchemaValidationError

from ..models.profile import ParsedResume, UserProfile
from ..utils.exceptions import AuthenticationError, ConfigurationError
from ..utils.logging import get_logger


class IdentityProvider(ABC):
    """Resolves an inbound credential to a user id."""

    @abstractmethod
    async def resolve_user(self, credential: str) -> str:
        """Return the user id for a credential.

        Raises:
            AuthenticationError: If the credential is unknown.
        """
        pass


class ProfileProvider(ABC):
    @abstractmethod
    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        pass


class ResumeProvider(ABC):
    @abstractmethod
    async def get_resume(self, user_id: str) -> Optional[ParsedResume]:
        pass


class InMemoryDirectory(IdentityProvider, ProfileProvider, ResumeProvider):
    """Dictionary-backed implementation of all three collaborator interfaces."""

    def __init__(self):
        self._tokens: Dict[str, str] = {}
        self._profiles: Dict[str, UserProfile] = {}
        self._resumes: Dict[str, ParsedResume] = {}
        self.logger = get_logger("directory_service")

    def add_user(
        self,
        user_id: str,
        profile: Optional[UserProfile] = None,
        resume: Optional[ParsedResume] = None,
        token: Optional[str] = None,
    ) -> None:
        """Register a user; a profile is created when none is given."""
        self._profiles[user_id] = profile or UserProfile()
        if resume is not None:
            self._resumes[user_id] = resume
        if token:
            self._tokens[token] = user_id

    async def resolve_user(self, credential: str) -> str:
        user_id = self._tokens.get(credential or "")
        if user_id is None:
            self.logger.warning("Rejected unknown credential")
            raise AuthenticationError(auth_method="token")
        return user_id

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        profile = self._profiles.get(user_id)
        return profile.model_copy(deep=True) if profile is not None else None

    async def get_resume(self, user_id: str) -> Optional[ParsedResume]:
        resume = self._resumes.get(user_id)
        return resume.model_copy(deep=True) if resume is not None else None


class YamlDirectory(InMemoryDirectory):
    """Directory loaded from a YAML file of the form::

        users:
          - user_id: alice
            token: alice-token
            profile: {targetRole: Backend Engineer, experience: 2 years}
            resume: {skills: [Python, SQL]}
    """

    def __init__(self, file_path: str):
        super().__init__()
        self.file_path = Path(file_path)

    def load(self) -> "YamlDirectory":
        """Read users from the YAML file.

        Raises:
            ConfigurationError: If the file is missing or malformed.
        """
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load user directory {self.file_path}: {e}", config_key="directory_file") from e

        users = data.get("users") if isinstance(data, dict) else None
        if not isinstance(users, list):
            raise ConfigurationError(f"User directory {self.file_path} must contain a 'users' list", config_key="directory_file")

        for entry in users:
            self._load_entry(entry)

        self.logger.info(f"Loaded {len(users)} users from {self.file_path}")
        return self

    def _load_entry(self, entry: Dict[str, Any]) -> None:
        user_id = entry.get("user_id") if isinstance(entry, dict) else None
        if not user_id:
            raise ConfigurationError(f"User entry without user_id in {self.file_path}", config_key="directory_file")

        try:
            profile = UserProfile.model_validate(entry.get("profile") or {})
            resume = ParsedResume.model_validate(entry["resume"]) if entry.get("resume") else None
        except SchemaValidationError as e:
            raise ConfigurationError(f"Invalid data for user {user_id}: {e}", config_key="directory_file") from e

        self.add_user(str(user_id), profile=profile, resume=resume, token=entry.get("token"))
