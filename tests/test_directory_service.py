"""Tests for the identity, profile and resume collaborators."""

import pytest

from interview_engine.services.directory_service import InMemoryDirectory, YamlDirectory
from interview_engine.utils.exceptions import AuthenticationError, ConfigurationError

USERS_YAML = """
users:
  - user_id: alice
    token: alice-token
    profile:
      targetRole: Backend Engineer
      experience: 2 years
    resume:
      skills: [Python, SQL]
      experienceLevel: Mid
  - user_id: bob
    token: bob-token
"""


async def test_in_memory_directory_resolves_tokens(directory):
    assert await directory.resolve_user("alice-token") == "alice"

    with pytest.raises(AuthenticationError) as exc_info:
        await directory.resolve_user("forged")
    assert exc_info.value.user_message == "Unauthorized"


async def test_in_memory_directory_returns_copies(directory):
    profile = await directory.get_profile("alice")
    profile.target_role = "Changed"

    assert (await directory.get_profile("alice")).target_role == "Backend Engineer"
    assert await directory.get_profile("nobody") is None
    assert await directory.get_resume("bob") is None


async def test_yaml_directory_loads_users(tmp_path):
    users_file = tmp_path / "users.yaml"
    users_file.write_text(USERS_YAML, encoding="utf-8")

    directory = YamlDirectory(str(users_file)).load()

    assert await directory.resolve_user("bob-token") == "bob"
    profile = await directory.get_profile("alice")
    assert profile.target_role == "Backend Engineer"
    resume = await directory.get_resume("alice")
    assert resume.skills == ["Python", "SQL"]
    assert resume.experience_level == "Mid"
    assert await directory.get_profile("bob") is not None
    assert await directory.get_resume("bob") is None


def test_yaml_directory_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        YamlDirectory(str(tmp_path / "missing.yaml")).load()


@pytest.mark.parametrize("content", ["users: {}\n", "users:\n  - token: orphan\n", "- a\n- b\n"])
def test_yaml_directory_rejects_malformed_content(tmp_path, content):
    users_file = tmp_path / "users.yaml"
    users_file.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        YamlDirectory(str(users_file)).load()


async def test_add_user_without_profile_creates_empty_profile():
    directory = InMemoryDirectory()
    directory.add_user("carol")

    profile = await directory.get_profile("carol")
    assert profile is not None
    assert profile.target_role is None
