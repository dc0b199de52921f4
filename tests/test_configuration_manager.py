"""Tests for configuration loading."""

import pytest

from interview_engine.services.configuration_manager import ENV_OVERRIDES, ConfigurationManager
from interview_engine.utils.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    # setenv first so monkeypatch restores the original state after load_dotenv writes
    for name in list(ENV_OVERRIDES) + ["ENVIRONMENT"]:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def make_manager(tmp_path) -> ConfigurationManager:
    return ConfigurationManager(config_path=str(tmp_path), env_file=str(tmp_path / ".env"))


def test_defaults_without_files(tmp_path):
    manager = make_manager(tmp_path)
    manager.initialize()

    config = manager.get_config()
    assert config.gateway.retry_attempts == 3
    assert config.gateway.retry_delay == 2.0
    assert config.gateway.operation_timeout == 45.0
    assert config.gateway.min_answer_length == 10
    assert config.storage.type == "file"
    assert config.gemini.api_key == ""


def test_yaml_files_are_layered(tmp_path):
    (tmp_path / "config.yaml").write_text(
        "environment: staging\n"
        "gateway:\n  retry_attempts: 5\n  retry_delay: 0.5\n"
        "storage:\n  type: memory\n",
        encoding="utf-8",
    )
    (tmp_path / "config.staging.yaml").write_text("gateway:\n  retry_delay: 1.5\n", encoding="utf-8")

    manager = make_manager(tmp_path)
    manager.initialize()

    config = manager.get_config()
    assert config.gateway.retry_attempts == 5
    assert config.gateway.retry_delay == 1.5
    assert config.gateway.operation_timeout == 45.0
    assert config.storage.type == "memory"


def test_environment_variables_override_files(tmp_path, monkeypatch):
    (tmp_path / "config.yaml").write_text("gemini:\n  model: from-yaml\n", encoding="utf-8")
    monkeypatch.setenv("GEMINI_MODEL", "from-env")
    monkeypatch.setenv("STORAGE_PATH", "/tmp/sessions")

    manager = make_manager(tmp_path)
    manager.initialize()

    assert manager.get_config().gemini.model == "from-env"
    assert manager.get_config().storage.base_path == "/tmp/sessions"


def test_dotenv_file_is_loaded(tmp_path):
    (tmp_path / ".env").write_text("GEMINI_API_KEY=secret-from-dotenv\n", encoding="utf-8")

    manager = make_manager(tmp_path)
    manager.initialize()

    assert manager.get_provider_config()["api_key"] == "secret-from-dotenv"
    assert manager.get_provider_config()["name"] == "gemini"


def test_unsupported_storage_type(tmp_path, monkeypatch):
    monkeypatch.setenv("STORAGE_TYPE", "mongodb")

    with pytest.raises(ConfigurationError):
        make_manager(tmp_path).initialize()


@pytest.mark.parametrize("content", [
    "gateway:\n  retry_attempts: 0\n",
    "gemini:\n  temperature: 5\n",
    "gateway:\n  retry_delay: -1\n",
])
def test_invalid_values_raise(tmp_path, content):
    (tmp_path / "config.yaml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        make_manager(tmp_path).initialize()


def test_malformed_yaml_raises(tmp_path):
    (tmp_path / "config.yaml").write_text("gateway: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        make_manager(tmp_path).initialize()


def test_non_mapping_yaml_raises(tmp_path):
    (tmp_path / "config.yaml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        make_manager(tmp_path).initialize()


def test_get_config_before_initialize(tmp_path):
    with pytest.raises(ConfigurationError):
        make_manager(tmp_path).get_config()


def test_relative_directory_file_follows_config_directory(tmp_path):
    (tmp_path / "config.yaml").write_text("directory_file: people/users.yaml\n", encoding="utf-8")
    manager = make_manager(tmp_path)
    manager.initialize()

    assert manager.get_config().directory_file == str(tmp_path / "people" / "users.yaml")


def test_default_directory_file_sits_beside_config(tmp_path):
    manager = make_manager(tmp_path)
    manager.initialize()

    assert manager.get_config().directory_file == str(tmp_path / "users.yaml")


def test_absolute_directory_file_is_kept(tmp_path, monkeypatch):
    users_file = tmp_path / "elsewhere" / "users.yaml"
    monkeypatch.setenv("DIRECTORY_FILE", str(users_file))
    manager = make_manager(tmp_path)
    manager.initialize()

    assert manager.get_config().directory_file == str(users_file)
