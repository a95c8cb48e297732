"""Unit tests for the runtime Settings model.

Tests verify defaults and that PROVIDERMESH_* environment variables bind to
the corresponding fields.
"""

import pytest
from pydantic import ValidationError

from providermesh.core.config import Settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "PROVIDERMESH_LOG_LEVEL",
        "PROVIDERMESH_DEFAULT_TIMEOUT_SECONDS",
        "PROVIDERMESH_STREAM_BUFFER_SIZE",
        "PROVIDERMESH_PROVIDER_ENTRY_POINT_GROUP",
        "PROVIDERMESH_LOAD_PLUGINS_ON_INIT",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettingsDefaults:
    def test_defaults(self, clean_env):
        settings = Settings(_env_file=None)
        assert settings.log_level == "INFO"
        assert settings.log_format == "detailed"
        assert settings.default_timeout_seconds is None
        assert settings.stream_buffer_size == 8
        assert settings.operation_poll_interval_seconds == 1.0
        assert settings.cancel_ack_timeout_seconds == 2.0
        assert settings.local_file_max_bytes == 20 * 1024 * 1024
        assert settings.provider_entry_point_group == "providermesh.providers"
        assert settings.load_plugins_on_init is True


class TestSettingsBinding:
    def test_timeout_binding(self, clean_env):
        clean_env.setenv("PROVIDERMESH_DEFAULT_TIMEOUT_SECONDS", "2.5")
        assert Settings(_env_file=None).default_timeout_seconds == 2.5

    def test_buffer_size_binding(self, clean_env):
        clean_env.setenv("PROVIDERMESH_STREAM_BUFFER_SIZE", "32")
        assert Settings(_env_file=None).stream_buffer_size == 32

    def test_plugin_group_binding(self, clean_env):
        clean_env.setenv("PROVIDERMESH_PROVIDER_ENTRY_POINT_GROUP", "acme.providers")
        clean_env.setenv("PROVIDERMESH_LOAD_PLUGINS_ON_INIT", "false")
        settings = Settings(_env_file=None)
        assert settings.provider_entry_point_group == "acme.providers"
        assert settings.load_plugins_on_init is False

    def test_unprefixed_variables_are_ignored(self, clean_env):
        clean_env.setenv("STREAM_BUFFER_SIZE", "99")
        assert Settings(_env_file=None).stream_buffer_size == 8

    def test_env_file_is_read(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("PROVIDERMESH_LOG_LEVEL=DEBUG\n")
        assert Settings(_env_file=env_file).log_level == "DEBUG"


class TestSettingsValidation:
    @pytest.mark.parametrize("value", ["0", "-1"])
    def test_buffer_size_must_be_positive(self, clean_env, value):
        clean_env.setenv("PROVIDERMESH_STREAM_BUFFER_SIZE", value)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_timeout_must_be_positive(self, clean_env):
        clean_env.setenv("PROVIDERMESH_DEFAULT_TIMEOUT_SECONDS", "0")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
