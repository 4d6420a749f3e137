# =============================================================================
# tests/unit/test_config.py
# Unit Tests for Configuration Loading
# =============================================================================

import pytest

from fleet_core.config import AppConfig, load_config
from fleet_core.errors import ConfigurationError

SECRETS = """
[supabase]
url = "https://from-secrets.supabase.co"
key = "secret-key"

[fleet]
storage_prefix = "empresa"
id_lookup_timeout = 5
"""


@pytest.fixture
def secrets_file(tmp_path):
    path = tmp_path / "secrets.toml"
    path.write_text(SECRETS, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_defaults_without_sources(self, tmp_path):
        config = load_config(secrets_path=tmp_path / "missing.toml", env={})

        assert config == AppConfig()
        assert not config.remote_enabled

    def test_secrets_file(self, secrets_file):
        config = load_config(secrets_path=secrets_file, env={})

        assert config.supabase_url == "https://from-secrets.supabase.co"
        assert config.storage_prefix == "empresa"
        assert config.id_lookup_timeout == 5.0
        assert config.remote_enabled

    def test_environment_wins_over_secrets(self, secrets_file):
        env = {
            "SUPABASE_URL": "https://from-env.supabase.co",
            "FLEET_PERSIST_DEBOUNCE": "0",
            "FLEET_REALTIME_ENABLED": "off",
        }
        config = load_config(secrets_path=secrets_file, env=env)

        assert config.supabase_url == "https://from-env.supabase.co"
        assert config.supabase_key == "secret-key"
        assert config.persist_debounce == 0.0
        assert config.realtime_enabled is False

    def test_invalid_float(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(secrets_path=tmp_path / "x.toml", env={"FLEET_ID_LOOKUP_TIMEOUT": "soon"})

    def test_invalid_bool(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(secrets_path=tmp_path / "x.toml", env={"FLEET_REALTIME_ENABLED": "maybe"})

    def test_non_positive_timeout(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config(secrets_path=tmp_path / "x.toml", env={"FLEET_ID_LOOKUP_TIMEOUT": "0"})

    def test_malformed_secrets(self, tmp_path):
        path = tmp_path / "secrets.toml"
        path.write_text("[supabase]\nurl = \n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_config(secrets_path=path, env={})


class TestAppConfig:
    def test_remote_needs_url_and_key(self):
        assert not AppConfig(supabase_url="https://x.supabase.co").remote_enabled
        assert AppConfig(supabase_url="https://x.supabase.co", supabase_key="k").remote_enabled

    def test_with_overrides_validates(self):
        with pytest.raises(ConfigurationError):
            AppConfig().with_overrides(storage_prefix="")
        assert AppConfig().with_overrides(persist_debounce=0).persist_debounce == 0
