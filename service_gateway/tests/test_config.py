"""
Unit tests for settings loading.
"""

import pydantic
import pytest

from shared.config import GatewaySettings, load_settings

CONFIG_TOML = """
env = "production"

[server]
binding = "0.0.0.0"
port = 9000

[logger]
level = "debug"
format = "compact"

[jwt]
public_key = "file-public-key"

[aliyun]
access_key_id = "file-key-id"
access_key_secret = "file-key-secret"

[aliyun.bucket_url_map]
media-bucket = "https://cdn.example.com/{object_key}"
"""


class TestLoadSettings:
    """Test cases for load_settings."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        monkeypatch.delenv("JANUS_CONFIG", raising=False)

    @pytest.fixture
    def config_file(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(CONFIG_TOML)
        return path

    def test_load_from_file(self, config_file):
        settings = load_settings(config_file)

        assert settings.env == "production"
        assert settings.server.full_url() == "0.0.0.0:9000"
        assert settings.logger.level == "debug"
        assert settings.logger.format == "compact"
        assert settings.jwt.public_key == "file-public-key"
        assert settings.aliyun.access_key_id == "file-key-id"
        assert settings.aliyun.cdn_endpoint == "cdn.aliyuncs.com"
        assert settings.aliyun.bucket_url_map == {"media-bucket": "https://cdn.example.com/{object_key}"}
        assert settings.bilibili is None

    def test_environment_overrides_file(self, config_file, monkeypatch):
        monkeypatch.setenv("JANUS_ALIYUN__ACCESS_KEY_ID", "env-key-id")
        monkeypatch.setenv("JANUS_SERVER__PORT", "9100")

        settings = load_settings(config_file)

        assert settings.aliyun.access_key_id == "env-key-id"
        assert settings.aliyun.access_key_secret == "file-key-secret"
        assert settings.server.port == 9100

    def test_config_path_from_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("JANUS_CONFIG", str(config_file))

        assert load_settings().env == "production"

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "missing.toml")

    def test_default_file_missing_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        settings = load_settings()

        assert settings.env == "local"
        assert settings.server.full_url() == "localhost:8000"
        assert settings.logger.format == "json"
        assert settings.http.request_body_timeout_seconds == 10.0
        assert settings.jwt.token_ttl_seconds is None
        assert settings.aliyun is None

    def test_template_without_placeholder(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(CONFIG_TOML.replace("{object_key}", "{key}"))

        with pytest.raises(pydantic.ValidationError):
            load_settings(path)

    def test_unknown_level_rejected(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(CONFIG_TOML.replace('level = "debug"', 'level = "loud"'))

        with pytest.raises(pydantic.ValidationError):
            load_settings(path)

    def test_settings_are_frozen(self):
        settings = GatewaySettings()

        with pytest.raises(pydantic.ValidationError):
            settings.server.port = 1

    def test_unknown_section_keys_rejected(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text(CONFIG_TOML.replace("port = 9000", 'port = 9000\nhost = "localhost"'))

        with pytest.raises(pydantic.ValidationError):
            load_settings(path)
