"""Tests for secure_data_bag.config — environment-driven configuration."""

import pytest

from secure_data_bag.config import Config, get_config, reset_config


class TestConfigDefaults:
    def test_defaults(self):
        cfg = Config()
        assert cfg.secret_file is None
        assert cfg.secret_timeout == 10.0
        assert cfg.cipher == "aes-256-cbc"
        assert cfg.encoded_fields == ()

    def test_frozen(self):
        cfg = Config()
        with pytest.raises(AttributeError):
            cfg.cipher = "other"  # type: ignore[misc]


class TestLoadFromEnv:
    def test_no_env_no_default_file(self):
        assert get_config().secret_file is None

    def test_default_secret_file_used_when_present(self, tmp_path, monkeypatch):
        default = tmp_path / "encrypted_data_bag_secret"
        default.write_text("k")
        monkeypatch.setattr("secure_data_bag.config.DEFAULT_SECRET_FILE", default)
        assert get_config().secret_file == str(default)

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SECURE_BAG_SECRET_FILE", "https://keys.local/bag")
        monkeypatch.setenv("SECURE_BAG_SECRET_TIMEOUT", "2.5")
        monkeypatch.setenv("SECURE_BAG_CIPHER", "aes-256-gcm")
        monkeypatch.setenv("SECURE_BAG_ENCODED_FIELDS", "token, api_key,,")
        cfg = get_config()
        assert cfg.secret_file == "https://keys.local/bag"
        assert cfg.secret_timeout == 2.5
        assert cfg.cipher == "aes-256-gcm"
        assert cfg.encoded_fields == ("token", "api_key")

    def test_singleton(self):
        assert get_config() is get_config()

    def test_reset(self, monkeypatch):
        first = get_config()
        reset_config()
        monkeypatch.setenv("SECURE_BAG_CIPHER", "aes-256-gcm")
        second = get_config()
        assert first is not second
        assert second.cipher == "aes-256-gcm"
