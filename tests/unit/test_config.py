"""Tests for photoprompt.config: defaults and environment overrides."""

import pytest

from photoprompt.config import Settings, load_settings


@pytest.fixture
def clean_env(monkeypatch):
    import os

    for key in list(os.environ):
        if key.startswith("PHOTOPROMPT__"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestDefaults:
    def test_provider_defaults(self, clean_env):
        cfg = Settings(_env_file=None)
        assert cfg.primary.model == "google/gemini-2.5-flash-image-preview:free"
        assert str(cfg.primary.base_url).startswith("https://openrouter.ai/api/v1")
        assert cfg.secondary.edit_application == "fal-ai/nano-banana/edit"
        assert cfg.secondary.text_to_image_application == "fal-ai/nano-banana"

    def test_storage_defaults(self, clean_env):
        cfg = Settings(_env_file=None)
        assert cfg.storage.bucket == "user pictures"
        assert cfg.storage.url is None

    def test_gateway_defaults(self, clean_env):
        cfg = Settings(_env_file=None)
        assert cfg.gateway.default_instructions == "Generate an image."
        assert cfg.gateway.request_timeout == 120.0
        assert cfg.gateway.port == 5000


class TestEnvironment:
    def test_nested_env_override(self, clean_env):
        clean_env.setenv("PHOTOPROMPT__PRIMARY__API_KEY", "sk-or-env")
        clean_env.setenv("PHOTOPROMPT__STORAGE__BUCKET", "inputs")
        clean_env.setenv("PHOTOPROMPT__GATEWAY__REQUEST_TIMEOUT", "30")
        cfg = Settings(_env_file=None)
        assert cfg.primary.api_key == "sk-or-env"
        assert cfg.storage.bucket == "inputs"
        assert cfg.gateway.request_timeout == 30.0

    def test_load_settings_overrides_win(self, clean_env):
        clean_env.setenv("PHOTOPROMPT__PRIMARY__API_KEY", "sk-or-env")
        cfg = load_settings(_env_file=None, primary={"api_key": "explicit"})
        assert cfg.primary.api_key == "explicit"

    def test_invalid_timeout_rejected(self, clean_env):
        with pytest.raises(Exception):
            Settings(_env_file=None, gateway={"request_timeout": 0})
