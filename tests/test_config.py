"""Tests for settings loading"""

import pytest

from tokay.utils.config import ConfigManager
from tokay.utils.exceptions import ConfigError


def test_defaults_when_file_missing(monkeypatch, tmp_path):
    monkeypatch.delenv("TOKAY_API_URL", raising=False)
    monkeypatch.delenv("TOKAY_REALTIME_URL", raising=False)
    monkeypatch.setenv("TOKAY_DATA_DIR", str(tmp_path))

    settings = ConfigManager().load_settings(tmp_path / "missing.yaml")

    assert settings.api.base_url == "http://localhost:5000/api"
    assert settings.api.realtime_url is None
    assert settings.api.timeout_seconds == 10.0
    assert settings.storage.token_path() == tmp_path / "session.json"
    assert settings.storage.token_key == "tokay_token"
    assert settings.payments.poll_interval_seconds == 2.0
    assert settings.payments.poll_max_seconds == 300.0


def test_env_overrides_default_url(monkeypatch, tmp_path):
    monkeypatch.setenv("TOKAY_API_URL", "https://api.tokay.my/api/")

    settings = ConfigManager().load_settings(tmp_path / "missing.yaml")

    assert settings.api.normalized_base_url() == "https://api.tokay.my/api"


def test_yaml_with_env_substitution(monkeypatch, tmp_path):
    monkeypatch.setenv("TOKAY_TEST_URL", "https://staging.tokay.my/api")
    path = tmp_path / "settings.yaml"
    path.write_text(
        "api:\n"
        "  base_url: ${TOKAY_TEST_URL}\n"
        "  timeout_seconds: 5\n"
        "web:\n"
        "  port: ${TOKAY_TEST_PORT:9000}\n",
        encoding="utf-8",
    )

    settings = ConfigManager().load_settings(path)

    assert settings.api.base_url == "https://staging.tokay.my/api"
    assert settings.api.timeout_seconds == 5.0
    assert settings.web.port == 9000
    assert settings.web.login_path == "/login"


def test_missing_required_env_var(monkeypatch, tmp_path):
    monkeypatch.delenv("TOKAY_UNSET_VAR", raising=False)
    path = tmp_path / "settings.yaml"
    path.write_text("api:\n  base_url: ${TOKAY_UNSET_VAR}\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="TOKAY_UNSET_VAR"):
        ConfigManager().load_settings(path)


@pytest.mark.parametrize(
    "content",
    [
        "api: [unclosed\n",
        "- just\n- a list\n",
        "api:\n  timeout_seconds: soon\n",
    ],
)
def test_invalid_settings(tmp_path, content):
    path = tmp_path / "settings.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigManager().load_settings(path)


def test_config_manager_is_singleton():
    assert ConfigManager() is ConfigManager()
