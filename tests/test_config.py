from __future__ import annotations

import pytest

from rrio_data.config import (
    DEFAULT_API_BASE_URL,
    ENV_API_BASE_URL,
    ENV_ENVIRONMENT,
    ENV_SETTINGS_PATH,
    ENV_STRICT_VALIDATION,
    ClientSettings,
    SettingsError,
    build_api_url,
    load_settings,
)

SETTINGS_TOML = """
[api]
base_url = "https://rrio.example.org/"
environment = "production"
headers = { "X-Client" = "dashboard" }

[fetch]
timeout_ms = 5000
max_retries = 1

[validation]
strict = true

[logging]
level = "DEBUG"
"""


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    for name in (ENV_SETTINGS_PATH, ENV_API_BASE_URL, ENV_ENVIRONMENT, ENV_STRICT_VALIDATION):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def _write_settings(tmp_path, content: str = SETTINGS_TOML):
    path = tmp_path / "settings.toml"
    path.write_text(content, encoding="utf-8")
    return path


def test_defaults_without_settings_file():
    settings = load_settings()

    assert settings.api_base_url == DEFAULT_API_BASE_URL
    assert settings.environment == "development"
    assert settings.strict_validation is False
    assert settings.source_path is None


def test_load_settings_from_file(tmp_path):
    path = _write_settings(tmp_path)

    settings = load_settings(path)

    assert settings.api_base_url == "https://rrio.example.org"
    assert settings.environment == "production"
    assert settings.default_timeout_ms == 5000
    assert settings.default_max_retries == 1
    assert settings.default_retry_delay_ms == 1000
    assert settings.strict_validation is True
    assert settings.log_level == "DEBUG"
    assert settings.headers["X-Client"] == "dashboard"
    assert settings.headers["Content-Type"] == "application/json"
    assert settings.source_path == path


def test_settings_discovered_in_working_directory(tmp_path):
    (tmp_path / ".rrio").mkdir()
    (tmp_path / ".rrio" / "settings.toml").write_text('[api]\nbase_url = "http://cwd.test"\n', encoding="utf-8")

    assert load_settings().api_base_url == "http://cwd.test"


def test_settings_path_from_environment(monkeypatch, tmp_path):
    path = _write_settings(tmp_path)
    monkeypatch.setenv(ENV_SETTINGS_PATH, str(path))

    assert load_settings().environment == "production"


def test_environment_overrides_file(monkeypatch, tmp_path):
    path = _write_settings(tmp_path)
    monkeypatch.setenv(ENV_API_BASE_URL, "http://override.test/")
    monkeypatch.setenv(ENV_ENVIRONMENT, "Test")
    monkeypatch.setenv(ENV_STRICT_VALIDATION, "off")

    settings = load_settings(path)

    assert settings.api_base_url == "http://override.test"
    assert settings.environment == "test"
    assert settings.strict_validation is False


def test_invalid_strict_flag(monkeypatch):
    monkeypatch.setenv(ENV_STRICT_VALIDATION, "sometimes")

    with pytest.raises(SettingsError, match=ENV_STRICT_VALIDATION):
        load_settings()


@pytest.mark.parametrize(
    "content",
    [
        '[api]\nbase_url = "ftp://rrio.test"\n',
        '[api]\nenvironment = "staging"\n',
        "[fetch]\nmax_retries = -1\n",
        "[fetch]\ntimeout_ms = true\n",
        "[api\n",
    ],
)
def test_invalid_settings_file(tmp_path, content):
    path = _write_settings(tmp_path, content)

    with pytest.raises(SettingsError):
        load_settings(path)


def test_missing_explicit_file(tmp_path):
    with pytest.raises(SettingsError, match="does not exist"):
        load_settings(tmp_path / "absent.toml")


def test_with_overrides_ignores_none():
    settings = ClientSettings().with_overrides(api_base_url="https://x.test/", strict_validation=None)

    assert settings.api_base_url == "https://x.test"
    assert settings.strict_validation is False


def test_build_api_url():
    settings = ClientSettings(api_base_url="http://rrio.test")

    assert build_api_url("/api/v1/alerts/active", settings) == "http://rrio.test/api/v1/alerts/active"
    assert build_api_url("api/v1/alerts/active", settings) == "http://rrio.test/api/v1/alerts/active"
    assert build_api_url("https://other.test/x", settings) == "https://other.test/x"
    assert build_api_url("/x") == f"{DEFAULT_API_BASE_URL}/x"
