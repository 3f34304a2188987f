from __future__ import annotations

import pytest

from credservice.core.config import AppEnv, Settings, load_settings

# ---- APP_ENV / LOG_LEVEL ----


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("APP_ENV", "LOG_LEVEL", "PORT", "DATABASE_URL", "REDIS_URL"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.port == 8000
    assert settings.database_url is None
    assert settings.redis_url is None


@pytest.mark.parametrize(
    "app_env,log_level,expected",
    [
        ("prod", "error", ("prod", "error")),
        ("PROD", "DEBUG", ("prod", "debug")),
        ("  test  ", "  warning  ", ("test", "warning")),
    ],
)
def test_load_settings_normalizes_env(
    monkeypatch: pytest.MonkeyPatch, app_env: str, log_level: str, expected: tuple
) -> None:
    monkeypatch.setenv("APP_ENV", app_env)
    monkeypatch.setenv("LOG_LEVEL", log_level)
    settings = load_settings()
    assert (settings.app_env, settings.log_level) == expected


@pytest.mark.parametrize(
    "name,value,message",
    [
        ("APP_ENV", "staging", "APP_ENV must be dev|test|prod"),
        ("APP_ENV", "", "APP_ENV must be dev|test|prod"),
        ("LOG_LEVEL", "verbose", "LOG_LEVEL must be debug|info|warning|error"),
        ("LOG_LEVEL", "", "LOG_LEVEL must be debug|info|warning|error"),
    ],
)
def test_load_settings_rejects_bad_env(
    monkeypatch: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError, match=message):
        load_settings()


def test_empty_database_url_means_in_memory(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "   ")
    assert load_settings().database_url is None


# ---- Settings properties ----


def _make_settings(app_env: AppEnv = "dev") -> Settings:
    return Settings(  # type: ignore[arg-type]
        app_env=app_env,
        log_level="info",
        log_json=False,
        port=8000,
        database_url=None,
        redis_url=None,
    )


@pytest.mark.parametrize("app_env", ["dev", "test", "prod"])
def test_exactly_one_env_flag_is_set(app_env: AppEnv) -> None:
    s = _make_settings(app_env)
    flags = {"dev": s.is_dev, "test": s.is_test, "prod": s.is_prod}
    assert [k for k, v in flags.items() if v] == [app_env]


def test_settings_is_frozen() -> None:
    s = _make_settings()
    with pytest.raises(AttributeError):
        s.did_prefix = "did:web:"  # type: ignore[misc]


# ---- domain settings ----


def test_load_settings_domain_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "DID_PREFIX",
        "AUTH_RATE_LIMIT_MAX",
        "AUTH_RATE_LIMIT_WINDOW_SECONDS",
        "STRICT_TEMPLATE_CLAIMS",
        "CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.did_prefix == "did:solana:"
    assert settings.auth_rate_limit_max == 5
    assert settings.auth_rate_limit_window_seconds == 900
    assert settings.strict_template_claims is False
    assert settings.cors_origins == ("http://localhost:3000",)


def test_load_settings_parses_cors_list(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")
    settings = load_settings()
    assert settings.cors_origins == ("https://a.example", "https://b.example")


def test_load_settings_rejects_malformed_did_prefix(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("DID_PREFIX", "solana")
    with pytest.raises(ValueError, match="DID_PREFIX"):
        load_settings()


def test_load_settings_rejects_zero_rate_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTH_RATE_LIMIT_MAX", "0")
    with pytest.raises(ValueError, match="AUTH_RATE_LIMIT_MAX must be >= 1"):
        load_settings()


def test_load_settings_rejects_non_integer_port(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "eighty")
    with pytest.raises(ValueError, match="PORT must be an integer"):
        load_settings()


def test_load_settings_parses_booleans(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STRICT_TEMPLATE_CLAIMS", "yes")
    monkeypatch.setenv("LOG_JSON", "off")
    settings = load_settings()
    assert settings.strict_template_claims is True
    assert settings.log_json is False


def test_load_settings_rejects_bad_boolean(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LOG_JSON", "maybe")
    with pytest.raises(ValueError, match="LOG_JSON must be a boolean"):
        load_settings()
