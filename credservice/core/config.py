from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    # Unset and blank are both "default"; callers see stripped values.
    return os.environ.get(name, default).strip()


def _getenv_bool(name: str, default: bool) -> bool:
    raw = _getenv(name, "true" if default else "false").lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _getenv_int(name: str, default: int, *, minimum: int = 0) -> int:
    raw = _getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum} (got {value})")
    return value


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    did_prefix: str = "did:solana:"
    auth_rate_limit_max: int = 5
    auth_rate_limit_window_seconds: int = 900
    rate_limit_sweep_seconds: int = 60
    strict_template_claims: bool = False
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    port = _getenv_int("PORT", 8000, minimum=1)

    did_prefix = _getenv("DID_PREFIX", "did:solana:")
    if not did_prefix.startswith("did:") or not did_prefix.endswith(":"):
        raise ValueError(
            f"DID_PREFIX must look like 'did:<method>:' (got {did_prefix!r})"
        )

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    cors_origins = tuple(
        origin.strip()
        for origin in _getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_getenv_bool("LOG_JSON", False),
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        did_prefix=did_prefix,
        auth_rate_limit_max=_getenv_int("AUTH_RATE_LIMIT_MAX", 5, minimum=1),
        auth_rate_limit_window_seconds=_getenv_int(
            "AUTH_RATE_LIMIT_WINDOW_SECONDS", 900, minimum=1
        ),
        rate_limit_sweep_seconds=_getenv_int(
            "RATE_LIMIT_SWEEP_SECONDS", 60, minimum=1
        ),
        strict_template_claims=_getenv_bool("STRICT_TEMPLATE_CLAIMS", False),
        cors_origins=cors_origins,
    )


# Validated once at import; a bad environment fails startup.
SETTINGS = load_settings()
