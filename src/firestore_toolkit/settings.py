from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping
import logging
import os


DEFAULT_FIRESTORE_DATABASE = "(default)"
DEFAULT_SIGNED_URL_TTL_MINUTES = 15
DEFAULT_HTTP_TIMEOUT_SECONDS = 10
DEFAULT_LOG_LEVEL = "INFO"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class SettingsError(ValueError):
    """Raised when settings values are invalid."""


@dataclass(frozen=True)
class AppSettings:
    app_env: str
    firestore_project_id: str
    firestore_database: str
    storage_bucket: str
    signed_url_ttl_minutes: int
    http_base_url: str
    http_timeout_seconds: int
    log_level: str

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)


def _read_dotenv(dotenv_path: Path) -> dict[str, str]:
    if not dotenv_path.is_file():
        return {}

    values: dict[str, str] = {}
    for line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if line.startswith("#") or not sep or not key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        values[key] = value
    return values


def _get_required_str(values: Mapping[str, str], key: str, default: str) -> str:
    value = values.get(key, default).strip()
    if value:
        return value
    raise SettingsError(f"{key} must not be empty.")


def _get_optional_str(values: Mapping[str, str], key: str) -> str:
    return values.get(key, "").strip()


def _get_positive_int(values: Mapping[str, str], key: str, default: int) -> int:
    raw_value = values.get(key, "").strip()
    if not raw_value:
        return default
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise SettingsError(f"{key} must be an integer: {raw_value}") from exc
    if value < 1:
        raise SettingsError(f"{key} must be a positive integer: {value}")
    return value


def _get_log_level(values: Mapping[str, str]) -> str:
    level = _get_required_str(values, "LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    if level not in _LOG_LEVELS:
        raise SettingsError(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}: {level}")
    return level


def load_settings(
    *,
    env: Mapping[str, str] | None = None,
    dotenv_path: str | Path = ".env",
) -> AppSettings:
    """Load settings from .env and environment variables.

    Priority: OS environment > .env > default.
    """

    env_values = dict(env) if env is not None else dict(os.environ)
    dotenv_values = _read_dotenv(Path(dotenv_path))
    merged: dict[str, str] = {**dotenv_values, **env_values}

    return AppSettings(
        app_env=_get_required_str(merged, "APP_ENV", "development"),
        firestore_project_id=_get_optional_str(merged, "FIRESTORE_PROJECT_ID"),
        firestore_database=_get_required_str(merged, "FIRESTORE_DATABASE", DEFAULT_FIRESTORE_DATABASE),
        storage_bucket=_get_optional_str(merged, "STORAGE_BUCKET"),
        signed_url_ttl_minutes=_get_positive_int(merged, "SIGNED_URL_TTL_MINUTES", DEFAULT_SIGNED_URL_TTL_MINUTES),
        http_base_url=_get_optional_str(merged, "HTTP_BASE_URL"),
        http_timeout_seconds=_get_positive_int(merged, "HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS),
        log_level=_get_log_level(merged),
    )
