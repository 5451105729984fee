from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    api_base_url: str
    api_username: str
    api_token: str | None = None
    request_timeout_seconds: int = 20
    automation_timeout_seconds: int = 30
    automation_cache_ttl_seconds: int = 300
    automation_logs_limit: int = 50
    state_db_path: str = "data/automation_state.db"
    log_level: str = "INFO"


def _read_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name}: expected an integer, got {raw!r}.") from exc
    if value < minimum:
        raise ValueError(f"Invalid {name}: must be >= {minimum}.")
    return value


def _read_optional_str(name: str) -> str | None:
    raw = os.getenv(name, "").strip()
    return raw or None


def _read_required_str(name: str) -> str:
    value = _read_optional_str(name)
    if value is None:
        raise ValueError(f"Missing {name} in environment.")
    return value


def _read_base_url(name: str) -> str:
    value = _read_required_str(name)
    if not value.startswith(("http://", "https://")):
        raise ValueError(f"Invalid {name}: expected an http(s) URL.")
    return value.rstrip("/")


def load_settings() -> Settings:
    # Ensure local .env values win over stale shell/system environment values.
    load_dotenv(override=True)

    return Settings(
        api_base_url=_read_base_url("SUNDAY_API_BASE_URL"),
        api_username=_read_required_str("SUNDAY_API_USERNAME"),
        api_token=_read_optional_str("SUNDAY_API_TOKEN"),
        request_timeout_seconds=_read_int("REQUEST_TIMEOUT_SECONDS", 20, minimum=1),
        automation_timeout_seconds=_read_int("AUTOMATION_TIMEOUT_SECONDS", 30, minimum=1),
        automation_cache_ttl_seconds=_read_int("AUTOMATION_CACHE_TTL_SECONDS", 300),
        automation_logs_limit=_read_int("AUTOMATION_LOGS_LIMIT", 50, minimum=1),
        state_db_path=os.getenv("STATE_DB_PATH", "data/automation_state.db").strip()
        or "data/automation_state.db",
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )
