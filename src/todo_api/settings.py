from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

_BACKENDS = {"memory", "sqlite"}


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite' for todos
    - SQLITE_DB_PATH: path to the todo sqlite db file. Default './data/todos.db'
    - ACTIVITY_LOG_BACKEND: 'memory' (default) or 'sqlite' for the activity log
    - ACTIVITY_LOG_DB_PATH: path to the activity log db file. Default './data/activity_logs.db'
    - ACTIVITY_LOG_STRICT: 'true' (default) fails the request when the log write fails;
      'false' records a warning and lets the mutation succeed
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: DEBUG, INFO (default), WARNING, ERROR
    - LOG_FORMAT: 'console' (default) or 'json'
    - HOST: bind address for the uvicorn launcher. Default '127.0.0.1'
    - PORT: listen port for the uvicorn launcher. Default 8000
    """

    persistence_backend: str = "memory"
    sqlite_db_path: str = "./data/todos.db"
    activity_log_backend: str = "memory"
    activity_log_db_path: str = "./data/activity_logs.db"
    activity_log_strict: bool = True
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    log_format: str = "console"
    host: str = "127.0.0.1"
    port: int = 8000


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_backend(value: str) -> str:
    backend = value.strip().lower()
    # Fallback to memory if unsupported
    return backend if backend in _BACKENDS else "memory"


def _parse_port(value: str, default: int = 8000) -> int:
    try:
        port = int(value.strip())
    except ValueError:
        return default
    return port if 0 < port < 65536 else default

def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    log_format = _get_env("LOG_FORMAT", "console").strip().lower()
    if log_format not in {"console", "json"}:
        log_format = "console"

    return Settings(
        persistence_backend=_parse_backend(_get_env("PERSISTENCE_BACKEND", "memory")),
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/todos.db").strip(),
        activity_log_backend=_parse_backend(_get_env("ACTIVITY_LOG_BACKEND", "memory")),
        activity_log_db_path=_get_env("ACTIVITY_LOG_DB_PATH", "./data/activity_logs.db").strip(),
        activity_log_strict=_parse_bool(_get_env("ACTIVITY_LOG_STRICT", "true"), True),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        log_format=log_format,
        host=_get_env("HOST", "127.0.0.1").strip(),
        port=_parse_port(_get_env("PORT", "8000")),
    )
