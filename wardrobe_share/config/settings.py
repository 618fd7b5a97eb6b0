"""Service settings read from the environment, with an optional .env file."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


def _load_env_file(path: str = ".env") -> None:
    """Copy KEY=VALUE lines into os.environ without overriding variables already set."""

    env_path = Path(path)
    if not env_path.exists():
        return

    for line in env_path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime settings for the engine and its collaborators."""

    environment: str = "dev"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./data/wardrobe_share.db"
    redis_url: str = "redis://localhost:6379/0"

    cache_backend: str = "memory"
    cache_ttl_seconds: int = 300

    public_base_url: str = "http://localhost:5173"
    notification_webhook_url: str = ""
    notification_timeout_seconds: int = 5


def _build_settings() -> Settings:
    _load_env_file()

    return Settings(
        environment=os.getenv("ENVIRONMENT", "dev"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/wardrobe_share.db"),
        redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        cache_backend=os.getenv("CACHE_BACKEND", "memory").strip().lower(),
        cache_ttl_seconds=_int_env("CACHE_TTL_SECONDS", 300),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:5173").rstrip("/"),
        notification_webhook_url=os.getenv("NOTIFICATION_WEBHOOK_URL", ""),
        notification_timeout_seconds=_int_env("NOTIFICATION_TIMEOUT_SECONDS", 5),
    )


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process."""

    return _build_settings()
