"""Centralised configuration loader for the sync service."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field


class MongoSettings(BaseModel):
    uri: str = Field(
        default_factory=lambda: os.getenv("MONGODB_URI", "mongodb://localhost:27017")
    )
    database: str = Field(
        default_factory=lambda: os.getenv("MONGODB_DB_NAME", "appsync")
    )
    options: Dict[str, Any] = Field(default_factory=dict)


class BrokerSettings(BaseModel):
    url: str = Field(
        default_factory=lambda: os.getenv(
            "CELERY_BROKER_URL", "redis://localhost:6379/1"
        )
    )
    result_backend: Optional[str] = Field(default=None)
    default_queue: str = Field(default="appsync.default")
    health_queue: str = Field(default="appsync.health")


class RedisSettings(BaseModel):
    url: str = Field(
        default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379/0")
    )


class GitHubSettings(BaseModel):
    api_url: str = Field(default="https://api.github.com")
    timeout: float = Field(default=30.0)


class SyncSettings(BaseModel):
    per_page: int = Field(default=100)
    # Upper bound on pages followed per listing; beyond it the sync for that
    # connection fails.
    max_pages: int = Field(default=50)


class ScheduleSettings(BaseModel):
    sync_period_seconds: int = Field(default=3600)
    sync_initial_delay_seconds: int = Field(default=0)
    health_period_seconds: int = Field(default=86400)
    health_initial_delay_seconds: int = Field(default=300)
    repository_health_period_seconds: Optional[int] = Field(default=None)


class HealthSettings(BaseModel):
    # e.g. {"contents": "read", "metadata": "read"}
    required_permissions: Dict[str, str] = Field(default_factory=dict)


class CacheSettings(BaseModel):
    update_keys: List[str] = Field(
        default_factory=lambda: [
            "appsync:update_plugins",
            "appsync:update_themes",
            "appsync:merged_packages_data",
        ]
    )
    events_channel: str = Field(default="events")


class LoggingSettings(BaseModel):
    """Logging configuration loaded from appsync.yml."""

    level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


class Settings(BaseModel):
    environment: str = Field(default="local")
    mongo: MongoSettings = Field(default_factory=MongoSettings)
    broker: BrokerSettings = Field(default_factory=BrokerSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    schedule: ScheduleSettings = Field(default_factory=ScheduleSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config at {path} must be a mapping")
        return data


def _config_path() -> Path:
    env_path = os.getenv("APPSYNC_CONFIG")
    if env_path:
        return Path(env_path).expanduser().resolve()
    current = Path(__file__).resolve()
    for parent in current.parents:
        candidate = parent / "config" / "appsync.yml"
        if candidate.exists():
            return candidate
    return current.parents[2] / "config" / "appsync.yml"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(**_load_yaml(_config_path()))


settings = get_settings()
