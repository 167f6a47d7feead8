"""Settings for the ingestion service: YAML defaults plus environment overrides."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml

from ingestor.core.errors import ConfigurationError

DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parent.parent / "config" / "settings.yaml"


class Config:
    _config = None

    @classmethod
    def load(cls, path=DEFAULT_SETTINGS_PATH):
        if cls._config is None:
            with open(path, "r", encoding="utf-8") as f:
                cls._config = yaml.safe_load(f) or {}
        return cls._config

    @classmethod
    def get(cls, *keys, default=None):
        cfg = cls.load()
        for key in keys:
            if not isinstance(cfg, dict):
                return default
            cfg = cfg.get(key)
        return cfg if cfg is not None else default

    @classmethod
    def reset(cls) -> None:
        cls._config = None


def _env(name: str, default: Any = None) -> Any:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _env_bool(name: str, default: bool) -> bool:
    value = _env(name)
    if value is None:
        return default
    return value.lower() not in {"false", "0", "no", "off"}


class IngestSettings:
    """Container for runtime-tunable ingestion settings."""

    def __init__(self) -> None:
        self.source_name: str = Config.get("source", "name", default="morningstar")
        self.api_url: str = _env("MORNINGSTAR_API_URL", Config.get("source", "api_url", default="")) or ""
        self.api_key: str = _env("MORNINGSTAR_API_KEY", "") or ""
        self.health_url: str = _env("MORNINGSTAR_HEALTH_URL", Config.get("source", "health_url", default="")) or ""
        self.timeout_seconds: float = float(
            _env("SOURCE_TIMEOUT_SECONDS", Config.get("source", "timeout_seconds", default=30))
        )
        self.health_timeout_seconds: float = float(Config.get("source", "health_timeout_seconds", default=5))
        self.max_attempts: int = max(int(_env("SOURCE_MAX_ATTEMPTS", Config.get("source", "max_attempts", default=3))), 1)
        self.retry_base_delay: float = max(
            float(_env("SOURCE_RETRY_BASE_DELAY", Config.get("source", "retry_base_delay", default=1.0))), 0.0
        )

        self.mongo_uri: Optional[str] = _env("MONGODB_URI") or _env("MONGO_URI") or _env("MONGODB_URL")
        self.mongo_db_name: str = _env("MONGODB_DB_NAME", Config.get("mongodb", "database", default="mutual_funds"))
        self.masters_collection: str = Config.get("mongodb", "masters_collection", default="mfSchemeTrackRecord")
        self.snapshots_collection: str = Config.get("mongodb", "snapshots_collection", default="mfSchemeDataMonthwise")
        self.server_selection_timeout_ms: int = int(
            Config.get("mongodb", "server_selection_timeout_ms", default=5000)
        )
        self.max_pool_size: int = int(Config.get("mongodb", "max_pool_size", default=10))

        self.failure_rate_alert: float = float(Config.get("ingestion", "failure_rate_alert", default=0.1))
        self.report_error_limit: int = int(Config.get("ingestion", "report_error_limit", default=10))

        self.cron_enabled: bool = _env_bool("CRON_ENABLED", bool(Config.get("scheduler", "enabled", default=True)))
        self.cron_schedule: str = _env("CRON_SCHEDULE", Config.get("scheduler", "schedule", default="0 2 1 * *"))
        self.cron_timezone: str = _env("CRON_TIMEZONE", Config.get("scheduler", "timezone", default="Asia/Kolkata"))
        self.misfire_grace_time: int = int(Config.get("scheduler", "misfire_grace_time", default=3600))

        self.log_level: str = _env("LOG_LEVEL", Config.get("logging", "level", default="INFO"))

    @property
    def source_configured(self) -> bool:
        return bool(self.api_url and self.api_key)

    def require_source(self) -> None:
        if not self.api_url:
            raise ConfigurationError("Source API URL is not configured", key="MORNINGSTAR_API_URL", section="source")
        if not self.api_key:
            raise ConfigurationError("Source API key is not configured", key="MORNINGSTAR_API_KEY", section="source")

    def require_mongo_uri(self) -> str:
        if not self.mongo_uri:
            raise ConfigurationError(
                "MongoDB connection string is required (MONGODB_URI, MONGO_URI or MONGODB_URL)",
                key="MONGODB_URI",
                section="mongodb",
            )
        return self.mongo_uri


@lru_cache(maxsize=1)
def get_settings() -> IngestSettings:
    """Return cached ingestion settings instance."""

    return IngestSettings()


__all__ = ["Config", "IngestSettings", "get_settings"]
