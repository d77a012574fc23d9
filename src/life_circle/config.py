from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

import dotenv

__all__ = ["DatabaseSettings", "AMapSettings", "Settings", "load_settings"]

_FALSEY = {"0", "false", "no", "off"}


def _env(key: str, default: str = "") -> str:
    value = os.getenv(key)
    return value if value else default


def _env_float(key: str, default: float) -> float:
    try:
        return float(_env(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(_env(key, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class DatabaseSettings:
    host: str = "localhost"
    port: str = "5432"
    user: str = "postgres"
    password: str = "postgres"
    name: str = "life_circle_15min"
    sslmode: str = "disable"
    url: Optional[str] = None

    @property
    def dsn(self) -> str:
        if self.url:
            return self.url
        return (
            f"postgresql+psycopg2://{self.user}:{self.password}@{self.host}:{self.port}/{self.name}"
            f"?sslmode={self.sslmode}"
        )


@dataclass(frozen=True)
class AMapSettings:
    key: str = ""
    flag: bool = True
    timeout: float = 10.0
    num_pages: int = 2

    @property
    def enabled(self) -> bool:
        return self.flag and bool(self.key)


@dataclass(frozen=True)
class Settings:
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"
    evaluation_timeout: float = 30.0
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    amap: AMapSettings = field(default_factory=AMapSettings)


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Build settings from the environment, after loading `.env` when present."""
    dotenv.load_dotenv(env_file)
    database = DatabaseSettings(
        host=_env("DB_HOST", "localhost"),
        port=_env("DB_PORT", "5432"),
        user=_env("DB_USER", "postgres"),
        password=_env("DB_PASSWORD", "postgres"),
        name=_env("DB_NAME", "life_circle_15min"),
        sslmode=_env("DB_SSLMODE", "disable"),
        url=os.getenv("DATABASE_URL") or None,
    )
    amap = AMapSettings(
        key=_env("AMAP_API_KEY") or _env("AMAP_KEY"),
        flag=_env("AMAP_ENABLED", "true").strip().lower() not in _FALSEY,
        timeout=_env_float("AMAP_TIMEOUT", 10.0),
        num_pages=_env_int("AMAP_NUM_PAGES", 2),
    )
    return Settings(
        host=_env("SERVER_HOST", "127.0.0.1"),
        port=_env_int("SERVER_PORT", 8080),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
        evaluation_timeout=_env_float("EVALUATION_TIMEOUT", 30.0),
        database=database,
        amap=amap,
    )
