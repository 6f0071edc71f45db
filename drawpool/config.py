from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

STORE_BACKENDS = ("sql", "file")


@dataclass(frozen=True)
class FlaskSettings:
    secret_key: str = "drawpool-dev-secret"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass(frozen=True)
class PoolSettings:
    min_number: int = 1
    max_number: int = 50
    claim_timeout_seconds: float = 5.0


@dataclass(frozen=True)
class StoreSettings:
    backend: str = "sql"
    database_url: str = "sqlite:///drawpool.db"
    state_file: str = "data/lottery_data.json"


@dataclass(frozen=True)
class NotifierSettings:
    queue_size: int = 64
    keepalive_seconds: float = 15.0


@dataclass(frozen=True)
class AppSettings:
    flask: FlaskSettings = field(default_factory=FlaskSettings)
    pool: PoolSettings = field(default_factory=PoolSettings)
    store: StoreSettings = field(default_factory=StoreSettings)
    notifier: NotifierSettings = field(default_factory=NotifierSettings)
    admin_api_key: Optional[str] = None


def _bool_from_env(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    return int(value)


def _float_from_env(value: Optional[str], default: float) -> float:
    if value is None or value == "":
        return default
    return float(value)


def validate_settings(settings: AppSettings) -> AppSettings:
    pool = settings.pool
    if pool.min_number < 1:
        raise RuntimeError(f"POOL_MIN must be a positive integer, got {pool.min_number}")
    if pool.max_number < pool.min_number:
        raise RuntimeError(
            f"POOL_MAX ({pool.max_number}) must not be lower than POOL_MIN ({pool.min_number})"
        )
    if pool.claim_timeout_seconds < 0 and pool.claim_timeout_seconds != -1:
        raise RuntimeError(
            f"CLAIM_TIMEOUT_SECONDS must be zero or positive, or -1 to wait forever; got {pool.claim_timeout_seconds:g}"
        )
    if settings.store.backend not in STORE_BACKENDS:
        raise RuntimeError(
            f"Unknown STATE_BACKEND {settings.store.backend!r}; expected one of {STORE_BACKENDS}"
        )
    if settings.notifier.queue_size < 1:
        raise RuntimeError("NOTIFIER_QUEUE_SIZE must be at least 1")
    return settings


def load_from_environment() -> AppSettings:
    flask_settings = FlaskSettings(
        secret_key=os.getenv("FLASK_SECRET_KEY", "drawpool-dev-secret"),
        debug=_bool_from_env(os.getenv("FLASK_DEBUG"), False),
        host=os.getenv("HTTP_HOST", "0.0.0.0"),
        port=_int_from_env(os.getenv("HTTP_PORT"), 3000),
    )

    pool_settings = PoolSettings(
        min_number=_int_from_env(os.getenv("POOL_MIN"), 1),
        max_number=_int_from_env(os.getenv("POOL_MAX"), 50),
        claim_timeout_seconds=_float_from_env(os.getenv("CLAIM_TIMEOUT_SECONDS"), 5.0),
    )

    store_settings = StoreSettings(
        backend=os.getenv("STATE_BACKEND", "sql").strip().lower(),
        database_url=os.getenv("DATABASE_URL", "sqlite:///drawpool.db"),
        state_file=os.getenv("STATE_FILE", "data/lottery_data.json"),
    )

    notifier_settings = NotifierSettings(
        queue_size=_int_from_env(os.getenv("NOTIFIER_QUEUE_SIZE"), 64),
        keepalive_seconds=_float_from_env(os.getenv("EVENTS_KEEPALIVE_SECONDS"), 15.0),
    )

    return validate_settings(
        AppSettings(
            flask=flask_settings,
            pool=pool_settings,
            store=store_settings,
            notifier=notifier_settings,
            admin_api_key=os.getenv("ADMIN_API_KEY") or None,
        )
    )


@lru_cache(maxsize=1)
def load_settings(dotenv_path: Optional[str] = None) -> AppSettings:
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        load_dotenv()
    return load_from_environment()
