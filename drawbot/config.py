from __future__ import annotations

import os
import pathlib
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


def _bool_from_env(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    return int(value)


@dataclass(frozen=True)
class BotSettings:
    base_url: str = "http://localhost:3000"
    users: int = 10
    delay_ms: int = 10
    topics: int = 5
    pool_min: int = 1
    pool_max: int = 50
    timeout_seconds: int = 10
    reset_first: bool = True
    admin_token: Optional[str] = None

    def copy(self, **updates) -> "BotSettings":
        return replace(self, **updates)


def load_from_environment() -> BotSettings:
    return BotSettings(
        base_url=os.getenv("DRAWPOOL_URL", "http://localhost:3000").rstrip("/"),
        users=_int_from_env(os.getenv("BOT_USERS"), 10),
        delay_ms=_int_from_env(os.getenv("BOT_DELAY_MS"), 10),
        topics=_int_from_env(os.getenv("BOT_TOPICS"), 5),
        pool_min=_int_from_env(os.getenv("POOL_MIN"), 1),
        pool_max=_int_from_env(os.getenv("POOL_MAX"), 50),
        timeout_seconds=_int_from_env(os.getenv("BOT_TIMEOUT_SECONDS"), 10),
        reset_first=_bool_from_env(os.getenv("BOT_RESET_FIRST"), True),
        admin_token=os.getenv("ADMIN_API_KEY") or None,
    )


@lru_cache(maxsize=1)
def load_config(dotenv_path: Optional[str] = None) -> BotSettings:
    if dotenv_path:
        load_dotenv(dotenv_path)
    else:
        default_path = pathlib.Path(".env")
        if default_path.exists():
            load_dotenv(default_path)
    return load_from_environment()
