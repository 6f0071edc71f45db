from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from .config import AppSettings
from .db import make_engine
from .services.coordinator import ClaimCoordinator
from .services.notifier import ChangeNotifier
from .services.queries import DrawQueries
from .services.state_store import JsonFileStateStore, SqlStateStore, StateStore

EXTENSION_KEY = "drawpool"


@dataclass
class DrawPoolServices:
    settings: AppSettings
    store: StateStore
    notifier: ChangeNotifier
    coordinator: ClaimCoordinator
    queries: DrawQueries


def build_store(settings: AppSettings, notifier: ChangeNotifier) -> StateStore:
    if settings.store.backend == "file":
        return JsonFileStateStore(settings.store.state_file, notifier=notifier)
    return SqlStateStore(make_engine(settings.store.database_url), notifier=notifier)


def build_services(settings: AppSettings) -> DrawPoolServices:
    notifier = ChangeNotifier(queue_size=settings.notifier.queue_size)
    store = build_store(settings, notifier)
    store.load()
    coordinator = ClaimCoordinator(
        store,
        min_number=settings.pool.min_number,
        max_number=settings.pool.max_number,
        timeout_seconds=settings.pool.claim_timeout_seconds,
    )
    return DrawPoolServices(
        settings=settings,
        store=store,
        notifier=notifier,
        coordinator=coordinator,
        queries=DrawQueries(store),
    )


def get_services() -> DrawPoolServices:
    return current_app.extensions[EXTENSION_KEY]
