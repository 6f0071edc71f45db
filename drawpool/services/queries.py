from __future__ import annotations

from typing import FrozenSet, List

from ..state import DrawRecords, DrawState
from .state_store import StateStore


class DrawQueries:
    """Read-only view over the latest committed snapshot."""

    def __init__(self, store: StateStore) -> None:
        self._store = store

    def snapshot(self) -> DrawState:
        return self._store.snapshot()

    def get_claimed_numbers(self) -> FrozenSet[int]:
        return self._store.snapshot().claimed_numbers

    def get_used_numbers(self) -> List[int]:
        return list(self._store.snapshot().used_numbers)

    def get_draw_records(self) -> DrawRecords:
        return self._store.snapshot().records()
