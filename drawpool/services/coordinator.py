"""Claim arbitration.

All writes to the draw state go through `ClaimCoordinator`. Each claim or
reset reads the latest durable state, decides, and persists while holding
one lock, so two callers can never both see a number as free and both win it.
Across processes the store's version check rejects a stale write, and the
decision is retried against the newer state.
"""
from __future__ import annotations

import enum
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from ..errors import ConcurrentUpdate, CoordinatorBusy, Forbidden, InvalidRequest, PersistenceError
from ..state import DrawState
from .state_store import StateStore


class ClaimFailure(str, enum.Enum):
    ALREADY_CLAIMED = "already_claimed"
    PERSISTENCE_ERROR = "persistence_error"


@dataclass(frozen=True)
class ClaimResult:
    success: bool
    number: int
    reason: Optional[ClaimFailure] = None
    message: str = "claimed"

    @classmethod
    def granted(cls, number: int) -> "ClaimResult":
        return cls(success=True, number=number)

    @classmethod
    def rejected(cls, number: int, reason: ClaimFailure, message: str) -> "ClaimResult":
        return cls(success=False, number=number, reason=reason, message=message)


class ClaimCoordinator:
    def __init__(
        self,
        store: StateStore,
        min_number: int = 1,
        max_number: int = 50,
        timeout_seconds: float = 5.0,
        max_attempts: int = 5,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._min_number = min_number
        self._max_number = max_number
        self._timeout_seconds = timeout_seconds
        self._max_attempts = max(1, max_attempts)
        self._lock = threading.Lock()
        self._logger = logger or logging.getLogger("drawpool.coordinator")

    @property
    def pool_range(self) -> range:
        return range(self._min_number, self._max_number + 1)

    @contextmanager
    def _critical_section(self) -> Iterator[None]:
        # -1 waits forever, matching threading.Lock.acquire.
        if not self._lock.acquire(timeout=self._timeout_seconds):
            self._logger.warning("Critical section busy for %.3fs; rejecting request", self._timeout_seconds)
            raise CoordinatorBusy(self._timeout_seconds)
        try:
            yield
        finally:
            self._lock.release()

    def _validate_number(self, number: object) -> int:
        if isinstance(number, bool) or not isinstance(number, int):
            raise InvalidRequest(f"number must be an integer, got {number!r}")
        if not self._min_number <= number <= self._max_number:
            raise InvalidRequest(
                f"number must be between {self._min_number} and {self._max_number}, got {number}"
            )
        return number

    def _commit(self, decide: Callable[[DrawState], Optional[DrawState]]) -> Optional[DrawState]:
        """Persist ``decide(latest)``; ``None`` from ``decide`` means nothing to write.

        Callers hold the critical section. A `ConcurrentUpdate` from the store
        re-runs the decision on the newer state until attempts run out.
        """
        for attempt in range(1, self._max_attempts + 1):
            updated = decide(self._store.refresh())
            if updated is None:
                return None
            try:
                self._store.save(updated)
            except ConcurrentUpdate:
                if attempt == self._max_attempts:
                    raise
                self._logger.info("Draw state changed elsewhere (attempt %s); deciding again", attempt)
                continue
            return updated
        return None

    def claim_number(
        self,
        number: int,
        topic_id: Optional[str] = None,
        user_name: Optional[str] = None,
    ) -> ClaimResult:
        number = self._validate_number(number)

        def decide(current: DrawState) -> Optional[DrawState]:
            if current.is_claimed(number):
                return None
            return current.with_claim(number, topic_id=topic_id, user_name=user_name)

        with self._critical_section():
            try:
                updated = self._commit(decide)
            except PersistenceError as exc:
                # The store only swaps its snapshot after a successful write.
                self._logger.error("Claim of %s rolled back: %s", number, exc)
                return ClaimResult.rejected(number, ClaimFailure.PERSISTENCE_ERROR, "persistence failed")

        if updated is None:
            self._logger.debug("Number %s already claimed; rejecting %s", number, user_name)
            return ClaimResult.rejected(number, ClaimFailure.ALREADY_CLAIMED, "already claimed")

        self._logger.info(
            "Granted number %s (topic=%s, user=%s, version=%s)", number, topic_id, user_name, updated.version
        )
        return ClaimResult.granted(number)

    def reset_all(self, is_admin: bool) -> DrawState:
        if is_admin is not True:
            raise Forbidden("only administrators can reset the draw")

        with self._critical_section():
            cleared = self._commit(lambda current: current.cleared())

        self._logger.info("Draw state reset (version=%s)", cleared.version)
        return cleared
