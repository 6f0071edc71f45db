from __future__ import annotations

import asyncio
import logging
import random
from collections import Counter
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Sequence

from .config import BotSettings
from .types import ClaimReply, DrawAttempt, VerificationReport


class DrawPoolClientProtocol(Protocol):
    async def get_used_numbers(self) -> List[int]:
        ...

    async def get_draw_records(self) -> Mapping[str, Any]:
        ...

    async def claim_number(
        self, number: int, topic_id: Optional[int] = None, user_name: Optional[str] = None
    ) -> ClaimReply:
        ...

    async def reset(self) -> bool:
        ...


def pick_candidate(used: Iterable[int], pool_min: int, pool_max: int) -> Optional[int]:
    """Return the lowest free number in the pool, mimicking the browser client."""
    taken = set(used)
    for number in range(pool_min, pool_max + 1):
        if number not in taken:
            return number
    return None


def verify(
    attempts: Sequence[DrawAttempt],
    server_numbers: Sequence[int],
    records: Optional[Mapping[str, Any]] = None,
) -> VerificationReport:
    granted = [attempt.number for attempt in attempts if attempt.success and attempt.number is not None]
    counts = Counter(granted)
    duplicates = {number: count for number, count in counts.items() if count > 1}
    on_server = set(server_numbers)
    missing = sorted(number for number in counts if number not in on_server)
    unassigned = _unassigned_users(attempts, records) if records is not None else []
    return VerificationReport(
        attempts=list(attempts),
        server_numbers=list(server_numbers),
        duplicates=duplicates,
        missing_on_server=missing,
        unassigned=unassigned,
    )


def _unassigned_users(attempts: Sequence[DrawAttempt], records: Mapping[str, Any]) -> List[str]:
    """Users who won a number in a topic but are not recorded with it there."""
    drawers = records.get("topicDrawers") or {}
    numbers = records.get("topicNumbers") or {}
    unassigned = []
    for attempt in attempts:
        if not attempt.success or attempt.topic_id is None:
            continue
        topic = str(attempt.topic_id)
        recorded = (numbers.get(topic) or {}).get(attempt.user_name)
        if attempt.user_name not in (drawers.get(topic) or []) or recorded != attempt.number:
            unassigned.append(attempt.user_name)
    return sorted(unassigned)


class ClaimSimulator:
    def __init__(
        self,
        settings: BotSettings,
        client: DrawPoolClientProtocol,
        logger: Optional[logging.Logger] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._settings = settings
        self._client = client
        self._logger = logger or logging.getLogger("drawbot")
        self._rng = rng or random.Random()

    async def run(self) -> VerificationReport:
        """Race every simulated user for the first free number and verify the outcome."""
        await self._prepare()
        tasks = [self._staggered(index, self._simulate_user(index)) for index in range(self._settings.users)]
        attempts = await asyncio.gather(*tasks)
        return await self._verify(attempts)

    async def contend(self, number: int) -> VerificationReport:
        """Have every simulated user claim ``number`` at once."""
        await self._prepare()
        tasks = [self._claim(index, number) for index in range(self._settings.users)]
        attempts = await asyncio.gather(*tasks)
        return await self._verify(attempts)

    async def _prepare(self) -> None:
        if not self._settings.reset_first:
            return
        try:
            await self._client.reset()
            self._logger.info("Draw state reset before run.")
        except Exception as exc:
            # A failed reset should not stop the run; verification still applies.
            self._logger.warning("Reset failed, continuing: %s", exc)

    async def _staggered(self, index: int, coroutine):
        delay = index * self._settings.delay_ms / 1000.0
        if delay:
            await asyncio.sleep(delay)
        return await coroutine

    def _user_name(self, index: int) -> str:
        return f"user_{index}"

    def _topic_id(self) -> int:
        return self._rng.randint(1, max(self._settings.topics, 1))

    async def _simulate_user(self, index: int) -> DrawAttempt:
        user_name = self._user_name(index)
        try:
            used = await self._client.get_used_numbers()
        except Exception as exc:
            self._logger.error("%s could not read used numbers: %s", user_name, exc)
            return DrawAttempt(user_name, None, None, False, reason=str(exc))

        candidate = pick_candidate(used, self._settings.pool_min, self._settings.pool_max)
        if candidate is None:
            self._logger.info("%s: no free number left", user_name)
            return DrawAttempt(user_name, None, None, False, reason="pool exhausted")
        return await self._claim(index, candidate)

    async def _claim(self, index: int, number: int) -> DrawAttempt:
        user_name = self._user_name(index)
        topic_id = self._topic_id()
        try:
            reply = await self._client.claim_number(number, topic_id=topic_id, user_name=user_name)
        except Exception as exc:
            self._logger.error("%s failed to claim %s: %s", user_name, number, exc)
            return DrawAttempt(user_name, topic_id, number, False, reason=str(exc))

        if reply.success:
            self._logger.info("%s claimed number %s", user_name, number)
            return DrawAttempt(user_name, topic_id, number, True)
        self._logger.info("%s lost number %s: %s", user_name, number, reply.message)
        return DrawAttempt(user_name, topic_id, number, False, reason=reply.message)

    async def _verify(self, attempts: Sequence[DrawAttempt]) -> VerificationReport:
        server_numbers = await self._client.get_used_numbers()
        records = await self._client.get_draw_records()
        report = verify(attempts, server_numbers, records)
        self._logger.info(
            "Attempts=%s successes=%s failures=%s unique=%s",
            len(report.attempts),
            len(report.successes),
            len(report.failures),
            len({a.number for a in report.successes}),
        )
        if report.duplicates:
            for number, count in sorted(report.duplicates.items()):
                self._logger.error("Number %s was granted %s times", number, count)
        if report.missing_on_server:
            self._logger.error("Granted numbers missing on server: %s", report.missing_on_server)
        if report.unassigned:
            self._logger.error("Winners missing from draw records: %s", report.unassigned)
        return report
