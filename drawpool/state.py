from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class DrawRecords:
    topic_drawers: Dict[str, List[str]]
    topic_numbers: Dict[str, Dict[str, int]]

    def to_dict(self) -> dict:
        return {
            "topicDrawers": self.topic_drawers,
            "topicNumbers": self.topic_numbers,
        }


@dataclass(frozen=True)
class DrawState:
    """Immutable snapshot of the whole pool.

    Mutations return a new instance; the mappings held by an instance are
    never modified after construction.
    """

    used_numbers: Tuple[int, ...] = ()
    topic_drawers: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    topic_numbers: Mapping[str, Mapping[str, int]] = field(default_factory=dict)
    version: int = 0

    @property
    def claimed_numbers(self) -> FrozenSet[int]:
        return frozenset(self.used_numbers)

    def is_claimed(self, number: int) -> bool:
        return number in self.used_numbers

    def with_claim(
        self, number: int, topic_id: Optional[str] = None, user_name: Optional[str] = None
    ) -> "DrawState":
        if self.is_claimed(number):
            raise ValueError(f"number {number} is already claimed")

        drawers = dict(self.topic_drawers)
        numbers = {topic: dict(users) for topic, users in self.topic_numbers.items()}
        if topic_id and user_name:
            roster = drawers.get(topic_id, ())
            if user_name not in roster:
                drawers[topic_id] = roster + (user_name,)
            numbers.setdefault(topic_id, {})[user_name] = number

        return DrawState(
            used_numbers=self.used_numbers + (number,),
            topic_drawers=drawers,
            topic_numbers=numbers,
            version=self.version + 1,
        )

    def cleared(self) -> "DrawState":
        return DrawState(version=self.version + 1)

    def records(self) -> DrawRecords:
        return DrawRecords(
            topic_drawers={topic: list(users) for topic, users in self.topic_drawers.items()},
            topic_numbers={topic: dict(users) for topic, users in self.topic_numbers.items()},
        )

    def to_dict(self) -> dict:
        payload = {"usedNumbers": list(self.used_numbers)}
        payload.update(self.records().to_dict())
        return payload

    def to_record(self) -> dict:
        record = self.to_dict()
        record["version"] = self.version
        return record

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "DrawState":
        if not isinstance(record, Mapping):
            raise ValueError("state record must be a JSON object")

        used: List[int] = []
        for value in record.get("usedNumbers") or []:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"usedNumbers entries must be integers, got {value!r}")
            if value not in used:
                used.append(value)

        drawers: Dict[str, Tuple[str, ...]] = {}
        for topic, users in (record.get("topicDrawers") or {}).items():
            roster: List[str] = []
            for user in users:
                if user not in roster:
                    roster.append(str(user))
            drawers[str(topic)] = tuple(roster)

        numbers: Dict[str, Dict[str, int]] = {}
        for topic, assignments in (record.get("topicNumbers") or {}).items():
            topic_assignments: Dict[str, int] = {}
            for user, number in assignments.items():
                if isinstance(number, bool) or not isinstance(number, int):
                    raise ValueError(f"topicNumbers[{topic!r}][{user!r}] must be an integer, got {number!r}")
                if number not in used:
                    raise ValueError(f"topicNumbers[{topic!r}][{user!r}] = {number} is not a used number")
                topic_assignments[str(user)] = number
            numbers[str(topic)] = topic_assignments

        return cls(
            used_numbers=tuple(used),
            topic_drawers=drawers,
            topic_numbers=numbers,
            version=int(record.get("version", 0)),
        )
