from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence


@dataclass(frozen=True)
class ClaimReply:
    success: bool
    message: str = ""
    number: Optional[int] = None


@dataclass(frozen=True)
class DrawAttempt:
    user_name: str
    topic_id: Optional[int]
    number: Optional[int]
    success: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class VerificationReport:
    attempts: Sequence[DrawAttempt]
    server_numbers: Sequence[int]
    duplicates: Dict[int, int] = field(default_factory=dict)
    missing_on_server: List[int] = field(default_factory=list)
    unassigned: List[str] = field(default_factory=list)

    @property
    def successes(self) -> List[DrawAttempt]:
        return [attempt for attempt in self.attempts if attempt.success]

    @property
    def failures(self) -> List[DrawAttempt]:
        return [attempt for attempt in self.attempts if not attempt.success]

    @property
    def passed(self) -> bool:
        return not self.duplicates and not self.missing_on_server and not self.unassigned
