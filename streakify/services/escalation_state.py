from dataclasses import dataclass
from datetime import date
from enum import StrEnum
from threading import RLock
from typing import Protocol


class EscalationStage(StrEnum):
    IDLE = "idle"
    FRIENDLY_REMINDER_SENT = "friendly_reminder_sent"
    URGENT_REMINDER_SENT = "urgent_reminder_sent"


@dataclass(frozen=True)
class EscalationEntry:
    """Stage reached by a user and the local date it was reached on."""

    stage: EscalationStage
    day: date | None = None


IDLE_ENTRY = EscalationEntry(EscalationStage.IDLE)


class EscalationStateStore(Protocol):
    """Per-user reminder progress for the current day."""

    def get(self, user_id: str) -> EscalationEntry: ...

    def set(self, user_id: str, stage: EscalationStage, day: date) -> None: ...

    def was_emailed(self, user_id: str, day: date) -> bool: ...

    def mark_emailed(self, user_id: str, day: date) -> None: ...

    def reset_day(self) -> None: ...


class InMemoryEscalationStateStore:
    """Process-local escalation state; lost on restart."""

    def __init__(self) -> None:
        self._entries: dict[str, EscalationEntry] = {}
        self._emailed: dict[str, date] = {}
        # Scheduler jobs run on worker threads.
        self._lock = RLock()

    def get(self, user_id: str) -> EscalationEntry:
        with self._lock:
            return self._entries.get(user_id, IDLE_ENTRY)

    def set(self, user_id: str, stage: EscalationStage, day: date) -> None:
        with self._lock:
            if stage is EscalationStage.IDLE:
                self._entries.pop(user_id, None)
            else:
                self._entries[user_id] = EscalationEntry(stage, day)

    def was_emailed(self, user_id: str, day: date) -> bool:
        with self._lock:
            return self._emailed.get(user_id) == day

    def mark_emailed(self, user_id: str, day: date) -> None:
        with self._lock:
            self._emailed[user_id] = day

    def reset_day(self) -> None:
        with self._lock:
            self._entries.clear()
            self._emailed.clear()

    def snapshot(self) -> dict[str, EscalationEntry]:
        with self._lock:
            return dict(self._entries)

    def emailed_users(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._emailed)
