"""Shared ledger data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable


@dataclass(frozen=True)
class LedgerEntry:
    """One step record from a run's ledger, positioned by its cursor."""

    cursor: int
    record: object

    def to_dict(self) -> dict[str, object]:
        return {"cursor": self.cursor, "record": self.record}


@dataclass(frozen=True)
class LedgerCursor:
    """Caller-owned resume position for one run's ledger.

    `after` is an exclusive lower bound: the next request returns entries
    positioned after it.
    """

    run_id: str
    after: int = 0

    def advance(self, entry: LedgerEntry) -> LedgerCursor:
        if entry.cursor <= self.after:
            return self
        return LedgerCursor(run_id=self.run_id, after=entry.cursor)

    def to_payload(self) -> dict[str, object]:
        return {"run_id": self.run_id, "after": self.after}


@dataclass(frozen=True)
class LedgerPage:
    """Result of one bounded ledger poll."""

    items: list[LedgerEntry]
    next_after: int

    @property
    def empty(self) -> bool:
        return not self.items


@dataclass
class StreamStats:
    """Counters for one streaming connection."""

    frames: int = 0
    delivered: int = 0
    dropped: int = 0
    last_cursor: int | None = None
    cancelled: bool = False
    dropped_reasons: dict[str, int] = field(default_factory=dict)

    def record_drop(self, reason: str) -> None:
        self.dropped += 1
        self.dropped_reasons[reason] = self.dropped_reasons.get(reason, 0) + 1


# Delivery callback: may be a plain function or a coroutine function.
StepCallback = Callable[[LedgerEntry], Awaitable[None] | None]
