"""
Hospital Wait Board — Waiting-List Counter

Every hospital has exactly one waiting-list entry.  Its count moves by
signed deltas (+1 per self-check-in, ±1 per staff adjustment) and never
drops below zero; an over-decrement is absorbed by the floor, so a -1
followed by a +1 starting from zero ends at one, not zero.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone

from .rules import BoardRules, get_rules

CHECKIN_DELTA = 1
STAFF_DELTAS = (-1, 1)


@dataclass(frozen=True)
class WaitingListEntry:
    hospital_id: str
    count: int = 0
    last_updated: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "hospital_id": self.hospital_id,
            "waiting_count": self.count,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_entry(hospital_id: str, now: datetime | None = None) -> WaitingListEntry:
    """The zero-count entry created together with a hospital."""
    return WaitingListEntry(hospital_id=hospital_id, count=0, last_updated=now or utcnow())


def apply_delta(
    current: WaitingListEntry,
    delta: int,
    now: datetime | None = None,
) -> WaitingListEntry:
    """Return a new entry with ``max(0, count + delta)`` and a fresh timestamp."""
    return replace(
        current,
        count=max(0, current.count + int(delta)),
        last_updated=now or utcnow(),
    )


def wait_level(count: int, rules: BoardRules | None = None) -> str:
    """
    Badge level for a waiting count.

        0                 → none
        1 .. short        → short
        short .. moderate → moderate
        above moderate    → long
    """
    rules = rules or get_rules()
    if count <= 0:
        return "none"
    if count <= rules.wait_thresholds["short"]:
        return "short"
    if count <= rules.wait_thresholds["moderate"]:
        return "moderate"
    return "long"
