"""Shift ledger access.

The optimizer keeps two maps of the same shape:
  shifts[date][member_id] -> shift type   (mutable assignments)
  locks[date][member_id]  -> shift type   (pinned cells)

A lock always wins on read, and writes through the optimizer never touch a
locked cell. This module is the only place that knows about that layering so
the builders, objectives and validator can just ask for "the shift".
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Optional

from constants import SHIFT_TYPES, SHIFT_VALUES
from logger import get_logger

logger = get_logger('shift_ledger')

Grid = Dict[date, Dict[str, str]]


def shift_value(shift: Optional[str]) -> float:
    """Work contribution of a shift type (unassigned counts as off)."""
    if shift is None:
        return 0.0
    return SHIFT_VALUES.get(shift, 0.0)


def is_working(shift: Optional[str]) -> bool:
    return shift_value(shift) > 0


@dataclass
class ShiftLedger:
    shifts: Grid = field(default_factory=dict)
    locks: Grid = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, day: date, member_id: str) -> Optional[str]:
        locked = self.locks.get(day, {}).get(member_id)
        if locked:
            return locked
        return self.shifts.get(day, {}).get(member_id)

    def value(self, day: date, member_id: str) -> float:
        return shift_value(self.get(day, member_id))

    def is_locked(self, day: date, member_id: str) -> bool:
        return bool(self.locks.get(day, {}).get(member_id))

    def locked_shift(self, day: date, member_id: str) -> Optional[str]:
        return self.locks.get(day, {}).get(member_id)

    def headcount(self, day: date, member_ids: Iterable[str]) -> float:
        return sum(self.value(day, m) for m in member_ids)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set(self, day: date, member_id: str, shift: str) -> None:
        """Write an assignment. Locked cells keep reading as their locked value."""
        if shift not in SHIFT_TYPES:
            raise ValueError(f"Unknown shift type '{shift}'")
        self.shifts.setdefault(day, {})[member_id] = shift

    def clear(self, day: date, member_id: str) -> None:
        cells = self.shifts.get(day)
        if cells is not None:
            cells.pop(member_id, None)

    def lock(self, day: date, member_id: str, shift: Optional[str] = None) -> str:
        """Pin a cell to `shift`, or to its current value (OFF when unassigned)."""
        value = shift or self.get(day, member_id) or 'OFF'
        if value not in SHIFT_TYPES:
            raise ValueError(f"Unknown shift type '{value}'")
        self.locks.setdefault(day, {})[member_id] = value
        self.set(day, member_id, value)
        return value

    def unlock(self, day: date, member_id: str) -> bool:
        cells = self.locks.get(day)
        if not cells or member_id not in cells:
            return False
        del cells[member_id]
        if not cells:
            del self.locks[day]
        return True

    def unlock_day(self, day: date) -> bool:
        return self.locks.pop(day, None) is not None

    def replay_locks(self, days: Iterable[date]) -> None:
        """Copy every locked cell of `days` into the assignments."""
        for day in days:
            for member_id, shift in self.locks.get(day, {}).items():
                self.shifts.setdefault(day, {})[member_id] = shift

    def clear_unlocked(self, days: Iterable[date], member_ids: Iterable[str]) -> None:
        member_ids = list(member_ids)
        for day in days:
            cells = self.shifts.get(day)
            if not cells:
                continue
            for member_id in member_ids:
                if not self.is_locked(day, member_id):
                    cells.pop(member_id, None)

    def reset(self) -> None:
        self.shifts.clear()
        self.locks.clear()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> Grid:
        return copy.deepcopy(self.shifts)

    def restore(self, snapshot: Grid) -> None:
        self.shifts = copy.deepcopy(snapshot)

    def to_dict(self) -> dict:
        """ISO-string keyed copy for YAML/JSON."""
        return {
            "shifts": {str(d): dict(cells) for d, cells in sorted(self.shifts.items()) if cells},
            "locks": {str(d): dict(cells) for d, cells in sorted(self.locks.items()) if cells},
        }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "ShiftLedger":
        """Rebuild a ledger from its saved form.

        Unreadable dates and unknown shift types are dropped one cell at a
        time with a warning.
        """
        data = data or {}
        ledger = cls()
        for key, grid in (("shifts", ledger.shifts), ("locks", ledger.locks)):
            for d_str, cells in (data.get(key) or {}).items():
                try:
                    day = d_str if isinstance(d_str, date) else date.fromisoformat(str(d_str))
                except ValueError:
                    logger.warning(f"Dropping {key} for invalid date {d_str!r}")
                    continue
                row = {}
                for member_id, shift in (cells or {}).items():
                    if shift in SHIFT_TYPES:
                        row[str(member_id)] = shift
                    else:
                        logger.warning(f"Dropping {key} cell {day} {member_id}: unknown shift type {shift!r}")
                grid[day] = row
        return ledger
