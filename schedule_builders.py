"""Pure builder helpers for schedule generation.

This module holds the roster records, the per-run schedule context, and the
first phase of the pipeline: deciding which days are working days, how many
work-equivalent days each member owes, and a randomized quota-correct fill.

Nothing here scores or searches; see objectives.py, flattening.py and
local_search.py for that.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from constants import (
    CONDITION_TYPES,
    DEFAULT_BASE_OFF,
    DEFAULT_MAX_CONSECUTIVE,
    DEFAULT_WORK_DAYS,
)
from logger import get_logger
from shift_ledger import ShiftLedger, shift_value
from utils import weekday_key

logger = get_logger('schedule_builders')


@dataclass
class Member:
    """A person on the roster."""
    id: str
    name: str
    extra_off: int = 0
    team_id: Optional[str] = None

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name, "extra_off": self.extra_off}
        if self.team_id:
            data["team_id"] = self.team_id
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Member":
        return cls(
            id=str(data["id"]),
            name=data.get("name", str(data["id"])),
            extra_off=int(data.get("extra_off", 0) or 0),
            team_id=data.get("team_id"),
        )


@dataclass
class Team:
    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: dict) -> "Team":
        return cls(id=str(data["id"]), name=data.get("name", str(data["id"])))


@dataclass
class PairCondition:
    """TOGETHER: same working status every working day. SEPARATE: never both working."""
    member_a: str
    member_b: str
    mode: str = "TOGETHER"

    def __post_init__(self):
        if self.mode not in CONDITION_TYPES:
            raise ValueError(f"Unknown condition type '{self.mode}'")

    def to_dict(self) -> dict:
        return {"type": self.mode, "m1": self.member_a, "m2": self.member_b}

    @classmethod
    def from_dict(cls, data: dict) -> "PairCondition":
        return cls(
            member_a=str(data.get("m1") or ""),
            member_b=str(data.get("m2") or ""),
            mode=data.get("type", "TOGETHER"),
        )


@dataclass
class Quota:
    """Work-equivalent days a member owes this month."""
    target: float
    current: float
    available: list[date] = field(default_factory=list)

    @property
    def needed(self) -> float:
        return self.target - self.current


def work_type_for(day: date, work_days: dict[str, str]) -> str:
    """Shift type to assign when a member works `day` under the weekly pattern."""
    setting = work_days.get(weekday_key(day), 'WORK')
    if setting in ('HALF_AM', 'HALF_PM'):
        return setting
    return 'ON_SITE'


def is_work_day(
    day: date,
    work_days: dict[str, str],
    daily_targets: dict[date, int],
    ledger: ShiftLedger,
    member_ids: list[str],
) -> bool:
    """Whether `day` takes part in generation.

    Non-working when the weekday pattern is OFF, the daily target is explicitly
    0, or every known member is locked OFF. Half-day patterns are working days.
    """
    if work_days.get(weekday_key(day), 'WORK') == 'OFF':
        return False

    if day in daily_targets and daily_targets[day] == 0:
        return False

    if member_ids and all(ledger.locked_shift(day, m) == 'OFF' for m in member_ids):
        return False

    return True


@dataclass
class ScheduleContext:
    """Everything one optimization run reads, plus the ledger it mutates.

    `members` is the active roster being generated; `roster_ids` is every known
    member and only matters for the all-locked-OFF work-day rule.
    """
    dates: list[date]
    members: list[Member]
    ledger: ShiftLedger
    teams: list[Team] = field(default_factory=list)
    work_days: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_WORK_DAYS))
    base_off: int = DEFAULT_BASE_OFF
    max_consecutive: int = DEFAULT_MAX_CONSECUTIVE
    conditions: list[PairCondition] = field(default_factory=list)
    daily_targets: dict[date, int] = field(default_factory=dict)
    streak_seeds: dict[str, int] = field(default_factory=dict)
    roster_ids: Optional[list[str]] = None
    rng: random.Random = field(default_factory=random.Random)

    def __post_init__(self):
        if self.roster_ids is None:
            self.roster_ids = [m.id for m in self.members]
        self.member_ids = [m.id for m in self.members]
        self.work_dates = [
            d for d in self.dates
            if is_work_day(d, self.work_days, self.daily_targets, self.ledger, self.roster_ids)
        ]
        self._work_date_set = set(self.work_dates)
        self.valid_dates = [d for d in self.work_dates if self.is_valid_day(d)]
        self.team_members = self._group_team_members()

    def _group_team_members(self) -> dict[str, list[str]]:
        grouped: dict[str, list[str]] = {}
        for team in self.teams:
            ids = [m.id for m in self.members if m.team_id == team.id]
            if ids:
                grouped[team.id] = ids
        return grouped

    def is_work_day(self, day: date) -> bool:
        return day in self._work_date_set

    def has_target(self, day: date) -> bool:
        return day in self.daily_targets

    def is_valid_day(self, day: date) -> bool:
        """Working, full WORK pattern and no explicit target: the days variance is measured on."""
        return (
            self.is_work_day(day)
            and self.work_days.get(weekday_key(day), 'WORK') == 'WORK'
            and not self.has_target(day)
        )

    def work_type(self, day: date) -> str:
        return work_type_for(day, self.work_days)

    def work_value(self, day: date) -> float:
        return shift_value(self.work_type(day))


def compute_quota(ctx: ScheduleContext, member: Member) -> Quota:
    """Target, already-fixed and open days for one member.

    Locked or already assigned cells on working days count by day-value;
    on non-working days only full-day work counts.
    """
    target = max(0, len(ctx.dates) - ctx.base_off - (member.extra_off or 0))
    current = 0.0
    available: list[date] = []

    for day in ctx.dates:
        shift = ctx.ledger.get(day, member.id)
        if ctx.is_work_day(day):
            if shift is None:
                available.append(day)
            else:
                current += shift_value(shift)
        elif shift_value(shift) >= 1:
            current += shift_value(shift)

    return Quota(target=float(target), current=current, available=available)


def build_initial_assignment(ctx: ScheduleContext) -> dict[str, Quota]:
    """Randomized greedy fill that meets every member's quota.

    Per member: OFF on unlocked non-working days, then shuffle the open working
    days and give the weekday work type to each one that still fits under the
    quota, OFF to the rest. A half-day lock can leave a full-day pool half a
    day short; it is never filled past the quota. Returns the quota used per
    member.
    """
    quotas: dict[str, Quota] = {}
    ledger = ctx.ledger

    for member in ctx.members:
        for day in ctx.dates:
            if not ctx.is_work_day(day) and ledger.get(day, member.id) is None:
                ledger.set(day, member.id, 'OFF')

        quota = compute_quota(ctx, member)
        quotas[member.id] = quota

        pool = list(quota.available)
        ctx.rng.shuffle(pool)

        assigned = 0.0
        for day in pool:
            if assigned + ctx.work_value(day) <= quota.needed:
                ledger.set(day, member.id, ctx.work_type(day))
                assigned += ctx.work_value(day)
            else:
                ledger.set(day, member.id, 'OFF')

        capacity = sum(ctx.work_value(d) for d in pool)
        if quota.needed > capacity:
            logger.warning(
                f"{member.name}: needs {quota.needed:g} work days but only {capacity:g} are open"
            )
        logger.debug(
            f"{member.name}: target={quota.target:g} fixed={quota.current:g} assigned={assigned:g}"
        )

    return quotas
