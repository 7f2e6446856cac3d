"""Month generation entry point.

generate_schedule() takes a snapshot of the scheduling inputs and the shared
ledger, rebuilds the month (locked cells replayed, every other cell of the
active roster cleared), runs the retry pipeline and returns the warnings plus
each member's last day off for seeding the following month.

The ledger is snapshotted before anything is touched. A fault or cancellation
anywhere in the pipeline restores it, so callers never see a half-built month.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from constants import (
    ALL_TEAMS,
    DEFAULT_BASE_OFF,
    DEFAULT_MAX_CONSECUTIVE,
    DEFAULT_STRENGTH,
    DEFAULT_WORK_DAYS,
    MIN_MAX_CONSECUTIVE,
    WEEKDAY_KEYS,
    WORK_DAY_SETTINGS,
)
from local_search import CancellationToken, ProgressCallback, ScheduleCancelled, iterations_for
from logger import get_logger, timed
from schedule_builders import Member, PairCondition, ScheduleContext, Team
from schedule_pipeline import optimize_month
from schedule_validator import Finding, daily_headcounts
from shift_ledger import ShiftLedger, is_working
from utils import carried_streak, days_in_month

logger = get_logger('engine')


class ScheduleInputError(ValueError):
    """The scheduling request cannot be run as given."""


@dataclass
class ScheduleRequest:
    """Read-only snapshot of everything a month generation needs."""
    year: int
    month: int
    members: list[Member]
    teams: list[Team] = field(default_factory=list)
    work_days: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_WORK_DAYS))
    base_off: int = DEFAULT_BASE_OFF
    max_consecutive: int = DEFAULT_MAX_CONSECUTIVE
    conditions: list[PairCondition] = field(default_factory=list)
    daily_targets: dict[date, int] = field(default_factory=dict)
    last_off_days: dict[str, Optional[date]] = field(default_factory=dict)
    strength: str = DEFAULT_STRENGTH
    team_filter: str = ALL_TEAMS

    def active_members(self) -> list[Member]:
        if not self.team_filter or self.team_filter == ALL_TEAMS:
            return list(self.members)
        return [m for m in self.members if m.team_id == self.team_filter]


@dataclass
class ScheduleResult:
    """Outcome of one generation run."""
    success: bool
    warnings: list[str] = field(default_factory=list)
    findings: list[Finding] = field(default_factory=list)
    score: Optional[float] = None
    breakdown: dict[str, float] = field(default_factory=dict)
    attempts: int = 0
    next_last_off: dict[str, date] = field(default_factory=dict)
    headcounts: dict[date, float] = field(default_factory=dict)
    error_message: str = ""
    cancelled: bool = False

    @property
    def is_clean(self) -> bool:
        """Generated without any advisory finding."""
        return self.success and not self.findings


def validate_request(request: ScheduleRequest) -> None:
    """Raise ScheduleInputError for inputs the pipeline cannot interpret."""
    if not 1 <= request.month <= 12:
        raise ScheduleInputError(f"Invalid month {request.month}")
    if request.base_off < 0:
        raise ScheduleInputError(f"base_off must be non-negative, got {request.base_off}")
    if request.max_consecutive < MIN_MAX_CONSECUTIVE:
        raise ScheduleInputError(
            f"max_consecutive must be at least {MIN_MAX_CONSECUTIVE}, got {request.max_consecutive}"
        )

    for key, setting in request.work_days.items():
        if key not in WEEKDAY_KEYS:
            raise ScheduleInputError(f"Unknown weekday key '{key}'")
        if setting not in WORK_DAY_SETTINGS:
            raise ScheduleInputError(f"Invalid work day setting '{setting}' for {key}")

    seen = set()
    for m in request.members:
        if m.id in seen:
            raise ScheduleInputError(f"Duplicate member id '{m.id}'")
        seen.add(m.id)
        if (m.extra_off or 0) < 0:
            raise ScheduleInputError(f"{m.name}: extra_off must be non-negative")

    for cond in request.conditions:
        if cond.member_a and cond.member_a == cond.member_b:
            raise ScheduleInputError(f"Condition pairs member '{cond.member_a}' with itself")
        for member_id in (cond.member_a, cond.member_b):
            if member_id and member_id not in seen:
                logger.warning(f"Condition references unknown member '{member_id}'")

    for day, target in request.daily_targets.items():
        try:
            valid = int(target) >= 0
        except (TypeError, ValueError):
            valid = False
        if not valid:
            raise ScheduleInputError(f"Invalid daily target {target!r} for {day}")


def find_last_off_day(ledger: ShiftLedger, member_id: str, dates: list[date]) -> Optional[date]:
    """Latest day in `dates` the member is not working (unassigned counts as off)."""
    for day in sorted(dates, reverse=True):
        if not is_working(ledger.get(day, member_id)):
            return day
    return None


def build_context(request: ScheduleRequest, ledger: ShiftLedger, rng: random.Random) -> ScheduleContext:
    """Rebuild the month in the ledger and wrap the inputs for the pipeline."""
    dates = days_in_month(request.year, request.month)
    active = request.active_members()

    ledger.replay_locks(dates)
    ledger.clear_unlocked(dates, [m.id for m in active])

    work_days = dict(DEFAULT_WORK_DAYS)
    work_days.update(request.work_days)

    seeds = {m.id: carried_streak(request.last_off_days.get(m.id), dates[0]) for m in active}

    return ScheduleContext(
        dates=dates,
        members=active,
        ledger=ledger,
        teams=list(request.teams),
        work_days=work_days,
        base_off=request.base_off,
        max_consecutive=request.max_consecutive,
        conditions=list(request.conditions),
        daily_targets={d: int(t) for d, t in request.daily_targets.items()},
        streak_seeds=seeds,
        roster_ids=[m.id for m in request.members],
        rng=rng,
    )


@timed(name="generate_schedule")
def generate_schedule(
    request: ScheduleRequest,
    ledger: ShiftLedger,
    rng: Optional[random.Random] = None,
    progress: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> ScheduleResult:
    """Generate one month into `ledger`. Never raises for bad input or pipeline faults."""
    try:
        validate_request(request)
    except ScheduleInputError as e:
        logger.error(f"Invalid schedule request: {e}")
        return ScheduleResult(success=False, error_message=str(e))

    active = request.active_members()
    if not active:
        logger.warning("No members to schedule")
        return ScheduleResult(success=True)

    rng = rng or random.Random()
    iterations = iterations_for(request.strength)
    snapshot = ledger.snapshot()

    logger.info(
        f"Generating {request.year}-{request.month:02d} for {len(active)} members "
        f"(strength={request.strength}, {iterations} iterations)"
    )

    try:
        ctx = build_context(request, ledger, rng)
        if not ctx.work_dates:
            logger.warning("No working days in the month, every member is scheduled OFF")

        outcome = optimize_month(ctx, iterations, progress, cancel_token)
        report = outcome.best.report

        next_last_off = {}
        for m in active:
            last_off = find_last_off_day(ledger, m.id, ctx.dates)
            if last_off is not None:
                next_last_off[m.id] = last_off

        result = ScheduleResult(
            success=True,
            warnings=report.messages(),
            findings=list(report.findings),
            score=outcome.best.score,
            breakdown=outcome.breakdown,
            attempts=outcome.attempt_count,
            next_last_off=next_last_off,
            headcounts=daily_headcounts(ledger, ctx.member_ids, ctx.dates),
        )

        if result.warnings:
            logger.warning(
                f"Generated with {len(result.warnings)} warning(s) after {result.attempts} attempt(s)"
            )
        else:
            logger.info(f"Generated cleanly after {result.attempts} attempt(s)")
        return result

    except ScheduleCancelled as e:
        logger.info(str(e))
        ledger.restore(snapshot)
        return ScheduleResult(success=False, cancelled=True, error_message=str(e))

    except Exception as e:
        logger.error(f"Error generating schedule: {e}", exc_info=True)
        ledger.restore(snapshot)
        return ScheduleResult(success=False, error_message=str(e))
