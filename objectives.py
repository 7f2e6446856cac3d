"""Objective terms for the monthly shift search.

Each build_*_cost function returns one non-negative penalty for the current
ledger. compute_score() is their sum; lower is better. Every call reads the
ledger from scratch, so scoring the same ledger twice gives the same number.
"""

from __future__ import annotations

from datetime import date

from constants import PENALTY_WEIGHTS, VARIANCE_THRESHOLD
from logger import get_logger
from schedule_builders import ScheduleContext

logger = get_logger('objectives')

ValueGrid = dict[date, dict[str, float]]

SCORE_TERMS = (
    'target_deviation',
    'target_team_balance',
    'smoothing',
    'global_variance',
    'team_variance',
    'consecutive',
    'conditions',
)


def build_value_grid(ctx: ScheduleContext) -> ValueGrid:
    """Day-value of every active member on every day of the month."""
    ledger = ctx.ledger
    return {d: {m: ledger.value(d, m) for m in ctx.member_ids} for d in ctx.dates}


def _count(grid: ValueGrid, day: date, member_ids) -> float:
    row = grid[day]
    return sum(row[m] for m in member_ids)


def _spread(values) -> float:
    values = list(values)
    if not values:
        return 0
    return max(values) - min(values)


def build_target_deviation_cost(ctx: ScheduleContext, grid: ValueGrid) -> float:
    """5000 per person of difference from an explicit daily target."""
    weight = PENALTY_WEIGHTS['target_deviation']
    cost = 0.0
    for day in ctx.work_dates:
        if not ctx.has_target(day):
            continue
        diff = abs(_count(grid, day, ctx.member_ids) - ctx.daily_targets[day])
        cost += diff * weight
    return cost


def build_target_team_balance_cost(ctx: ScheduleContext, grid: ValueGrid) -> float:
    """Spread between team headcounts on days with a target.

    A spread of 2 or more costs 50000 per unit; a spread of exactly 1 costs a flat 500.
    """
    if not ctx.team_members:
        return 0.0
    cost = 0.0
    for day in ctx.work_dates:
        if not ctx.has_target(day):
            continue
        spread = _spread(_count(grid, day, ids) for ids in ctx.team_members.values())
        if spread >= VARIANCE_THRESHOLD:
            cost += spread * PENALTY_WEIGHTS['target_team_spread']
        elif spread >= 1:
            cost += PENALTY_WEIGHTS['target_team_near']
    return cost


def build_smoothing_cost(ctx: ScheduleContext, grid: ValueGrid) -> float:
    weight = PENALTY_WEIGHTS['smoothing']
    return sum(weight * _count(grid, day, ctx.member_ids) ** 2 for day in ctx.work_dates)


def build_global_variance_cost(ctx: ScheduleContext, grid: ValueGrid) -> float:
    spread = _spread(_count(grid, day, ctx.member_ids) for day in ctx.valid_dates)
    if spread >= VARIANCE_THRESHOLD:
        return spread * PENALTY_WEIGHTS['global_variance']
    return 0.0


def build_team_variance_cost(ctx: ScheduleContext, grid: ValueGrid) -> float:
    cost = 0.0
    for team_id, ids in ctx.team_members.items():
        spread = _spread(_count(grid, day, ids) for day in ctx.valid_dates)
        if spread >= VARIANCE_THRESHOLD:
            cost += spread * PENALTY_WEIGHTS['team_variance']
    return cost


def build_consecutive_cost(ctx: ScheduleContext, grid: ValueGrid) -> float:
    """Quadratic cost on working streaks, seeded with the streak carried into the month."""
    weight = PENALTY_WEIGHTS['consecutive']
    over = PENALTY_WEIGHTS['consecutive_over']
    limit = ctx.max_consecutive
    cost = 0.0
    for member_id in ctx.member_ids:
        streak = ctx.streak_seeds.get(member_id, 0)
        for day in ctx.dates:
            if grid[day][member_id] > 0:
                streak += 1
                if streak > limit:
                    cost += over
                cost += weight * streak ** 2
            else:
                streak = 0
    return cost


def build_condition_cost(ctx: ScheduleContext, grid: ValueGrid) -> float:
    weight = PENALTY_WEIGHTS['condition']
    ledger = ctx.ledger
    cost = 0.0
    for cond in ctx.conditions:
        if not cond.member_a or not cond.member_b:
            continue
        for day in ctx.work_dates:
            a = grid[day].get(cond.member_a)
            if a is None:
                a = ledger.value(day, cond.member_a)
            b = grid[day].get(cond.member_b)
            if b is None:
                b = ledger.value(day, cond.member_b)
            a_works, b_works = a > 0, b > 0
            if cond.mode == 'TOGETHER' and a_works != b_works:
                cost += weight
            elif cond.mode == 'SEPARATE' and a_works and b_works:
                cost += weight
    return cost


_BUILDERS = {
    'target_deviation': build_target_deviation_cost,
    'target_team_balance': build_target_team_balance_cost,
    'smoothing': build_smoothing_cost,
    'global_variance': build_global_variance_cost,
    'team_variance': build_team_variance_cost,
    'consecutive': build_consecutive_cost,
    'conditions': build_condition_cost,
}


def score_breakdown(ctx: ScheduleContext) -> dict[str, float]:
    grid = build_value_grid(ctx)
    breakdown = {term: _BUILDERS[term](ctx, grid) for term in SCORE_TERMS}
    logger.debug(f"Score breakdown: {breakdown}")
    return breakdown


def compute_score(ctx: ScheduleContext) -> float:
    grid = build_value_grid(ctx)
    return sum(_BUILDERS[term](ctx, grid) for term in SCORE_TERMS)
