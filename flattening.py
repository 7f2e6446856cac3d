"""Directed flattening.

Before the stochastic search, move single work days from the busiest valid day
to the quietest one until the subset's daily headcounts are within 1 of each
other, or no legal move is left. Runs per team first, then over the whole
active roster. This is a pre-conditioner: it does not guarantee a flat result.
"""

from __future__ import annotations

from datetime import date

from constants import FLATTEN_GLOBAL_ATTEMPTS, FLATTEN_TEAM_ATTEMPTS, VARIANCE_THRESHOLD
from logger import get_logger
from schedule_builders import ScheduleContext

logger = get_logger('flattening')


def daily_counts(ctx: ScheduleContext, member_ids: list[str]) -> dict[date, float]:
    """Headcount of `member_ids` on every valid day."""
    ledger = ctx.ledger
    return {d: ledger.headcount(d, member_ids) for d in ctx.valid_dates}


def _find_transfer(ctx: ScheduleContext, member_ids, max_days, min_days):
    """First (member, from_day, to_day) that moves one work day from a max day to a min day."""
    ledger = ctx.ledger
    for max_day in max_days:
        for min_day in min_days:
            if max_day == min_day:
                continue
            candidates = [
                m for m in member_ids
                if not ledger.is_locked(max_day, m)
                and not ledger.is_locked(min_day, m)
                and ledger.value(max_day, m) >= 1
                and ledger.get(min_day, m) == 'OFF'
            ]
            if candidates:
                return ctx.rng.choice(candidates), max_day, min_day
    return None


def flatten(ctx: ScheduleContext, member_ids: list[str], attempt_limit: int) -> int:
    """Flatten the headcount of `member_ids`. Returns the number of moves made."""
    moves = 0
    for _ in range(attempt_limit):
        counts = daily_counts(ctx, member_ids)
        if not counts:
            break

        low, high = min(counts.values()), max(counts.values())
        if high - low < VARIANCE_THRESHOLD:
            break

        max_days = [d for d, c in counts.items() if c == high]
        min_days = [d for d, c in counts.items() if c == low]
        ctx.rng.shuffle(max_days)
        ctx.rng.shuffle(min_days)

        transfer = _find_transfer(ctx, member_ids, max_days, min_days)
        if transfer is None:
            logger.debug(f"No transfer available (spread {high - low:g}), stopping")
            break

        member_id, from_day, to_day = transfer
        ctx.ledger.set(from_day, member_id, 'OFF')
        ctx.ledger.set(to_day, member_id, ctx.work_type(to_day))
        moves += 1

    return moves


def flatten_schedule(ctx: ScheduleContext) -> int:
    """Per-team flattening followed by a global pass."""
    moves = 0
    for team_id, ids in ctx.team_members.items():
        team_moves = flatten(ctx, ids, FLATTEN_TEAM_ATTEMPTS)
        logger.debug(f"Team {team_id}: {team_moves} moves")
        moves += team_moves

    global_moves = flatten(ctx, ctx.member_ids, FLATTEN_GLOBAL_ATTEMPTS)
    logger.debug(f"Global: {global_moves} moves")
    return moves + global_moves
