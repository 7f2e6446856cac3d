"""Swap-based hill climbing.

Each iteration picks a random member and two random working days whose
work/off status differs, trades the status between the two days, rescores,
and keeps the swap only if the score did not get worse. A member's total
work-equivalent days never change: both days must carry the same weekday
work value, and the swap only moves work from one day to the other.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from constants import DEFAULT_STRENGTH, OPTIMIZATION_STRENGTHS, PROGRESS_CHUNK_SIZE
from logger import get_logger
from objectives import compute_score
from schedule_builders import ScheduleContext
from shift_ledger import is_working

logger = get_logger('local_search')

ProgressCallback = Callable[[float, str], None]


class ScheduleCancelled(Exception):
    """Raised at a progress point when the caller cancelled the run."""


class CancellationToken:
    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ScheduleCancelled("Schedule generation was cancelled")


@dataclass
class SearchStats:
    iterations: int = 0
    proposals: int = 0
    accepted: int = 0
    start_score: float = 0.0
    final_score: float = 0.0


def iterations_for(strength: Optional[str]) -> int:
    """Iteration budget for a strength tier; unknown tiers use the default."""
    if strength not in OPTIMIZATION_STRENGTHS:
        if strength is not None:
            logger.warning(f"Unknown optimization strength '{strength}', using '{DEFAULT_STRENGTH}'")
        strength = DEFAULT_STRENGTH
    return OPTIMIZATION_STRENGTHS[strength]


def propose_swap(ctx: ScheduleContext, member_id: str, day_a, day_b):
    """Trade work status between two days. Returns the previous shifts, or None if not a legal swap."""
    ledger = ctx.ledger
    if day_a == day_b:
        return None
    if ledger.is_locked(day_a, member_id) or ledger.is_locked(day_b, member_id):
        return None

    shift_a = ledger.get(day_a, member_id)
    shift_b = ledger.get(day_b, member_id)
    works_a, works_b = is_working(shift_a), is_working(shift_b)
    if works_a == works_b:
        return None
    if ctx.work_value(day_a) != ctx.work_value(day_b):
        return None

    ledger.set(day_a, member_id, ctx.work_type(day_a) if works_b else 'OFF')
    ledger.set(day_b, member_id, ctx.work_type(day_b) if works_a else 'OFF')
    return shift_a, shift_b


def revert_swap(ctx: ScheduleContext, member_id: str, day_a, day_b, previous) -> None:
    for day, shift in zip((day_a, day_b), previous):
        if shift is None:
            ctx.ledger.clear(day, member_id)
        else:
            ctx.ledger.set(day, member_id, shift)


def run_local_search(
    ctx: ScheduleContext,
    iterations: int,
    progress: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> SearchStats:
    current_score = compute_score(ctx)
    stats = SearchStats(start_score=current_score, final_score=current_score)

    if len(ctx.work_dates) < 2 or not ctx.members:
        logger.info("Fewer than two working days or no members, skipping local search")
        return stats

    rng = ctx.rng
    for i in range(iterations):
        if i % PROGRESS_CHUNK_SIZE == 0:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            if progress is not None:
                progress(i / iterations, f"Optimizing {i}/{iterations}")

        stats.iterations += 1
        member = rng.choice(ctx.members)
        day_a = rng.choice(ctx.work_dates)
        day_b = rng.choice(ctx.work_dates)

        previous = propose_swap(ctx, member.id, day_a, day_b)
        if previous is None:
            continue
        stats.proposals += 1

        new_score = compute_score(ctx)
        if new_score <= current_score:
            current_score = new_score
            stats.accepted += 1
        else:
            revert_swap(ctx, member.id, day_a, day_b, previous)

    if progress is not None:
        progress(1.0, "Optimization finished")

    stats.final_score = current_score
    logger.info(
        f"Local search: {stats.iterations} iterations, {stats.proposals} proposals, "
        f"{stats.accepted} accepted, score {stats.start_score:g} -> {stats.final_score:g}"
    )
    return stats
