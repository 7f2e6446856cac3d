"""Build/flatten/search/validate pipeline with bounded retries.

One attempt is: randomized quota fill -> per-team and global flattening ->
hill-climbing local search -> validation. When the validator still reports a
daily headcount spread of 2 or more, the whole attempt is thrown away and run
again from the same starting ledger (new shuffles reach a different local
optimum), up to MAX_ATTEMPTS. The best attempt is what ends up in the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from constants import MAX_ATTEMPTS
from flattening import flatten_schedule
from local_search import CancellationToken, ProgressCallback, SearchStats, run_local_search
from logger import PerformanceTracker, get_logger, timed
from objectives import compute_score, score_breakdown
from schedule_builders import ScheduleContext, build_initial_assignment
from schedule_validator import ValidationReport, validate_schedule

logger = get_logger('schedule_pipeline')


@dataclass
class AttemptResult:
    attempt: int
    score: float
    flattened_score: float
    report: ValidationReport
    search: SearchStats
    flatten_moves: int = 0

    @property
    def rank(self) -> tuple[bool, float]:
        """Lower is better: a run without a variance finding beats any run with one."""
        return self.report.has_variance_issue, self.score


@dataclass
class PipelineOutcome:
    best: AttemptResult
    attempts: list[AttemptResult] = field(default_factory=list)
    breakdown: dict[str, float] = field(default_factory=dict)

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)


def run_attempt(
    ctx: ScheduleContext,
    attempt: int,
    iterations: int,
    progress: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
    tracker: Optional[PerformanceTracker] = None,
) -> AttemptResult:
    """One full pass over an already rebuilt ledger."""
    tracker = tracker or PerformanceTracker()

    with tracker.track("initial_fill"):
        build_initial_assignment(ctx)

    with tracker.track("flatten"):
        moves = flatten_schedule(ctx)
    flattened_score = compute_score(ctx)
    logger.info(f"Attempt {attempt}: {moves} flattening moves, score {flattened_score:g}")

    def attempt_progress(fraction: float, message: str) -> None:
        if progress is not None:
            progress(fraction, f"Attempt {attempt}/{MAX_ATTEMPTS}: {message}")

    with tracker.track("local_search"):
        search = run_local_search(ctx, iterations, attempt_progress, cancel_token)

    with tracker.track("validate"):
        report = validate_schedule(ctx)

    return AttemptResult(
        attempt=attempt,
        score=search.final_score,
        flattened_score=flattened_score,
        report=report,
        search=search,
        flatten_moves=moves,
    )


@timed(name="month optimization")
def optimize_month(
    ctx: ScheduleContext,
    iterations: int,
    progress: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> PipelineOutcome:
    """Run attempts until one has no variance finding or MAX_ATTEMPTS is reached.

    The ledger must already hold only the locked cells for the month; the best
    attempt's assignments are left in it.
    """
    tracker = PerformanceTracker(logger)
    start_state = ctx.ledger.snapshot()

    attempts: list[AttemptResult] = []
    best: Optional[AttemptResult] = None
    best_state = None

    for attempt in range(1, MAX_ATTEMPTS + 1):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        if attempt > 1:
            logger.info(f"Retrying ({attempt}/{MAX_ATTEMPTS}) after daily variance issue")
            if progress is not None:
                progress(0.0, f"Retrying ({attempt}/{MAX_ATTEMPTS})...")
            ctx.ledger.restore(start_state)

        result = run_attempt(ctx, attempt, iterations, progress, cancel_token, tracker)
        attempts.append(result)

        if best is None or result.rank < best.rank:
            best = result
            best_state = ctx.ledger.snapshot()

        if not result.report.has_variance_issue:
            break

    if best_state is not None and best is not attempts[-1]:
        logger.info(f"Keeping attempt {best.attempt} (score {best.score:g})")
        ctx.ledger.restore(best_state)

    tracker.report(f"Pipeline Timing ({len(attempts)} attempt(s))")
    return PipelineOutcome(best=best, attempts=attempts, breakdown=score_breakdown(ctx))
