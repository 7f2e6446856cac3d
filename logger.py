"""
Logging setup and timing helpers for the shiftplan optimizer.

Every module asks for a child of the 'shiftplan' logger through get_logger().
The level and whether a daily log file is written come from the environment:

    SHIFTPLAN_LOG_LEVEL=DEBUG   per-phase detail (score breakdowns, flatten moves)
    SHIFTPLAN_LOG_FILE=0        console only, no logs/ directory
"""

import functools
import logging
import os
import time
from contextlib import contextmanager
from datetime import datetime

ROOT_LOGGER = "shiftplan"
LOG_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "logs")
LOG_FILE = os.path.join(LOG_DIR, f"shiftplan_{datetime.now():%Y%m%d}.log")

LOG_LEVEL_ENV = "SHIFTPLAN_LOG_LEVEL"
LOG_FILE_ENV = "SHIFTPLAN_LOG_FILE"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _level_from_env() -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    return getattr(logging, name, logging.INFO)


def _file_logging_enabled() -> bool:
    return os.environ.get(LOG_FILE_ENV, "1").lower() not in ("0", "false", "no")


def _attach(log: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    log.addHandler(handler)


def setup_logging(level=None, log_to_file=None):
    """
    Configure the 'shiftplan' logger. Safe to call again; handlers are replaced.

    Args:
        level: Logging level (default: from SHIFTPLAN_LOG_LEVEL, else INFO)
        log_to_file: Also write logs/shiftplan_YYYYMMDD.log (default: from SHIFTPLAN_LOG_FILE)

    Returns:
        The configured root logger
    """
    level = _level_from_env() if level is None else level
    log_to_file = _file_logging_enabled() if log_to_file is None else log_to_file

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)
    root.handlers.clear()

    _attach(root, logging.StreamHandler(), level)
    if log_to_file:
        os.makedirs(LOG_DIR, exist_ok=True)
        _attach(root, logging.FileHandler(LOG_FILE, encoding='utf-8'), level)

    return root


def get_logger(name=None):
    """Child logger 'shiftplan.<name>', or the root logger when no name is given."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}" if name else ROOT_LOGGER)


def timed(func=None, *, name=None):
    """
    Log how long a call took on the 'shiftplan.perf' logger.

    Usage:
        @timed
        def build_context(...): ...

        @timed(name="month optimization")
        def optimize_month(...): ...

    Failures are logged at ERROR with the exception type and re-raised.
    """
    def decorator(fn):
        label = name or fn.__qualname__

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            perf = get_logger('perf')
            started = time.perf_counter()
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                perf.error(f"⏱️ {label}: {time.perf_counter() - started:.4f}s (failed with {type(e).__name__})")
                raise
            perf.info(f"⏱️ {label}: {time.perf_counter() - started:.4f}s")
            return result

        return wrapper

    return decorator(func) if func is not None else decorator


class PerformanceTracker:
    """
    Accumulates phase timings across retry attempts and logs one summary.

    Usage:
        tracker = PerformanceTracker()
        for attempt in range(1, MAX_ATTEMPTS + 1):
            with tracker.track("local_search"):
                run_local_search(ctx, iterations)
        tracker.report()
    """

    def __init__(self, logger_instance=None):
        self.logger = logger_instance or get_logger('perf')
        self.timings: dict[str, list[float]] = {}

    @contextmanager
    def track(self, phase: str):
        started = time.perf_counter()
        try:
            yield
        finally:
            self.timings.setdefault(phase, []).append(time.perf_counter() - started)

    def total(self, phase: str) -> float:
        return sum(self.timings.get(phase, []))

    def report(self, title: str = "Pipeline Timing"):
        """Log phases slowest first with total, run count and average; returns the raw timings."""
        rule = "=" * 50
        self.logger.info(rule)
        self.logger.info(f"📊 {title}")
        self.logger.info(rule)
        for phase in sorted(self.timings, key=self.total, reverse=True):
            runs = self.timings[phase]
            spent = sum(runs)
            self.logger.info(
                f"  {phase:24s} | total: {spent:8.4f}s | runs: {len(runs):3d} | avg: {spent / len(runs):.4f}s"
            )
        self.logger.info(rule)
        return self.timings


logger = setup_logging()
