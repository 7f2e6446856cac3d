#!/usr/bin/env python3
"""
Command-line entry point for the shiftplan optimizer.
"""

import argparse
import logging
import random
import sys

from constants import OPTIMIZATION_STRENGTHS, SHIFT_LABELS
from logger import get_logger, setup_logging
from schedule_validator import ValidationReport
from scheduler_service import SchedulerService
from utils import days_in_month, parse_year_month

logger = get_logger('main')

SHIFT_MARKS = {'ON_SITE': 'O', 'TRIP': 'T', 'HALF_AM': 'a', 'HALF_PM': 'p', 'OFF': '.'}


def format_month(service: SchedulerService, headcounts) -> str:
    """Plain-text grid: one row per member, one column per day, headcount footer."""
    dates = days_in_month(*parse_year_month(service.year_month))
    members = service.active_members()
    width = max((len(m.name) for m in members), default=4)

    lines = [" " * width + " " + "".join(f"{d.day:>3}" for d in dates)]
    for m in members:
        marks = []
        for d in dates:
            shift = service.get_shift(d, m.id)
            mark = SHIFT_MARKS.get(shift, '?')
            if service.ledger.is_locked(d, m.id):
                mark = mark.upper() + '*'
            marks.append(f"{mark:>3}")
        lines.append(f"{m.name:<{width}} " + "".join(marks))
    lines.append(f"{'total':<{width}} " + "".join(f"{headcounts.get(d, 0):>3g}" for d in dates))
    lines.append("")
    lines.append("  ".join(f"{mark}={SHIFT_LABELS[s]}" for s, mark in SHIFT_MARKS.items()) + "  *=locked")
    return "\n".join(lines)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate a monthly shift schedule.")
    parser.add_argument("--config", help="Path to config.yaml (default: next to this script)")
    parser.add_argument("--month", help="Month to generate, YYYY-MM (default: from config)")
    parser.add_argument("--strength", choices=sorted(OPTIMIZATION_STRENGTHS), help="Search effort")
    parser.add_argument("--seed", type=int, help="Random seed for a reproducible run")
    parser.add_argument("--save", action="store_true", help="Write the result back to the config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show per-phase debug logging")
    args = parser.parse_args(argv)

    if args.verbose:
        setup_logging(level=logging.DEBUG)

    rng = random.Random(args.seed) if args.seed is not None else None
    service = SchedulerService(config_path=args.config, rng=rng)
    if args.month:
        try:
            service.year_month = args.month
        except ValueError as e:
            parser.error(str(e))
    if args.strength:
        service.optimization_strength = args.strength

    def report_progress(fraction, message):
        logger.debug(f"{fraction:4.0%} {message}")

    result = service.generate(progress=report_progress)
    if not result.success:
        logger.error(f"Generation failed: {result.error_message}")
        return 1

    print(format_month(service, result.headcounts))
    if result.findings:
        print()
        print(f"⚠️ Generated with issues after {result.attempts} attempt(s):")
        print(ValidationReport(findings=result.findings).format_report())
    else:
        print(f"✅ Generated after {result.attempts} attempt(s)")

    if args.save and not service.save_config():
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
