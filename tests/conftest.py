"""
Pytest fixtures and configuration for shiftplan tests.
"""

import os
import random
import sys
from datetime import date

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Keep test runs from writing log files
os.environ.setdefault("SHIFTPLAN_LOG_FILE", "0")

from constants import DEFAULT_WORK_DAYS
from schedule_builders import Member, ScheduleContext, Team
from shift_ledger import ShiftLedger
from utils import days_in_month


@pytest.fixture
def june_2026_days():
    """June 2026: starts on a Monday, 30 days, 8 weekend days."""
    return days_in_month(2026, 6)


@pytest.fixture
def weekday_pattern():
    """Monday to Friday WORK, weekend OFF."""
    return dict(DEFAULT_WORK_DAYS)


@pytest.fixture
def sample_teams():
    return [Team(id="t1", name="Team 1"), Team(id="t2", name="Team 2")]


@pytest.fixture
def sample_members():
    """Four members over two teams, one with an extra day off."""
    return [
        Member(id="m1", name="Sato", extra_off=0, team_id="t1"),
        Member(id="m2", name="Suzuki", extra_off=0, team_id="t1"),
        Member(id="m3", name="Takahashi", extra_off=0, team_id="t2"),
        Member(id="m4", name="Tanaka", extra_off=1, team_id="t2"),
    ]


@pytest.fixture
def make_ctx(june_2026_days, sample_members, sample_teams, weekday_pattern):
    """Factory for a June 2026 ScheduleContext; keyword arguments override the defaults."""
    def _make(**overrides):
        params = dict(
            dates=june_2026_days,
            members=sample_members,
            ledger=ShiftLedger(),
            teams=sample_teams,
            work_days=dict(weekday_pattern),
            base_off=10,
            max_consecutive=5,
            rng=random.Random(42),
        )
        params.update(overrides)
        return ScheduleContext(**params)
    return _make


@pytest.fixture
def nonexistent_config(tmp_path):
    """Config path that does not exist yet, so the service starts from defaults."""
    return str(tmp_path / "config.yaml")


def fill(ledger, dates, member_ids, shift):
    """Assign `shift` to every (date, member) pair."""
    for d in dates:
        for m in member_ids:
            ledger.set(d, m, shift)


def member_total(ledger, member_id, dates):
    return sum(ledger.value(d, member_id) for d in dates)


@pytest.fixture
def helpers():
    """Small ledger helpers shared by test modules."""
    class _Helpers:
        fill = staticmethod(fill)
        member_total = staticmethod(member_total)
        d = staticmethod(lambda day: date(2026, 6, day))
    return _Helpers
