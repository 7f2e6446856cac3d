"""
Tests for constants.py - Configuration constants
"""

import pytest

from constants import (
    CONDITION_TYPES,
    DEFAULT_WORK_DAYS,
    MAX_ATTEMPTS,
    OPTIMIZATION_STRENGTHS,
    PENALTY_WEIGHTS,
    SHIFT_CYCLE,
    SHIFT_TYPES,
    SHIFT_VALUES,
    SHIFTS,
    WEEKDAY_KEYS,
    WORK_DAY_SETTINGS,
)


class TestShiftConfiguration:
    """Tests for shift configuration constants."""

    def test_shift_types_defined(self):
        """All five shift types should be defined."""
        assert set(SHIFT_TYPES) == {"ON_SITE", "TRIP", "HALF_AM", "HALF_PM", "OFF"}

    def test_day_values(self):
        """Full days count 1, halves 0.5, off 0."""
        assert SHIFT_VALUES["ON_SITE"] == 1.0
        assert SHIFT_VALUES["TRIP"] == 1.0
        assert SHIFT_VALUES["HALF_AM"] == 0.5
        assert SHIFT_VALUES["HALF_PM"] == 0.5
        assert SHIFT_VALUES["OFF"] == 0.0

    def test_shifts_have_required_fields(self):
        """Each shift config should have a value and a label."""
        for shift_type, config in SHIFTS.items():
            assert 'value' in config, f"{shift_type} missing value"
            assert 'label' in config, f"{shift_type} missing label"

    def test_cycle_visits_every_shift(self):
        """Clicking through the cycle should reach every shift and come back."""
        seen = []
        current = "ON_SITE"
        for _ in range(len(SHIFT_TYPES)):
            seen.append(current)
            current = SHIFT_CYCLE[current]
        assert current == "ON_SITE"
        assert sorted(seen) == sorted(SHIFT_TYPES)


class TestPatternConfiguration:
    """Tests for the weekly pattern constants."""

    def test_weekday_keys_start_monday(self):
        """Keys should follow date.weekday() order."""
        assert WEEKDAY_KEYS[0] == "mon"
        assert WEEKDAY_KEYS[6] == "sun"

    def test_default_pattern_weekend_off(self):
        assert DEFAULT_WORK_DAYS["sat"] == "OFF"
        assert DEFAULT_WORK_DAYS["sun"] == "OFF"
        assert all(DEFAULT_WORK_DAYS[k] == "WORK" for k in WEEKDAY_KEYS[:5])

    def test_default_pattern_values_valid(self):
        for value in DEFAULT_WORK_DAYS.values():
            assert value in WORK_DAY_SETTINGS

    def test_condition_types(self):
        assert CONDITION_TYPES == ["TOGETHER", "SEPARATE"]


class TestSearchConfiguration:
    """Tests for weights, strengths and the retry cap."""

    def test_penalty_weights_positive(self):
        for name, weight in PENALTY_WEIGHTS.items():
            assert weight > 0, f"{name} has non-positive weight"

    @pytest.mark.parametrize("tier,iterations", [
        ("weak", 3000), ("medium", 10000), ("strong", 30000), ("strongest", 300000),
    ])
    def test_strength_tiers(self, tier, iterations):
        assert OPTIMIZATION_STRENGTHS[tier] == iterations

    def test_retry_cap(self):
        assert MAX_ATTEMPTS == 5
