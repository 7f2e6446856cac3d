"""Scheduler Service - business logic layer between a front end and the engine.

All roster, team, condition, lock, target and last-day-off management goes
through this class, and so does month generation. The engine itself only
ever sees a read-only ScheduleRequest plus the shared ledger.

Configuration (settings, roster, teams, conditions, targets, locks and the
generated shifts) lives in a YAML file next to the code by default.
"""

from __future__ import annotations

import os
import random
from datetime import date
from typing import Optional

import yaml

from constants import (
    ALL_TEAMS,
    CONDITION_TYPES,
    DEFAULT_BASE_OFF,
    DEFAULT_MAX_CONSECUTIVE,
    DEFAULT_STRENGTH,
    DEFAULT_WORK_DAYS,
    MIN_MAX_CONSECUTIVE,
    OPTIMIZATION_STRENGTHS,
    SHIFT_CYCLE,
    WEEKDAY_KEYS,
    WORK_DAY_SETTINGS,
)
from local_search import CancellationToken, ProgressCallback
from logger import get_logger
from schedule_builders import Member, PairCondition, Team
from scheduling_engine import ScheduleRequest, ScheduleResult, find_last_off_day, generate_schedule
from shift_ledger import ShiftLedger
from utils import (
    days_in_month,
    format_year_month,
    last_day_of_month,
    next_month,
    parse_date,
    parse_year_month,
    prev_month,
)

logger = get_logger('scheduler_service')


class SchedulerService:
    """
    Service layer for monthly shift scheduling.

    This class provides a clean API for:
    - Settings (month, base days off, streak limit, weekly pattern, strength)
    - Roster, team and pairing condition management
    - Daily headcount targets
    - Manual edits and locks on the ledger
    - Last-day-off tracking across months
    - Schedule generation
    - Configuration persistence
    """

    DEFAULT_CONFIG_FILE = "config.yaml"

    def __init__(self, config_path: Optional[str] = None, rng: Optional[random.Random] = None):
        """Initialize the scheduler service.

        Args:
            config_path: Path to configuration file. If None, uses default.
            rng: Random generator for generation runs. If None, seeded from system entropy.
        """
        self._config_path = config_path or self._get_default_config_path()
        self._rng = rng or random.Random()

        self._year_month: str = format_year_month(date.today().year, date.today().month)
        self._base_off: int = DEFAULT_BASE_OFF
        self._max_consecutive: int = DEFAULT_MAX_CONSECUTIVE
        self._strength: str = DEFAULT_STRENGTH
        self._current_team_id: str = ALL_TEAMS
        self._work_days: dict[str, str] = dict(DEFAULT_WORK_DAYS)

        self._teams: list[Team] = []
        self._members: list[Member] = []
        self._conditions: list[PairCondition] = []
        self._daily_targets: dict[date, int] = {}
        # {"YYYY-MM": {member_id: date}} - last day off before that month
        self._last_holidays: dict[str, dict[str, date]] = {}
        self._ledger = ShiftLedger()
        # Set when the config file exists but could not be read
        self._load_error: Optional[str] = None

        self._load_config()

    @staticmethod
    def _get_default_config_path() -> str:
        """Get the default config file path."""
        return os.path.join(os.path.dirname(os.path.abspath(__file__)), SchedulerService.DEFAULT_CONFIG_FILE)

    # =========================================================================
    # Configuration Management
    # =========================================================================

    def _load_config(self) -> None:
        """Load configuration from file.

        The file is parsed in full before anything is applied. If any part
        fails, the service starts from clean defaults and remembers the error
        so save_config() will not overwrite the unreadable file.
        """
        self._load_error = None
        if not os.path.exists(self._config_path):
            logger.info(f"Config file not found at {self._config_path}, using defaults")
            self._apply_defaults()
            return

        try:
            with open(self._config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
            self._apply_config(config)
            logger.info(f"Configuration loaded from {self._config_path}")

        except Exception as e:
            logger.warning(f"Could not load config file: {e}")
            self._load_error = str(e)
            self._apply_defaults()

    def _apply_defaults(self) -> None:
        today = date.today()
        self._year_month = format_year_month(today.year, today.month)
        self._base_off = DEFAULT_BASE_OFF
        self._max_consecutive = DEFAULT_MAX_CONSECUTIVE
        self._strength = DEFAULT_STRENGTH
        self._work_days = dict(DEFAULT_WORK_DAYS)
        self._teams = [Team(id="t1", name="Team 1")]
        self._members = [
            Member(id="m1", name="Sato", extra_off=0, team_id="t1"),
            Member(id="m2", name="Suzuki", extra_off=0, team_id="t1"),
            Member(id="m3", name="Takahashi", extra_off=0, team_id="t1"),
            Member(id="m4", name="Tanaka", extra_off=1, team_id="t1"),
        ]
        self._current_team_id = "t1"
        self._conditions = []
        self._daily_targets = {}
        self._last_holidays = {}
        self._ledger = ShiftLedger()

    def _apply_config(self, config: dict) -> None:
        settings = config.get('settings') or {}
        year_month = self._year_month
        if 'year_month' in settings:
            parse_year_month(str(settings['year_month']))
            year_month = str(settings['year_month'])
        base_off = int(settings.get('base_off', DEFAULT_BASE_OFF))
        max_consecutive = int(settings.get('max_consecutive', DEFAULT_MAX_CONSECUTIVE))
        strength = settings.get('optimization_strength', DEFAULT_STRENGTH)
        current_team_id = str(settings.get('current_team_id', ALL_TEAMS))
        work_days = self._migrate_work_days(settings.get('work_days'))

        teams = [Team.from_dict(t) for t in config.get('teams') or []]
        members = [Member.from_dict(m) for m in config.get('members') or []]
        conditions = [PairCondition.from_dict(c) for c in config.get('conditions') or []]
        daily_targets = {
            parse_date(d): int(v) for d, v in (config.get('daily_targets') or {}).items()
        }
        last_holidays = {
            str(ym): {str(m): parse_date(d) for m, d in (entries or {}).items()}
            for ym, entries in (config.get('last_holidays') or {}).items()
        }
        ledger = ShiftLedger.from_dict(config.get('schedule'))

        self._year_month = year_month
        self._base_off = base_off
        self._max_consecutive = max_consecutive
        self._strength = strength
        self._current_team_id = current_team_id
        self._work_days = work_days
        self._teams = teams
        self._members = members
        self._conditions = conditions
        self._daily_targets = daily_targets
        self._last_holidays = last_holidays
        self._ledger = ledger

        self._migrate_teams()

    @staticmethod
    def _migrate_work_days(raw: Optional[dict]) -> dict[str, str]:
        """Normalize the weekly pattern.

        Older configs stored only boolean `sat`/`sun` flags; those become
        WORK/OFF with Monday to Friday working.
        """
        work_days = dict(DEFAULT_WORK_DAYS)
        if not raw:
            return work_days
        if 'mon' not in raw:
            for key in ('sat', 'sun'):
                if key in raw:
                    work_days[key] = 'WORK' if raw[key] is True else 'OFF'
            return work_days
        for key in WEEKDAY_KEYS:
            value = raw.get(key, work_days[key])
            if value in WORK_DAY_SETTINGS:
                work_days[key] = value
            else:
                logger.warning(f"Ignoring invalid work day setting {key}={value!r}")
        return work_days

    def _migrate_teams(self) -> None:
        """Guarantee at least one team and a valid team for every member and the view."""
        if not self._teams:
            self._teams.append(Team(id="t1", name="Team 1"))
            self._current_team_id = "t1"

        team_ids = {t.id for t in self._teams}
        fallback = self._teams[0].id
        for m in self._members:
            if m.team_id not in team_ids:
                m.team_id = fallback

        if self._current_team_id != ALL_TEAMS and self._current_team_id not in team_ids:
            self._current_team_id = fallback

    def to_config(self) -> dict:
        return {
            'settings': {
                'year_month': self._year_month,
                'base_off': self._base_off,
                'max_consecutive': self._max_consecutive,
                'optimization_strength': self._strength,
                'current_team_id': self._current_team_id,
                'work_days': dict(self._work_days),
            },
            'teams': [t.to_dict() for t in self._teams],
            'members': [m.to_dict() for m in self._members],
            'conditions': [c.to_dict() for c in self._conditions],
            'daily_targets': {str(d): v for d, v in sorted(self._daily_targets.items())},
            'last_holidays': {
                ym: {m: str(d) for m, d in entries.items()}
                for ym, entries in sorted(self._last_holidays.items()) if entries
            },
            'schedule': self._ledger.to_dict(),
        }

    def save_config(self) -> bool:
        """Save current configuration to file.

        Returns:
            True if save was successful, False otherwise.
        """
        if self._load_error is not None:
            logger.error(
                f"Refusing to overwrite {self._config_path}: it failed to load ({self._load_error})"
            )
            return False
        try:
            with open(self._config_path, 'w', encoding='utf-8') as f:
                yaml.dump(self.to_config(), f, default_flow_style=False, allow_unicode=True, sort_keys=False)
            logger.info(f"Configuration saved to {self._config_path}")
            return True
        except Exception as e:
            logger.error(f"Could not save config file: {e}")
            return False

    # =========================================================================
    # Settings Management
    # =========================================================================

    @property
    def year_month(self) -> str:
        return self._year_month

    @year_month.setter
    def year_month(self, value: str) -> None:
        parse_year_month(value)
        self._year_month = value

    def change_month(self, diff: int) -> str:
        """Move the selected month by `diff` months and return the new 'YYYY-MM'."""
        year, month = parse_year_month(self._year_month)
        step = next_month if diff > 0 else prev_month
        for _ in range(abs(diff)):
            year, month = step(year, month)
        self._year_month = format_year_month(year, month)
        return self._year_month

    @property
    def base_off(self) -> int:
        return self._base_off

    @base_off.setter
    def base_off(self, value: int) -> None:
        if value < 0:
            raise ValueError("base_off must be non-negative")
        self._base_off = value

    @property
    def max_consecutive(self) -> int:
        return self._max_consecutive

    @max_consecutive.setter
    def max_consecutive(self, value: int) -> None:
        if value < MIN_MAX_CONSECUTIVE:
            raise ValueError(f"max_consecutive must be at least {MIN_MAX_CONSECUTIVE}")
        self._max_consecutive = value

    @property
    def optimization_strength(self) -> str:
        return self._strength

    @optimization_strength.setter
    def optimization_strength(self, value: str) -> None:
        if value not in OPTIMIZATION_STRENGTHS:
            raise ValueError(f"Unknown optimization strength '{value}'")
        self._strength = value

    @property
    def work_days(self) -> dict[str, str]:
        return dict(self._work_days)

    def set_work_day(self, day_key: str, setting: str) -> None:
        if day_key not in WEEKDAY_KEYS:
            raise ValueError(f"Unknown weekday key '{day_key}'")
        if setting not in WORK_DAY_SETTINGS:
            raise ValueError(f"Invalid work day setting '{setting}'")
        self._work_days[day_key] = setting

    # =========================================================================
    # Team Management
    # =========================================================================

    @property
    def teams(self) -> list[Team]:
        return self._teams.copy()

    @property
    def current_team_id(self) -> str:
        return self._current_team_id

    def switch_team(self, team_id: str) -> None:
        if team_id != ALL_TEAMS and self.get_team(team_id) is None:
            raise ValueError(f"Unknown team '{team_id}'")
        self._current_team_id = team_id

    def get_team(self, team_id: str) -> Optional[Team]:
        for t in self._teams:
            if t.id == team_id:
                return t
        return None

    def add_team(self, name: str) -> Team:
        """Add a team and switch the view to it."""
        next_num = max((int(t.id[1:]) for t in self._teams if t.id[1:].isdigit()), default=0) + 1
        team = Team(id=f"t{next_num}", name=name)
        self._teams.append(team)
        self._current_team_id = team.id
        logger.info(f"Added team: {name}")
        return team

    def rename_team(self, team_id: str, name: str) -> bool:
        team = self.get_team(team_id)
        if team is None or not name or name == team.name:
            return False
        team.name = name
        return True

    def delete_team(self, team_id: str) -> bool:
        """Remove a team. Its members move to the first remaining team."""
        team = self.get_team(team_id)
        if team is None:
            return False
        self._teams.remove(team)
        for m in self._members:
            if m.team_id == team_id:
                m.team_id = None
        self._current_team_id = ALL_TEAMS
        self._migrate_teams()
        logger.info(f"Removed team: {team.name}")
        return True

    # =========================================================================
    # Member Management
    # =========================================================================

    @property
    def members(self) -> list[Member]:
        return self._members.copy()

    def active_members(self) -> list[Member]:
        """Members shown and generated under the current team view."""
        if self._current_team_id == ALL_TEAMS:
            return self._members.copy()
        return [m for m in self._members if m.team_id == self._current_team_id]

    def get_member(self, member_id: str) -> Optional[Member]:
        for m in self._members:
            if m.id == member_id:
                return m
        return None

    def add_member(self, name: str, extra_off: int = 0, team_id: Optional[str] = None) -> Member:
        """Add a member, by default to the team currently in view.

        Raises:
            ValueError: If the name is empty or the team does not exist
        """
        if not name:
            raise ValueError("Member name is required")
        if team_id is None and self._current_team_id != ALL_TEAMS:
            team_id = self._current_team_id
        if team_id is not None and self.get_team(team_id) is None:
            raise ValueError(f"Unknown team '{team_id}'")

        next_num = max((int(m.id[1:]) for m in self._members if m.id[1:].isdigit()), default=0) + 1
        member = Member(id=f"m{next_num}", name=name, extra_off=extra_off, team_id=team_id)
        self._members.append(member)
        logger.info(f"Added member: {name}")
        return member

    def remove_member(self, member_id: str) -> bool:
        member = self.get_member(member_id)
        if member is None:
            return False
        self._members.remove(member)
        logger.info(f"Removed member: {member.name}")
        return True

    def update_member(self, member_id: str, name: Optional[str] = None,
                      extra_off: Optional[int] = None, team_id: Optional[str] = None) -> Member:
        member = self.get_member(member_id)
        if member is None:
            raise ValueError(f"Unknown member '{member_id}'")
        if name:
            member.name = name
        if extra_off is not None:
            if extra_off < 0:
                raise ValueError("extra_off must be non-negative")
            member.extra_off = extra_off
        if team_id is not None:
            if self.get_team(team_id) is None:
                raise ValueError(f"Unknown team '{team_id}'")
            member.team_id = team_id
        return member

    # =========================================================================
    # Pairing Conditions
    # =========================================================================

    @property
    def conditions(self) -> list[PairCondition]:
        return self._conditions.copy()

    def add_condition(self, mode: str = "TOGETHER", member_a: str = "", member_b: str = "") -> int:
        self._conditions.append(PairCondition(member_a=member_a, member_b=member_b, mode=mode))
        return len(self._conditions) - 1

    def update_condition(self, index: int, mode: Optional[str] = None,
                         member_a: Optional[str] = None, member_b: Optional[str] = None) -> bool:
        if not 0 <= index < len(self._conditions):
            return False
        cond = self._conditions[index]
        if mode is not None:
            if mode not in CONDITION_TYPES:
                raise ValueError(f"Unknown condition type '{mode}'")
            cond.mode = mode
        if member_a is not None:
            cond.member_a = member_a
        if member_b is not None:
            cond.member_b = member_b
        return True

    def remove_condition(self, index: int) -> bool:
        if 0 <= index < len(self._conditions):
            self._conditions.pop(index)
            return True
        return False

    # =========================================================================
    # Daily Targets
    # =========================================================================

    @property
    def daily_targets(self) -> dict[date, int]:
        return dict(self._daily_targets)

    def set_daily_target(self, day: date, target: Optional[int]) -> None:
        """Set the headcount target for a day; 0 closes the day, None clears it."""
        if target is None:
            self._daily_targets.pop(day, None)
            return
        if target < 0:
            raise ValueError("Daily target must be non-negative")
        self._daily_targets[day] = target

    # =========================================================================
    # Ledger Editing and Locks
    # =========================================================================

    @property
    def ledger(self) -> ShiftLedger:
        return self._ledger

    def get_shift(self, day: date, member_id: str) -> Optional[str]:
        return self._ledger.get(day, member_id)

    def set_shift(self, day: date, member_id: str, shift: str) -> bool:
        """Manually assign a shift. Locked cells are refused."""
        if self._ledger.is_locked(day, member_id):
            logger.warning(f"{day} {member_id} is locked, unlock it before editing")
            return False
        self._ledger.set(day, member_id, shift)
        return True

    def cycle_shift(self, day: date, member_id: str) -> Optional[str]:
        """Step a cell through ON_SITE -> TRIP -> OFF -> HALF_AM -> HALF_PM -> ON_SITE."""
        if self._ledger.is_locked(day, member_id):
            logger.warning(f"{day} {member_id} is locked, unlock it before editing")
            return None
        current = self._ledger.shifts.get(day, {}).get(member_id)
        new_shift = SHIFT_CYCLE.get(current, 'ON_SITE')
        self._ledger.set(day, member_id, new_shift)
        return new_shift

    def set_lock(self, day: date, member_id: str, shift: Optional[str] = None) -> str:
        return self._ledger.lock(day, member_id, shift)

    def toggle_lock(self, day: date, member_id: str) -> bool:
        """Lock the cell at its current value, or unlock it. Returns True when now locked."""
        if self._ledger.is_locked(day, member_id):
            self._ledger.unlock(day, member_id)
            return False
        self._ledger.lock(day, member_id)
        return True

    def toggle_day_lock(self, day: date) -> bool:
        """Lock every member on `day`, or unlock the day when all are already locked."""
        if self._members and all(self._ledger.is_locked(day, m.id) for m in self._members):
            self._ledger.unlock_day(day)
            return False
        for m in self._members:
            if not self._ledger.is_locked(day, m.id):
                self._ledger.lock(day, m.id)
        return True

    def reset_schedule(self) -> None:
        """Clear every assignment and lock."""
        self._ledger.reset()
        logger.info("Schedule and locks cleared")

    # =========================================================================
    # Last Day Off (carried streak)
    # =========================================================================

    def find_last_holiday_in_month(self, member_id: str, year: int, month: int) -> Optional[date]:
        return find_last_off_day(self._ledger, member_id, days_in_month(year, month))

    def default_last_holiday(self, member_id: str) -> date:
        """Last day off found in the previous month, else that month's last day."""
        year, month = prev_month(*parse_year_month(self._year_month))
        detected = self.find_last_holiday_in_month(member_id, year, month)
        return detected or last_day_of_month(year, month)

    def get_last_holiday(self, member_id: str) -> date:
        explicit = self._last_holidays.get(self._year_month, {}).get(member_id)
        if explicit:
            return explicit
        return self.default_last_holiday(member_id)

    def set_last_holiday(self, member_id: str, day: Optional[date]) -> None:
        """Set the last day off before the selected month; None reverts to the default."""
        entries = self._last_holidays.setdefault(self._year_month, {})
        if day:
            entries[member_id] = day
        else:
            entries.pop(member_id, None)

    def auto_detect_last_holiday(self, member_id: str) -> Optional[date]:
        year, month = prev_month(*parse_year_month(self._year_month))
        found = self.find_last_holiday_in_month(member_id, year, month)
        if found:
            self.set_last_holiday(member_id, found)
        else:
            logger.warning(f"No day off found for {member_id} in {format_year_month(year, month)}")
        return found

    def update_next_month_last_holidays(self, last_offs: dict[str, date]) -> int:
        """Store the just-generated month's last days off for the following month."""
        year, month = parse_year_month(self._year_month)
        next_ym = format_year_month(*next_month(year, month))
        entries = self._last_holidays.setdefault(next_ym, {})

        changed = 0
        for member_id, day in last_offs.items():
            if entries.get(member_id) != day:
                changed += 1
            entries[member_id] = day

        if changed:
            logger.info(f"Updated last days off for {next_ym} ({changed} members)")
        return changed

    # =========================================================================
    # Schedule Generation
    # =========================================================================

    def build_request(self) -> ScheduleRequest:
        year, month = parse_year_month(self._year_month)
        return ScheduleRequest(
            year=year,
            month=month,
            members=[Member(**vars(m)) for m in self._members],
            teams=self._teams.copy(),
            work_days=dict(self._work_days),
            base_off=self._base_off,
            max_consecutive=self._max_consecutive,
            conditions=[PairCondition(c.member_a, c.member_b, c.mode) for c in self._conditions],
            daily_targets=dict(self._daily_targets),
            last_off_days={m.id: self.get_last_holiday(m.id) for m in self._members},
            strength=self._strength,
            team_filter=self._current_team_id,
        )

    def generate(self, progress: Optional[ProgressCallback] = None,
                 cancel_token: Optional[CancellationToken] = None) -> ScheduleResult:
        """Generate the selected month for the members in view."""
        request = self.build_request()
        logger.info(f"Generating schedule for {self._year_month} with {len(request.active_members())} members")

        result = generate_schedule(request, self._ledger, self._rng, progress, cancel_token)
        if result.success:
            self.update_next_month_last_holidays(result.next_last_off)
        else:
            logger.warning(f"Generation failed: {result.error_message}")
        return result
