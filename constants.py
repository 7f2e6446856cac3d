# Shift configurations
# 'value' is the work contribution of the shift for quota and headcount arithmetic.
SHIFTS = {
    'ON_SITE': {'value': 1.0, 'label': 'On site'},
    'TRIP': {'value': 1.0, 'label': 'Business trip'},
    'HALF_AM': {'value': 0.5, 'label': 'Morning half'},
    'HALF_PM': {'value': 0.5, 'label': 'Afternoon half'},
    'OFF': {'value': 0.0, 'label': 'Off'},
}

SHIFT_TYPES = list(SHIFTS.keys())
SHIFT_VALUES = {k: v['value'] for k, v in SHIFTS.items()}
SHIFT_LABELS = {k: v['label'] for k, v in SHIFTS.items()}

# Manual edit cycle (clicking a cell). Unassigned cells start at ON_SITE.
SHIFT_CYCLE = {
    'ON_SITE': 'TRIP',
    'TRIP': 'OFF',
    'OFF': 'HALF_AM',
    'HALF_AM': 'HALF_PM',
    'HALF_PM': 'ON_SITE',
}

# Weekly work-day pattern
# Keys follow date.weekday() order (0 = Monday).
WEEKDAY_KEYS = ['mon', 'tue', 'wed', 'thu', 'fri', 'sat', 'sun']
WORK_DAY_SETTINGS = ['WORK', 'OFF', 'HALF_AM', 'HALF_PM']
DEFAULT_WORK_DAYS = {
    'mon': 'WORK',
    'tue': 'WORK',
    'wed': 'WORK',
    'thu': 'WORK',
    'fri': 'WORK',
    'sat': 'OFF',
    'sun': 'OFF',
}

# Pairing condition modes
# TOGETHER: both members share working/non-working status on every working day.
# SEPARATE: both members never work the same day.
CONDITION_TYPES = ['TOGETHER', 'SEPARATE']

# Team view selector meaning "whole roster"
ALL_TEAMS = 'ALL'

# Monthly leave settings
DEFAULT_BASE_OFF = 8          # Days off per month for everyone
DEFAULT_MAX_CONSECUTIVE = 5   # Longest allowed run of working days
MIN_MAX_CONSECUTIVE = 1

# Objective function weights
# Each weight multiplies the corresponding penalty in objectives.compute_score().
# Higher weight means the search prioritizes that term more strongly.
# If changed:
# - Raising TARGET_DEVIATION makes explicit headcount targets closer to hard constraints.
# - Lowering the variance weights lets daily headcount drift when it helps streaks or pairs.
PENALTY_WEIGHTS = {
    'target_deviation': 5000,     # Per person of |actual - target| on a day with a target
    'target_team_spread': 50000,  # Per unit of team spread (>= 2) on a day with a target
    'target_team_near': 500,      # Flat, when team spread == 1 on a day with a target
    'smoothing': 10,              # Times count**2 on every working day
    'global_variance': 10000,     # Per unit of (max - min) >= 2 across valid days
    'team_variance': 8000,        # Per unit of (max - min) >= 2 across valid days, per team
    'consecutive': 10,            # Times streak**2 on every working day
    'consecutive_over': 1000,     # Flat, each day the streak exceeds the maximum
    'condition': 200,             # Each day a pairing condition is broken
}

# Spread at which daily headcounts count as unbalanced (max - min >= this)
VARIANCE_THRESHOLD = 2

# Flattening attempt limits
FLATTEN_TEAM_ATTEMPTS = 200
FLATTEN_GLOBAL_ATTEMPTS = 500

# Local search iteration budgets
OPTIMIZATION_STRENGTHS = {
    'weak': 3000,
    'medium': 10000,
    'strong': 30000,
    'strongest': 300000,
}
DEFAULT_STRENGTH = 'medium'
PROGRESS_CHUNK_SIZE = 1000  # Iterations between progress reports

# Retry controller
MAX_ATTEMPTS = 5  # Full pipeline runs before accepting a variance issue
