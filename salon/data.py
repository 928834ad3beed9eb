# salon/data.py

from datetime import time

DEFAULT_BUSINESS_HOURS = {
    "start_time": time(9, 0),
    "end_time": time(18, 0),
    "days_off": [0],          # Sunday
    "lunch_start": None,
    "lunch_end": None,
    "slot_interval": 30,
}

DEFAULT_LOYALTY_CONFIG = {
    "enabled": False,
    "points_per_currency": 1.0,
    "minimum_for_points": 0.0,
    "service_rules": [],
    "levels": [],
}

DEFAULT_SERVICE_DURATION = "01:00:00"
DEFAULT_DAYS_IN_ADVANCE = 30

# status -> statuses it may move to
STATUS_TRANSITIONS = {
    "scheduled": {"completed", "canceled", "no_show"},
    "canceled": {"scheduled"},
    "no_show": {"scheduled"},
    "completed": set(),
}

# statuses that still hold their slot in the agenda
BLOCKING_STATUSES = ("scheduled", "completed", "no_show")

TIME_RANGES = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "365d": 365,
}

RECENT_ACTIVITY_LIMIT = 5

# weights of the three most recent months in the profit projection
PROJECTION_WEIGHTS = (0.5, 0.3, 0.2)
