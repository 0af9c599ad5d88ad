# Day-count sentinel used by the dashboards for "never" / "no measurable usage".
UNBOUNDED_DAYS = 999

USAGE_WINDOW_DAYS = 90
RECENT_WINDOW_DAYS = 30
SUPPLY_HORIZON_DAYS = 30

# z-score for a ~95% service level under normal demand.
SERVICE_LEVEL_Z = 1.65
DEFAULT_LEAD_TIME_DAYS = 7

HEALTHY_MAX_DAYS = 7
SLOW_MAX_DAYS = 90

SOON_MAX_DAYS = 7
PLANNED_MAX_DAYS = 14

HEALTH_STATUSES = ("healthy", "slow", "dead", "unknown")
PRIORITIES = ("urgent", "soon", "planned", "safe")

MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"
