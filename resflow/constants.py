"""Default values shared across resflow components."""

SYSTEM_ACTOR = "system"
DEFAULT_ASSIGNEE_ROLE = "front_office"

DEFAULT_APPROVAL_TIMEOUT_MINUTES = 120
URGENT_APPROVAL_TIMEOUT_MINUTES = 60
DEFAULT_MANUAL_TIMEOUT_MINUTES = 60
ROOMING_LIST_TIMEOUT_MINUTES = 24 * 60

DEFAULT_MONITOR_INTERVAL_SECONDS = 60.0
DEFAULT_ESCALATION_ROLE = "duty_manager"

PRIORITY_RANK = {"urgent": 4, "high": 3, "medium": 2, "low": 1}

# Classification thresholds
URGENT_AMOUNT = 100_000
HIGH_AMOUNT = 50_000
MEDIUM_AMOUNT = 20_000
APPROVAL_AMOUNT = 75_000
GROUP_ROOM_COUNT = 3
GROUP_ADULTS = 6
LARGE_GROUP_ROOM_COUNT = 10
