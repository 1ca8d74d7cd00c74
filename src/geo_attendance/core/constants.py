"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_ORG_TIMEZONE = "Asia/Kolkata"

DEFAULT_LOCATION_TIMEOUT_SECONDS = 20.0
DEFAULT_LOCATION_MAX_ATTEMPTS = 3
DEFAULT_EARLY_EXIT_ACCURACY_METERS = 10.0

DEFAULT_LOW_ACCURACY_METERS = 5.0
DEFAULT_RAPID_MOVEMENT_MPS = 30.0

DEFAULT_WORK_END_HOUR = 18
DEFAULT_HISTORY_DAYS = 30
DEFAULT_TODAY_LIMIT = 5

DEFAULT_DATE_GRACE_SECONDS = 120
DEFAULT_CLOCK_SKEW_WARN_SECONDS = 300
DEFAULT_SSE_POLL_SECONDS = 5.0

EARTH_RADIUS_METERS = 6_371_000
