"""Attendance tunables shared by every environment, overridable through the environment."""

import os

ORG_TIMEZONE = os.getenv("ORG_TIMEZONE", "Asia/Kolkata")

# Client-side location sampling
LOCATION_TIMEOUT_SECONDS = float(os.getenv("LOCATION_TIMEOUT_SECONDS", "20"))
LOCATION_MAX_ATTEMPTS = int(os.getenv("LOCATION_MAX_ATTEMPTS", "3"))
EARLY_EXIT_ACCURACY_METERS = float(os.getenv("EARLY_EXIT_ACCURACY_METERS", "10"))

# Integrity checks
LOW_ACCURACY_METERS = float(os.getenv("LOW_ACCURACY_METERS", "5"))
RAPID_MOVEMENT_MPS = float(os.getenv("RAPID_MOVEMENT_MPS", "30"))
# "permissive" only logs flags; "strict" rejects rapid movement
INTEGRITY_POLICY = os.getenv("INTEGRITY_POLICY", "permissive")
# JSON list: [{"name": "HQ", "latitude": 12.97, "longitude": 77.59, "radius": 200}]
GEOFENCES = os.getenv("GEOFENCES", "")

WORK_END_HOUR = int(os.getenv("WORK_END_HOUR", "18"))
DATE_GRACE_SECONDS = int(os.getenv("DATE_GRACE_SECONDS", "120"))
CLOCK_SKEW_WARN_SECONDS = int(os.getenv("CLOCK_SKEW_WARN_SECONDS", "300"))
SSE_POLL_SECONDS = float(os.getenv("SSE_POLL_SECONDS", "5"))

MAPBOX_ACCESS_TOKEN = os.getenv("MAPBOX_ACCESS_TOKEN", "")
