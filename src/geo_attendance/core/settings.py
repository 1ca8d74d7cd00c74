from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from . import constants
from .exceptions import ValidationError


@dataclass(frozen=True)
class Geofence:
    name: str
    latitude: float
    longitude: float
    radius_meters: float


@dataclass(frozen=True)
class AttendanceSettings:
    """Tunables consumed by the attendance core, collected from the settings module."""

    org_timezone: str = constants.DEFAULT_ORG_TIMEZONE
    location_timeout_seconds: float = constants.DEFAULT_LOCATION_TIMEOUT_SECONDS
    location_max_attempts: int = constants.DEFAULT_LOCATION_MAX_ATTEMPTS
    early_exit_accuracy_meters: float = constants.DEFAULT_EARLY_EXIT_ACCURACY_METERS
    low_accuracy_meters: float = constants.DEFAULT_LOW_ACCURACY_METERS
    rapid_movement_mps: float = constants.DEFAULT_RAPID_MOVEMENT_MPS
    work_end_hour: int = constants.DEFAULT_WORK_END_HOUR
    integrity_policy: str = "permissive"
    geofences: tuple[Geofence, ...] = field(default_factory=tuple)
    mapbox_access_token: str | None = None
    date_grace_seconds: int = constants.DEFAULT_DATE_GRACE_SECONDS
    clock_skew_warn_seconds: int = constants.DEFAULT_CLOCK_SKEW_WARN_SECONDS
    sse_poll_seconds: float = constants.DEFAULT_SSE_POLL_SECONDS

    @classmethod
    def from_module(cls, settings: Any) -> "AttendanceSettings":
        def get(name: str, default):
            return getattr(settings, name, default)

        return cls(
            org_timezone=str(get("ORG_TIMEZONE", constants.DEFAULT_ORG_TIMEZONE)),
            location_timeout_seconds=float(get("LOCATION_TIMEOUT_SECONDS", constants.DEFAULT_LOCATION_TIMEOUT_SECONDS)),
            location_max_attempts=int(get("LOCATION_MAX_ATTEMPTS", constants.DEFAULT_LOCATION_MAX_ATTEMPTS)),
            early_exit_accuracy_meters=float(
                get("EARLY_EXIT_ACCURACY_METERS", constants.DEFAULT_EARLY_EXIT_ACCURACY_METERS)
            ),
            low_accuracy_meters=float(get("LOW_ACCURACY_METERS", constants.DEFAULT_LOW_ACCURACY_METERS)),
            rapid_movement_mps=float(get("RAPID_MOVEMENT_MPS", constants.DEFAULT_RAPID_MOVEMENT_MPS)),
            work_end_hour=int(get("WORK_END_HOUR", constants.DEFAULT_WORK_END_HOUR)),
            integrity_policy=str(get("INTEGRITY_POLICY", "permissive")).lower(),
            geofences=parse_geofences(get("GEOFENCES", None)),
            mapbox_access_token=get("MAPBOX_ACCESS_TOKEN", None) or None,
            date_grace_seconds=int(get("DATE_GRACE_SECONDS", constants.DEFAULT_DATE_GRACE_SECONDS)),
            clock_skew_warn_seconds=int(get("CLOCK_SKEW_WARN_SECONDS", constants.DEFAULT_CLOCK_SKEW_WARN_SECONDS)),
            sse_poll_seconds=float(get("SSE_POLL_SECONDS", constants.DEFAULT_SSE_POLL_SECONDS)),
        )


def parse_geofences(value: Any) -> tuple[Geofence, ...]:
    """Accept a JSON string or a list of dicts ``{name, latitude, longitude, radius}``."""

    if not value:
        return ()
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise ValidationError(f"GEOFENCES is not valid JSON: {e}") from e

    if not isinstance(value, (list, tuple)):
        raise ValidationError("GEOFENCES must be a list of geofences")

    fences = []
    for i, item in enumerate(value):
        try:
            fences.append(
                Geofence(
                    name=str(item.get("name") or f"geofence-{i + 1}"),
                    latitude=float(item["latitude"]),
                    longitude=float(item["longitude"]),
                    radius_meters=float(item.get("radius_meters", item.get("radius"))),
                )
            )
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid geofence #{i + 1}: {item!r}") from e
    return tuple(fences)
