from __future__ import annotations

from typing import Optional, Sequence

from ..core.exceptions import OutsideGeofence
from ..core.settings import Geofence
from ..location.model import LocationSample
from .geo import is_within_radius


def containing_geofence(sample: LocationSample, geofences: Sequence[Geofence]) -> Optional[Geofence]:
    for fence in geofences:
        if is_within_radius(sample.latitude, sample.longitude, fence.latitude, fence.longitude, fence.radius_meters):
            return fence
    return None


def ensure_inside_geofence(sample: LocationSample, geofences: Sequence[Geofence]) -> Optional[Geofence]:
    """No configured geofences means no restriction."""

    if not geofences:
        return None
    fence = containing_geofence(sample, geofences)
    if fence is None:
        raise OutsideGeofence("You are outside the permitted geofence area.")
    return fence
