from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..core import constants
from ..location.model import LocationSample
from .geo import haversine_distance


@dataclass(frozen=True)
class IntegrityFlags:
    low_accuracy: bool = False
    rapid_movement: bool = False

    @property
    def any(self) -> bool:
        return self.low_accuracy or self.rapid_movement


@dataclass(frozen=True)
class IntegritySignal:
    """Advisory annotation attached to one transition attempt (not persisted)."""

    accuracy_meters: float
    flags: IntegrityFlags
    implied_speed_mps: Optional[float] = None
    distance_meters: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "accuracyMeters": self.accuracy_meters,
            "impliedSpeedMetersPerSecond": self.implied_speed_mps,
            "distanceMeters": self.distance_meters,
            "flags": {
                "lowAccuracy": self.flags.low_accuracy,
                "rapidMovement": self.flags.rapid_movement,
            },
        }


class IntegrityChecker:
    """Plausibility checks for a location sample.

    Pure: the caller supplies the previously accepted sample, nothing is remembered here.
    """

    def __init__(
        self,
        *,
        low_accuracy_meters: float = constants.DEFAULT_LOW_ACCURACY_METERS,
        rapid_movement_mps: float = constants.DEFAULT_RAPID_MOVEMENT_MPS,
    ):
        self._low_accuracy_meters = float(low_accuracy_meters)
        self._rapid_movement_mps = float(rapid_movement_mps)

    def evaluate(self, sample: LocationSample, previous: Optional[LocationSample] = None) -> IntegritySignal:
        low_accuracy = sample.accuracy_meters > self._low_accuracy_meters

        if previous is None:
            return IntegritySignal(
                accuracy_meters=sample.accuracy_meters,
                flags=IntegrityFlags(low_accuracy=low_accuracy),
            )

        distance = haversine_distance(previous.latitude, previous.longitude, sample.latitude, sample.longitude)
        elapsed_s = (sample.captured_at_epoch_ms - previous.captured_at_epoch_ms) / 1000
        speed = implied_speed(distance, elapsed_s)

        return IntegritySignal(
            accuracy_meters=sample.accuracy_meters,
            implied_speed_mps=speed,
            distance_meters=distance,
            flags=IntegrityFlags(
                low_accuracy=low_accuracy,
                rapid_movement=speed > self._rapid_movement_mps,
            ),
        )


def implied_speed(distance_m: float, elapsed_s: float) -> float:
    # Moving any distance in no time (or backwards in time) is treated as infinitely fast.
    if elapsed_s <= 0:
        return 0.0 if distance_m == 0 else math.inf
    return distance_m / elapsed_s
