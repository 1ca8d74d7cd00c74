from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from ..common.validators import require_float, require_in_range, require_non_negative
from ..core import constants


@dataclass(frozen=True)
class LocationSample:
    """Một lần đọc vị trí từ thiết bị (immutable)."""

    latitude: float
    longitude: float
    accuracy_meters: float
    captured_at_epoch_ms: int

    @classmethod
    def create(
        cls,
        *,
        latitude: Any,
        longitude: Any,
        accuracy_meters: Any,
        captured_at_epoch_ms: int,
        field_prefix: str = "",
    ) -> "LocationSample":
        """Validate raw input (e.g. a JSON body) into a sample.

        ``field_prefix`` only shapes error messages, e.g. ``checkIn`` -> ``checkInLatitude``.
        """

        def name(field: str) -> str:
            return f"{field_prefix}{field[0].upper()}{field[1:]}" if field_prefix else field

        lat = require_in_range(require_float(latitude, name("latitude")), name("latitude"), -90, 90)
        lon = require_in_range(require_float(longitude, name("longitude")), name("longitude"), -180, 180)
        acc = require_non_negative(require_float(accuracy_meters, name("accuracy")), name("accuracy"))
        return cls(latitude=lat, longitude=lon, accuracy_meters=acc, captured_at_epoch_ms=int(captured_at_epoch_ms))

    def with_coordinates(self, latitude: float, longitude: float) -> "LocationSample":
        return LocationSample(
            latitude=latitude,
            longitude=longitude,
            accuracy_meters=self.accuracy_meters,
            captured_at_epoch_ms=self.captured_at_epoch_ms,
        )

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy_meters,
            "capturedAt": self.captured_at_epoch_ms,
        }


@dataclass(frozen=True)
class RecordedLocation:
    sample: LocationSample
    address: Optional[str] = None


@dataclass(frozen=True)
class RetryPolicy:
    """How hard the sampler tries before settling for the best fix it has."""

    max_attempts: int = constants.DEFAULT_LOCATION_MAX_ATTEMPTS
    per_attempt_timeout: float = constants.DEFAULT_LOCATION_TIMEOUT_SECONDS
    early_exit_accuracy: float = constants.DEFAULT_EARLY_EXIT_ACCURACY_METERS

    def __post_init__(self) -> None:
        if int(self.max_attempts) < 1:
            raise ValueError("max_attempts must be >= 1")
        if float(self.per_attempt_timeout) <= 0:
            raise ValueError("per_attempt_timeout must be > 0")
        if float(self.early_exit_accuracy) < 0:
            raise ValueError("early_exit_accuracy must be >= 0")

    def is_good_enough(self, sample: Optional[LocationSample]) -> bool:
        return sample is not None and sample.accuracy_meters <= self.early_exit_accuracy

    @staticmethod
    def better(best: Optional[LocationSample], candidate: LocationSample) -> LocationSample:
        if best is None or candidate.accuracy_meters < best.accuracy_meters:
            return candidate
        return best
