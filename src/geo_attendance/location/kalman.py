from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .model import LocationSample


@dataclass
class KalmanFilter:
    """Scalar Kalman filter (constant model, no control input).

    ``process_noise`` (R) and ``measurement_noise`` (Q) default to the values the web
    client tuned for coordinate smoothing.
    """

    process_noise: float = 0.01
    measurement_noise: float = 3.0
    _estimate: Optional[float] = None
    _covariance: float = 0.0

    def filter(self, measurement: float) -> float:
        if self._estimate is None:
            self._estimate = measurement
            self._covariance = self.measurement_noise
            return self._estimate

        predicted_cov = self._covariance + self.process_noise
        gain = predicted_cov / (predicted_cov + self.measurement_noise)
        self._estimate = self._estimate + gain * (measurement - self._estimate)
        self._covariance = predicted_cov - gain * predicted_cov
        return self._estimate


class CoordinateSmoother:
    """Smooths latitude and longitude of successive samples of one acquisition."""

    def __init__(self, process_noise: float = 0.01, measurement_noise: float = 3.0):
        self._lat = KalmanFilter(process_noise, measurement_noise)
        self._lon = KalmanFilter(process_noise, measurement_noise)

    def smooth(self, sample: LocationSample) -> LocationSample:
        return sample.with_coordinates(self._lat.filter(sample.latitude), self._lon.filter(sample.longitude))
