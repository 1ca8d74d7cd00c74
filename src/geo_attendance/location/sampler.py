from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ..core.enums import PositionErrorCode
from ..core.exceptions import LocationPermissionDenied, LocationTimeout, LocationUnavailable
from .kalman import CoordinateSmoother
from .model import LocationSample, RetryPolicy
from .provider import PositionError, PositionProvider

logger = logging.getLogger(__name__)


class LocationSampler:
    """Best-of-N location acquisition.

    Attempts run one after another, each bounded by ``policy.per_attempt_timeout`` and
    each asking the provider for a fresh fix. The most accurate sample wins; the loop
    stops as soon as a sample is good enough for ``policy.early_exit_accuracy``.

    A permission error ends the acquisition at once. When no attempt produced a sample,
    ``LocationTimeout`` is raised if every attempt timed out (the caller may offer a
    manual retry), otherwise ``LocationUnavailable``.
    """

    def __init__(
        self,
        provider: PositionProvider,
        policy: RetryPolicy | None = None,
        *,
        smoother_factory: Optional[Callable[[], CoordinateSmoother]] = None,
    ):
        self._provider = provider
        self._policy = policy or RetryPolicy()
        self._smoother_factory = smoother_factory

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def acquire(self, max_attempts: int | None = None) -> LocationSample:
        attempts = int(max_attempts) if max_attempts is not None else self._policy.max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be >= 1")

        smoother = self._smoother_factory() if self._smoother_factory else None
        best: Optional[LocationSample] = None
        timeouts = 0
        failures = 0

        for attempt in range(1, attempts + 1):
            try:
                sample = await self._attempt()
            except asyncio.TimeoutError:
                timeouts += 1
                failures += 1
                logger.info("location attempt %d/%d timed out", attempt, attempts)
                continue
            except PositionError as e:
                if e.code == PositionErrorCode.PERMISSION_DENIED:
                    raise LocationPermissionDenied(
                        "Location access was denied. Please allow location access to check in/out."
                    ) from e
                failures += 1
                if e.code == PositionErrorCode.TIMEOUT:
                    timeouts += 1
                logger.info("location attempt %d/%d failed: %s", attempt, attempts, e)
                continue

            if smoother is not None:
                sample = smoother.smooth(sample)
            best = RetryPolicy.better(best, sample)
            logger.debug("location attempt %d/%d accuracy=%.1fm", attempt, attempts, sample.accuracy_meters)

            if self._policy.is_good_enough(best):
                break

        if best is not None:
            return best

        if timeouts == failures:
            raise LocationTimeout("The request to get location timed out. Please try again.")
        raise LocationUnavailable(
            "Location information is unavailable. Please ensure your device's location services are enabled."
        )

    async def _attempt(self) -> LocationSample:
        timeout = float(self._policy.per_attempt_timeout)
        return await asyncio.wait_for(
            self._provider.current_position(timeout=timeout, maximum_age=0),
            timeout=timeout,
        )
