from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_in
from ..core.enums import AttendanceAction
from ..core.exceptions import DomainError, InfrastructureError, LocationError, LocationTimeout
from ..integrity.checker import IntegrityChecker, IntegritySignal
from ..location.model import LocationSample
from ..location.sampler import LocationSampler
from .api_client import AttendanceApiClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkOutcome:
    """Result of one marking attempt; failures are values, not exceptions.

    On success ``sample`` is the accepted sample the caller passes as
    ``previous_sample`` next time. ``retry_action`` is set only after a location timeout.
    """

    action: AttendanceAction
    success: bool
    message: str
    sample: Optional[LocationSample] = None
    signal: Optional[IntegritySignal] = None
    error: Optional[Exception] = None
    retry_action: Optional[AttendanceAction] = None


class AttendanceMarker:
    def __init__(
        self,
        sampler: LocationSampler,
        checker: IntegrityChecker,
        api: AttendanceApiClient,
        *,
        tz,
        clock: Callable[[], datetime] | None = None,
    ):
        self._sampler = sampler
        self._checker = checker
        self._api = api
        self._clock = clock or (lambda: now_in(tz))

    async def mark(
        self,
        action: AttendanceAction,
        username: str,
        *,
        previous_sample: Optional[LocationSample] = None,
    ) -> MarkOutcome:
        """Acquire a sample, evaluate it locally and submit the transition.

        Cancellation is clean only before submit. Once the request runs in
        ``asyncio.to_thread`` cancelling the task does not stop the HTTP call, so the
        server may still commit it; read ``api.status`` afterwards to learn the outcome.
        """

        try:
            sample = await self._sampler.acquire()
        except LocationTimeout as e:
            return MarkOutcome(action=action, success=False, message=str(e), error=e, retry_action=action)
        except LocationError as e:
            logger.error("Geolocation error: %s", e)
            return MarkOutcome(action=action, success=False, message=str(e), error=e)

        signal = self._checker.evaluate(sample, previous_sample)
        if signal.flags.low_accuracy:
            logger.warning("Low accuracy location: %.1fm", signal.accuracy_meters)
        if signal.flags.rapid_movement:
            logger.warning("Rapid movement detected: %.1f m/s", signal.implied_speed_mps)

        now = self._clock()
        try:
            data = await asyncio.to_thread(
                self._api.mark,
                action,
                username=username,
                work_date=now.date(),
                sample=sample,
                client_time=now,
            )
        except (DomainError, InfrastructureError) as e:
            return MarkOutcome(action=action, success=False, message=str(e), sample=sample, signal=signal, error=e)

        message = data.get("message") or f"{action.value} successful"
        return MarkOutcome(action=action, success=True, message=message, sample=sample, signal=signal)

    async def retry(
        self,
        outcome: MarkOutcome,
        username: str,
        *,
        previous_sample: Optional[LocationSample] = None,
    ) -> MarkOutcome:
        if outcome.retry_action is None:
            raise ValueError("outcome is not retryable")
        return await self.mark(outcome.retry_action, username, previous_sample=previous_sample)
