from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from ..common.datetime_utils import now_in, org_timezone, since_days
from ..common.locks import KeyedLocks
from ..common.validators import require_non_empty
from ..core import constants
from ..core.enums import AttendanceAction
from ..core.exceptions import NotCheckedIn, ValidationError
from ..core.settings import AttendanceSettings
from ..geocoding.mapbox import ReverseGeocoder
from ..integrity.checker import IntegrityChecker, IntegritySignal
from ..integrity.geofence import ensure_inside_geofence
from ..integrity.policies.base import IntegrityPolicy, PolicyContext
from ..integrity.policies.permissive_policy import PermissivePolicy
from ..location.model import LocationSample, RecordedLocation
from ..sync.service import StatusSync
from ..users.repository import UserRepository
from .classification import classify_day, worked_minutes
from .model import AttendanceRecord, AttendanceStatusView, HistoryRow, TransitionResult
from .repository import AttendanceRepository
from .state_machine import ensure_can_check_in, ensure_can_check_out, project_status, state_of

logger = logging.getLogger(__name__)


class AttendanceService:
    """Use case: advance the per-user, per-day attendance state machine.

    The precondition check and the write run under a lock held per (username, date),
    so concurrent duplicates serialize and exactly one of them wins. The store backs
    this up with its own unique key / conditional update for multi-process deployments.
    Transition times always come from the server clock.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        users: UserRepository,
        status_sync: StatusSync,
        *,
        settings: AttendanceSettings | None = None,
        checker: IntegrityChecker | None = None,
        policy: IntegrityPolicy | None = None,
        geocoder: ReverseGeocoder | None = None,
        locks: KeyedLocks | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._attendance = attendance
        self._users = users
        self._sync = status_sync
        self._settings = settings or AttendanceSettings()
        self._tz = org_timezone(self._settings.org_timezone)
        self._checker = checker or IntegrityChecker(
            low_accuracy_meters=self._settings.low_accuracy_meters,
            rapid_movement_mps=self._settings.rapid_movement_mps,
        )
        self._policy = policy or PermissivePolicy()
        self._geocoder = geocoder
        self._locks = locks or KeyedLocks()
        self._clock = clock or (lambda: now_in(self._tz))

    @property
    def timezone(self):
        return self._tz

    def now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return self._clock().date()

    # ----- transitions -----

    def request_check_in(
        self,
        username: str,
        work_date: date | None,
        sample: LocationSample,
        *,
        client_time: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> TransitionResult:
        username = require_non_empty(username, "username")
        received_at = now or self._clock()
        work_date = self._resolve_bucket(work_date, received_at)
        self._ensure_user(username)
        self._note_client_time(AttendanceAction.CHECKIN, username, client_time, received_at)

        # Fail fast on the cheap read before geocoding; re-checked under the lock.
        ensure_can_check_in(state_of(self._attendance.get_for_user_and_date(username, work_date)))

        latest = self._attendance.get_latest_for_user(username)
        previous = latest.last_location() if latest else None
        signal = self._admit(AttendanceAction.CHECKIN, username, sample, previous.sample if previous else None)
        location = self._recorded(sample)

        with self._locks.hold((username, work_date)):
            ensure_can_check_in(state_of(self._attendance.get_for_user_and_date(username, work_date)))
            at = now or self._clock()
            record = self._attendance.create_checkin(
                username=username,
                work_date=work_date,
                check_in_time=at,
                location=location,
            )

        logger.info("check-in accepted for %s on %s at %s", username, work_date, record.check_in_time)
        self._sync.notify(record)
        return TransitionResult(action=AttendanceAction.CHECKIN, record=record, signal=signal)

    def request_check_out(
        self,
        username: str,
        work_date: date | None,
        sample: LocationSample,
        *,
        client_time: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> TransitionResult:
        username = require_non_empty(username, "username")
        received_at = now or self._clock()
        work_date = self._resolve_bucket(work_date, received_at)
        self._ensure_user(username)
        self._note_client_time(AttendanceAction.CHECKOUT, username, client_time, received_at)

        existing = self._attendance.get_for_user_and_date(username, work_date)
        ensure_can_check_out(state_of(existing))

        previous = existing.check_in_location.sample if existing.check_in_location else None
        signal = self._admit(AttendanceAction.CHECKOUT, username, sample, previous)
        location = self._recorded(sample)

        with self._locks.hold((username, work_date)):
            current = self._attendance.get_for_user_and_date(username, work_date)
            ensure_can_check_out(state_of(current))
            at = now or self._clock()
            # The feed timestamp always moves forward, even when check-out is clamped.
            committed_at = max(at, current.updated_at + timedelta(microseconds=1))
            if at < current.check_in_time:
                logger.warning(
                    "clock went backwards for %s: check-out %s before check-in %s; using check-in time",
                    username,
                    at,
                    current.check_in_time,
                )
                at = current.check_in_time
            record = self._attendance.update_checkout(
                username=username,
                work_date=work_date,
                check_out_time=at,
                committed_at=committed_at,
                location=location,
            )
            if record is None:
                # Lost a race with another process writing the same row.
                ensure_can_check_out(state_of(self._attendance.get_for_user_and_date(username, work_date)))
                raise NotCheckedIn("No check-in record found for today")

        logger.info("check-out accepted for %s on %s at %s", username, work_date, record.check_out_time)
        self._sync.notify(record)
        return TransitionResult(action=AttendanceAction.CHECKOUT, record=record, signal=signal)

    # ----- reads -----

    def get_status(self, username: str, work_date: date | None = None) -> AttendanceStatusView:
        username = require_non_empty(username, "username")
        record = self._attendance.get_for_user_and_date(username, work_date or self.today())
        return project_status(record)

    def get_history(self, username: str, *, days: int = constants.DEFAULT_HISTORY_DAYS) -> list[HistoryRow]:
        username = require_non_empty(username, "username")
        if int(days) < 0:
            raise ValidationError("days must not be negative")
        records = self._attendance.get_recent_for_user(username, since_days(self.today(), days))
        return [
            HistoryRow(
                record=r,
                status=classify_day(r, work_end_hour=self._settings.work_end_hour),
                worked_minutes=worked_minutes(r),
            )
            for r in records
        ]

    def get_today(self, *, limit: int = constants.DEFAULT_TODAY_LIMIT) -> list[AttendanceRecord]:
        return list(self._attendance.list_for_date(self.today(), int(limit)))

    # ----- helpers -----

    def _resolve_bucket(self, requested: date | None, received_at: datetime) -> date:
        """The bucket is the server's organisational date.

        A request for the previous day is still honoured shortly after midnight, so a
        tap at 23:59:59 that reaches us at 00:00:02 lands in the day it was made.
        """

        today = received_at.date()
        if requested is None or requested == today:
            return today

        since_midnight = received_at - received_at.replace(hour=0, minute=0, second=0, microsecond=0)
        if requested == today - timedelta(days=1) and since_midnight <= timedelta(
            seconds=self._settings.date_grace_seconds
        ):
            return requested
        raise ValidationError(f"date {requested.isoformat()} does not match the server date {today.isoformat()}")

    def _ensure_user(self, username: str) -> None:
        user = self._users.get_by_username(username)
        if not user:
            raise ValidationError(f"Unknown user: {username}")
        if not user.is_active:
            raise ValidationError(f"User {username} is not active")

    def _note_client_time(
        self,
        action: AttendanceAction,
        username: str,
        client_time: Optional[datetime],
        received_at: datetime,
    ) -> None:
        # Client-reported time is informational only.
        if client_time is None:
            return
        skew = abs((received_at - client_time).total_seconds())
        if skew > self._settings.clock_skew_warn_seconds:
            logger.warning("%s for %s: client time %s is %.0fs off server time", action.value, username, client_time, skew)

    def _admit(
        self,
        action: AttendanceAction,
        username: str,
        sample: LocationSample,
        previous: Optional[LocationSample],
    ) -> IntegritySignal:
        signal = self._checker.evaluate(sample, previous)
        self._policy.apply(signal, context=PolicyContext(username=username, action=action))
        ensure_inside_geofence(sample, self._settings.geofences)
        return signal

    def _recorded(self, sample: LocationSample) -> RecordedLocation:
        address = self._geocoder.reverse(sample.latitude, sample.longitude) if self._geocoder else None
        return RecordedLocation(sample=sample, address=address)
