from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..location.model import RecordedLocation
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_for_user_and_date(self, username: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_latest_for_user(self, username: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_recent_for_user(self, username: str, since: date) -> Sequence[AttendanceRecord]:
        """Records with work_date >= since, newest first."""

        raise NotImplementedError

    def list_for_date(self, work_date: date, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_updated_since(self, cursor: Optional[int], limit: int) -> Sequence[AttendanceRecord]:
        """Records whose revision is greater than ``cursor``, in revision (commit) order."""

        raise NotImplementedError

    def latest_revision(self) -> int:
        raise NotImplementedError

    def create_checkin(
        self,
        *,
        username: str,
        work_date: date,
        check_in_time: datetime,
        location: RecordedLocation,
    ) -> AttendanceRecord:
        """Insert the day's record; raise AlreadyCheckedIn if one exists."""

        raise NotImplementedError

    def update_checkout(
        self,
        *,
        username: str,
        work_date: date,
        check_out_time: datetime,
        committed_at: datetime,
        location: RecordedLocation,
    ) -> Optional[AttendanceRecord]:
        """Set check-out only if checked in and not yet checked out; None when not applied.

        ``committed_at`` becomes ``updated_at``; it may be later than ``check_out_time``.
        """

        raise NotImplementedError
