"""Per (username, date) attendance lifecycle: ABSENT -> CHECKED_IN -> CHECKED_OUT.

CHECKED_OUT is terminal. Functions here are pure; atomicity of check-then-write is the
service's and the store's job.
"""

from __future__ import annotations

from typing import Optional

from ..core.enums import AttendanceState
from ..core.exceptions import AlreadyCheckedIn, AlreadyCheckedOut, NotCheckedIn
from .model import AttendanceRecord, AttendanceStatusView


def state_of(record: Optional[AttendanceRecord]) -> AttendanceState:
    if record is None or record.check_in_time is None:
        return AttendanceState.ABSENT
    if record.check_out_time is None:
        return AttendanceState.CHECKED_IN
    return AttendanceState.CHECKED_OUT


def ensure_can_check_in(state: AttendanceState) -> None:
    if state != AttendanceState.ABSENT:
        raise AlreadyCheckedIn("Attendance already marked for today")


def ensure_can_check_out(state: AttendanceState) -> None:
    if state == AttendanceState.ABSENT:
        raise NotCheckedIn("No check-in record found for today")
    if state == AttendanceState.CHECKED_OUT:
        raise AlreadyCheckedOut("Already checked out today")


def project_status(record: Optional[AttendanceRecord]) -> AttendanceStatusView:
    if record is None:
        return AttendanceStatusView()
    return AttendanceStatusView(
        checked_in=record.check_in_time is not None,
        checked_out=record.check_out_time is not None,
        check_in_time=record.check_in_time,
        check_out_time=record.check_out_time,
    )
