from __future__ import annotations

from typing import Optional

from ..core.enums import DayStatus
from .model import AttendanceRecord


def classify_day(record: Optional[AttendanceRecord], *, work_end_hour: int) -> DayStatus:
    """Dashboard badge for one day.

    A check-out at or after ``work_end_hour`` (organisation local time) counts as LATE.
    """

    if record is None or record.check_in_time is None:
        return DayStatus.NOT_IN
    if record.check_out_time is None:
        return DayStatus.NO_CHECK_OUT
    if record.check_out_time.hour >= int(work_end_hour):
        return DayStatus.LATE
    return DayStatus.DONE


def worked_minutes(record: AttendanceRecord) -> Optional[int]:
    if record.check_in_time is None or record.check_out_time is None:
        return None
    return int((record.check_out_time - record.check_in_time).total_seconds() // 60)
