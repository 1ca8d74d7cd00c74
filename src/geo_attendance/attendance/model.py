from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceAction, DayStatus
from ..integrity.checker import IntegritySignal
from ..location.model import RecordedLocation


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class AttendanceRecord:
    """Thực thể miền (domain): Bản ghi chấm công, một bản ghi cho mỗi (username, ngày)."""

    attendance_id: int
    username: str
    work_date: date
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]
    updated_at: datetime
    check_in_location: Optional[RecordedLocation] = None
    check_out_location: Optional[RecordedLocation] = None
    revision: int = 0

    def last_location(self) -> Optional[RecordedLocation]:
        return self.check_out_location or self.check_in_location

    def to_dict(self) -> dict:
        def loc(value: Optional[RecordedLocation]) -> Optional[dict]:
            if value is None:
                return None
            return {**value.sample.to_dict(), "address": value.address}

        return {
            "id": self.attendance_id,
            "username": self.username,
            "date": self.work_date.isoformat(),
            "checkInTime": _iso(self.check_in_time),
            "checkOutTime": _iso(self.check_out_time),
            "checkInLocation": loc(self.check_in_location),
            "checkOutLocation": loc(self.check_out_location),
        }


@dataclass(frozen=True)
class AttendanceStatusView:
    """Projection of one day's record; never persisted."""

    checked_in: bool = False
    checked_out: bool = False
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "checkedIn": self.checked_in,
            "checkedOut": self.checked_out,
            "checkInTime": _iso(self.check_in_time),
            "checkOutTime": _iso(self.check_out_time),
        }


@dataclass(frozen=True)
class TransitionResult:
    action: AttendanceAction
    record: AttendanceRecord
    signal: IntegritySignal

    @property
    def message(self) -> str:
        return "Check-In successful" if self.action == AttendanceAction.CHECKIN else "Check-Out successful"

    def to_dict(self) -> dict:
        return {"message": self.message, "integrity": self.signal.to_dict()}


@dataclass(frozen=True)
class HistoryRow:
    """Read-model for the history endpoint."""

    record: AttendanceRecord
    status: DayStatus
    worked_minutes: Optional[int]

    def to_dict(self) -> dict:
        return {**self.record.to_dict(), "status": self.status.value, "workedMinutes": self.worked_minutes}


@dataclass(frozen=True)
class AttendanceUpdate:
    """Feed row pushed/polled by dashboards, ordered by store revision (commit order)."""

    attendance_id: int
    work_date: date
    check_in_time: Optional[datetime]
    check_out_time: Optional[datetime]
    user_identifier: str
    committed_at: datetime
    revision: int

    @classmethod
    def from_record(cls, record: AttendanceRecord) -> "AttendanceUpdate":
        return cls(
            attendance_id=record.attendance_id,
            work_date=record.work_date,
            check_in_time=record.check_in_time,
            check_out_time=record.check_out_time,
            user_identifier=record.username,
            committed_at=record.updated_at,
            revision=record.revision,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.attendance_id,
            "date": self.work_date.isoformat(),
            "checkInTime": _iso(self.check_in_time),
            "checkOutTime": _iso(self.check_out_time),
            "userIdentifier": self.user_identifier,
            "committedAt": _iso(self.committed_at),
            "revision": self.revision,
        }
