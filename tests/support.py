"""Shared fakes and builders for the test-suite."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Optional

import pytz

from geo_attendance.attendance.model import AttendanceRecord
from geo_attendance.core.exceptions import AlreadyCheckedIn
from geo_attendance.location.model import LocationSample, RecordedLocation
from geo_attendance.users.model import User

IST = pytz.timezone("Asia/Kolkata")


def ist(y, m, d, hh=0, mm=0, ss=0) -> datetime:
    return IST.localize(datetime(y, m, d, hh, mm, ss))


def sample(lat=12.9716, lon=77.5946, accuracy=4.0, at: Optional[datetime] = None) -> LocationSample:
    at = at or ist(2024, 3, 1, 9, 0)
    return LocationSample(
        latitude=lat,
        longitude=lon,
        accuracy_meters=accuracy,
        captured_at_epoch_ms=int(at.timestamp() * 1000),
    )


@dataclass
class InMemoryUsers:
    users_by_username: dict[str, User]

    def get_by_username(self, username: str) -> Optional[User]:
        return self.users_by_username.get(username)


class InMemoryAttendance:
    """Dict-backed store mirroring the MySQL unique key, conditional update and revision counter."""

    def __init__(self):
        self._by_user_date: dict[tuple[str, date], AttendanceRecord] = {}
        self._id = 0
        self._revision = 0
        self._guard = threading.Lock()
        self.inserts = 0

    def get_for_user_and_date(self, username: str, work_date: date) -> Optional[AttendanceRecord]:
        return self._by_user_date.get((username, work_date))

    def get_latest_for_user(self, username: str) -> Optional[AttendanceRecord]:
        items = [r for r in self._by_user_date.values() if r.username == username]
        return max(items, key=lambda r: r.work_date, default=None)

    def get_recent_for_user(self, username: str, since: date):
        items = [r for r in self._by_user_date.values() if r.username == username and r.work_date >= since]
        items.sort(key=lambda r: r.work_date, reverse=True)
        return items

    def list_for_date(self, work_date: date, limit: int):
        items = [r for r in self._by_user_date.values() if r.work_date == work_date]
        items.sort(key=lambda r: r.updated_at, reverse=True)
        return items[:limit]

    def list_updated_since(self, cursor: Optional[int], limit: int):
        items = [r for r in self._by_user_date.values() if r.revision > (cursor or 0)]
        items.sort(key=lambda r: r.revision)
        return items[:limit]

    def latest_revision(self) -> int:
        return max((r.revision for r in self._by_user_date.values()), default=0)

    def create_checkin(self, *, username: str, work_date: date, check_in_time: datetime, location: RecordedLocation):
        with self._guard:
            if (username, work_date) in self._by_user_date:
                raise AlreadyCheckedIn("Attendance already marked for today")
            self._id += 1
            self._revision += 1
            self.inserts += 1
            rec = AttendanceRecord(
                attendance_id=self._id,
                username=username,
                work_date=work_date,
                check_in_time=check_in_time,
                check_out_time=None,
                updated_at=check_in_time,
                check_in_location=location,
                revision=self._revision,
            )
            self._by_user_date[(username, work_date)] = rec
            return rec

    def update_checkout(
        self,
        *,
        username: str,
        work_date: date,
        check_out_time: datetime,
        committed_at: datetime,
        location: RecordedLocation,
    ):
        with self._guard:
            rec = self._by_user_date.get((username, work_date))
            if rec is None or rec.check_in_time is None or rec.check_out_time is not None:
                return None
            self._revision += 1
            rec = replace(
                rec,
                check_out_time=check_out_time,
                check_out_location=location,
                updated_at=committed_at,
                revision=self._revision,
            )
            self._by_user_date[(username, work_date)] = rec
            return rec


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

