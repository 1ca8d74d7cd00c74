from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional, Sequence

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import AlreadyCheckedIn, ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, to_db_datetime
from ..location.model import LocationSample, RecordedLocation
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, username, work_date,
    check_in_time, check_in_latitude, check_in_longitude, check_in_accuracy, check_in_captured_at, check_in_address,
    check_out_time, check_out_latitude, check_out_longitude, check_out_accuracy, check_out_captured_at, check_out_address,
    updated_at, revision
"""


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, tz):
        self._conn_factory = conn_factory
        self._tz = tz

    def get_for_user_and_date(self, username: str, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            return self._select_one(cur, username, work_date)

    def get_latest_for_user(self, username: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE username=%s
                ORDER BY work_date DESC
                LIMIT 1
                """,
                (username,),
            )
            r = fetchone(cur)
            return self._to_record(r) if r else None

    def get_recent_for_user(self, username: str, since: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE username=%s AND work_date >= %s
                ORDER BY work_date DESC
                """,
                (username, since),
            )
            return [self._to_record(r) for r in fetchall(cur)]

    def list_for_date(self, work_date: date, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE work_date=%s
                ORDER BY updated_at DESC
                LIMIT %s
                """,
                (work_date, int(limit)),
            )
            return [self._to_record(r) for r in fetchall(cur)]

    def list_updated_since(self, cursor: Optional[int], limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE revision > %s
                ORDER BY revision ASC
                LIMIT %s
                """,
                (int(cursor or 0), int(limit)),
            )
            return [self._to_record(r) for r in fetchall(cur)]

    def latest_revision(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COALESCE(MAX(revision), 0) AS revision FROM attendance_records")
            r = fetchone(cur)
            return int(r["revision"]) if r else 0

    def create_checkin(
        self,
        *,
        username: str,
        work_date: date,
        check_in_time: datetime,
        location: RecordedLocation,
    ) -> AttendanceRecord:
        s = location.sample
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(
                        username, work_date, check_in_time,
                        check_in_latitude, check_in_longitude, check_in_accuracy, check_in_captured_at, check_in_address,
                        updated_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        username,
                        work_date,
                        to_db_datetime(check_in_time),
                        s.latitude,
                        s.longitude,
                        s.accuracy_meters,
                        s.captured_at_epoch_ms,
                        location.address,
                        to_db_datetime(check_in_time),
                    ),
                )
                attendance_id = int(cur.lastrowid)
                revision = self._next_revision(cur)
                cur.execute(
                    "UPDATE attendance_records SET revision=%s WHERE attendance_id=%s", (revision, attendance_id)
                )
        except mysql.connector.IntegrityError as e:
            if e.errno == errorcode.ER_DUP_ENTRY:
                raise AlreadyCheckedIn("Attendance already marked for today") from e
            if e.errno in (errorcode.ER_NO_REFERENCED_ROW, errorcode.ER_NO_REFERENCED_ROW_2):
                raise ValidationError(f"Unknown user: {username}") from e
            raise

        return AttendanceRecord(
            attendance_id=attendance_id,
            username=username,
            work_date=work_date,
            check_in_time=check_in_time,
            check_out_time=None,
            updated_at=check_in_time,
            check_in_location=location,
            revision=revision,
        )

    def update_checkout(
        self,
        *,
        username: str,
        work_date: date,
        check_out_time: datetime,
        committed_at: datetime,
        location: RecordedLocation,
    ) -> Optional[AttendanceRecord]:
        s = location.sample
        with db_cursor(self._conn_factory) as (_, cur):
            # Compare-and-swap: only a checked-in, not yet checked-out row is updated.
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s,
                    check_out_latitude=%s, check_out_longitude=%s, check_out_accuracy=%s,
                    check_out_captured_at=%s, check_out_address=%s,
                    updated_at=%s
                WHERE username=%s AND work_date=%s
                  AND check_in_time IS NOT NULL AND check_out_time IS NULL
                  AND check_in_time <= %s
                """,
                (
                    to_db_datetime(check_out_time),
                    s.latitude,
                    s.longitude,
                    s.accuracy_meters,
                    s.captured_at_epoch_ms,
                    location.address,
                    to_db_datetime(committed_at),
                    username,
                    work_date,
                    to_db_datetime(check_out_time),
                ),
            )
            if cur.rowcount < 1:
                return None
            cur.execute(
                "UPDATE attendance_records SET revision=%s WHERE username=%s AND work_date=%s",
                (self._next_revision(cur), username, work_date),
            )
            return self._select_one(cur, username, work_date)

    def _next_revision(self, cur) -> int:
        """Take the next feed revision inside the current write transaction.

        The counter row stays locked until commit, so revisions become visible in the
        order they were taken. Called after the record write to keep that lock short.
        """

        cur.execute("UPDATE attendance_revision SET revision = LAST_INSERT_ID(revision + 1) WHERE id = 1")
        cur.execute("SELECT LAST_INSERT_ID() AS revision")
        return int(fetchone(cur)["revision"])

    def _select_one(self, cur, username: str, work_date: date) -> Optional[AttendanceRecord]:
        cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance_records
            WHERE username=%s AND work_date=%s
            """,
            (username, work_date),
        )
        r = fetchone(cur)
        return self._to_record(r) if r else None

    def _to_record(self, r: dict[str, Any]) -> AttendanceRecord:
        return AttendanceRecord(
            attendance_id=int(r["attendance_id"]),
            username=r["username"],
            work_date=r["work_date"],
            check_in_time=from_db_datetime(r.get("check_in_time"), self._tz),
            check_out_time=from_db_datetime(r.get("check_out_time"), self._tz),
            updated_at=from_db_datetime(r["updated_at"], self._tz),
            check_in_location=_location(r, "check_in"),
            check_out_location=_location(r, "check_out"),
            revision=int(r.get("revision") or 0),
        )


def _location(r: dict[str, Any], prefix: str) -> Optional[RecordedLocation]:
    lat = r.get(f"{prefix}_latitude")
    lon = r.get(f"{prefix}_longitude")
    if lat is None or lon is None:
        return None
    return RecordedLocation(
        sample=LocationSample(
            latitude=float(lat),
            longitude=float(lon),
            accuracy_meters=float(r.get(f"{prefix}_accuracy") or 0.0),
            captured_at_epoch_ms=int(r.get(f"{prefix}_captured_at") or 0),
        ),
        address=r.get(f"{prefix}_address"),
    )
