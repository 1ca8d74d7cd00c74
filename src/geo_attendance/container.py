from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import org_timezone
from .core.settings import AttendanceSettings
from .database.connection import DBConfig, DatabaseConnection
from .geocoding.mapbox import MapboxGeocoder, ReverseGeocoder
from .integrity.checker import IntegrityChecker
from .integrity.factory import IntegrityPolicyFactory
from .sync.service import StatusSync
from .users.mysql_user_repository import MySQLUserRepository
from .users.repository import UserRepository


@dataclass(frozen=True)
class Container:
    settings: AttendanceSettings

    users_repo: UserRepository
    attendance_repo: AttendanceRepository

    status_sync: StatusSync
    attendance_service: AttendanceService

    conn: Optional[DatabaseConnection] = None


def build_services(
    *,
    settings: AttendanceSettings,
    users_repo: UserRepository,
    attendance_repo: AttendanceRepository,
    geocoder: Optional[ReverseGeocoder] = None,
    conn: Optional[DatabaseConnection] = None,
    clock=None,
) -> Container:
    """Wire services over the given repositories (MySQL in production, fakes in tests)."""

    status_sync = StatusSync(attendance_repo)
    attendance_service = AttendanceService(
        attendance_repo,
        users_repo,
        status_sync,
        settings=settings,
        checker=IntegrityChecker(
            low_accuracy_meters=settings.low_accuracy_meters,
            rapid_movement_mps=settings.rapid_movement_mps,
        ),
        policy=IntegrityPolicyFactory().for_name(settings.integrity_policy),
        geocoder=geocoder,
        clock=clock,
    )
    return Container(
        settings=settings,
        users_repo=users_repo,
        attendance_repo=attendance_repo,
        status_sync=status_sync,
        attendance_service=attendance_service,
        conn=conn,
    )


def build_container(*, db_config: dict, settings: AttendanceSettings) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))
    tz = org_timezone(settings.org_timezone)

    geocoder = MapboxGeocoder(settings.mapbox_access_token) if settings.mapbox_access_token else None

    return build_services(
        settings=settings,
        users_repo=MySQLUserRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn, tz=tz),
        geocoder=geocoder,
        conn=conn,
    )
