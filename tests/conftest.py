from __future__ import annotations

from datetime import datetime

import pytest

from geo_attendance.attendance.service import AttendanceService
from geo_attendance.container import build_services
from geo_attendance.core.settings import AttendanceSettings
from geo_attendance.sync.service import StatusSync
from geo_attendance.users.model import User
from support import FixedClock, InMemoryAttendance, InMemoryUsers, ist


@pytest.fixture
def fixed_now() -> datetime:
    return ist(2024, 3, 1, 9, 5)


@pytest.fixture
def clock(fixed_now) -> FixedClock:
    return FixedClock(fixed_now)


@pytest.fixture
def users_repo() -> InMemoryUsers:
    return InMemoryUsers(
        {
            "alice": User(username="alice", full_name="Alice"),
            "bob": User(username="bob", full_name="Bob"),
            "carol": User(username="carol", full_name="Carol", is_active=False),
        }
    )


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def settings() -> AttendanceSettings:
    return AttendanceSettings()


@pytest.fixture
def service(attendance_repo, users_repo, settings, clock) -> AttendanceService:
    return AttendanceService(attendance_repo, users_repo, StatusSync(attendance_repo), settings=settings, clock=clock)


@pytest.fixture
def container(attendance_repo, users_repo, settings, clock):
    return build_services(settings=settings, users_repo=users_repo, attendance_repo=attendance_repo, clock=clock)


@pytest.fixture
def app(container):
    from geo_attendance.main import create_app

    return create_app(container, settings_module="config.testing")


@pytest.fixture
def client(app):
    return app.test_client()
