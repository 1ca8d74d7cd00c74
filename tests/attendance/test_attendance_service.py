import logging
import threading
from dataclasses import replace
from datetime import date

import pytest

from geo_attendance.attendance.service import AttendanceService
from geo_attendance.container import build_services
from geo_attendance.core.enums import DayStatus
from geo_attendance.core.exceptions import (
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    IntegrityRejected,
    NotCheckedIn,
    OutsideGeofence,
    ValidationError,
)
from geo_attendance.core.settings import Geofence
from geo_attendance.location.model import RecordedLocation
from geo_attendance.sync.service import StatusSync
from support import InMemoryAttendance, ist, sample

MARCH_1 = date(2024, 3, 1)


def test_alice_full_day(service, clock):
    result = service.request_check_in("alice", MARCH_1, sample(accuracy=4))

    assert result.message == "Check-In successful"
    assert result.record.check_in_time == ist(2024, 3, 1, 9, 5)
    assert not result.signal.flags.any
    status = service.get_status("alice", MARCH_1)
    assert status.checked_in and not status.checked_out

    clock.now = ist(2024, 3, 1, 17, 30)
    result = service.request_check_out("alice", MARCH_1, sample(accuracy=6, at=clock.now))

    assert result.message == "Check-Out successful"
    assert result.signal.flags.low_accuracy
    assert result.record.check_out_time == ist(2024, 3, 1, 17, 30)
    assert result.record.check_out_time >= result.record.check_in_time

    clock.now = ist(2024, 3, 1, 9, 10)
    with pytest.raises(AlreadyCheckedIn):
        service.request_check_in("alice", MARCH_1, sample())


def test_second_check_in_leaves_record_untouched(service, attendance_repo):
    first = service.request_check_in("alice", MARCH_1, sample())

    with pytest.raises(AlreadyCheckedIn):
        service.request_check_in("alice", MARCH_1, sample(lat=13.0))

    assert attendance_repo.inserts == 1
    assert attendance_repo.get_for_user_and_date("alice", MARCH_1) == first.record


def test_check_out_without_check_in(service):
    with pytest.raises(NotCheckedIn):
        service.request_check_out("alice", MARCH_1, sample())


def test_check_out_twice(service):
    service.request_check_in("alice", MARCH_1, sample())
    service.request_check_out("alice", MARCH_1, sample())

    with pytest.raises(AlreadyCheckedOut):
        service.request_check_out("alice", MARCH_1, sample())


def test_check_out_never_precedes_check_in(service, clock, caplog):
    service.request_check_in("alice", MARCH_1, sample())
    clock.now = ist(2024, 3, 1, 9, 0)

    with caplog.at_level(logging.WARNING):
        result = service.request_check_out("alice", MARCH_1, sample())

    assert result.record.check_out_time == result.record.check_in_time
    assert any("clock went backwards" in r.getMessage() for r in caplog.records)


def test_concurrent_check_ins_produce_one_record(service, attendance_repo):
    barrier = threading.Barrier(8)
    outcomes = []

    def attempt():
        barrier.wait()
        try:
            service.request_check_in("bob", MARCH_1, sample())
            outcomes.append("ok")
        except AlreadyCheckedIn:
            outcomes.append("conflict")

    threads = [threading.Thread(target=attempt) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("ok") == 1
    assert outcomes.count("conflict") == 7
    assert attendance_repo.inserts == 1


def test_concurrent_check_outs_succeed_once(service):
    service.request_check_in("bob", MARCH_1, sample())
    barrier = threading.Barrier(6)
    outcomes = []

    def attempt():
        barrier.wait()
        try:
            service.request_check_out("bob", MARCH_1, sample())
            outcomes.append("ok")
        except AlreadyCheckedOut:
            outcomes.append("conflict")

    threads = [threading.Thread(target=attempt) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["conflict"] * 5 + ["ok"]


def test_clamped_check_out_still_advances_the_feed(service, attendance_repo, clock):
    feed = StatusSync(attendance_repo)
    checked_in = service.request_check_in("alice", MARCH_1, sample()).record
    cursor = feed.updates_since(None).cursor
    clock.now = ist(2024, 3, 1, 9, 0)

    service.request_check_out("alice", MARCH_1, sample())
    batch = feed.updates_since(cursor)

    assert [u.user_identifier for u in batch.updates] == ["alice"]
    update = batch.updates[0]
    assert update.check_out_time == checked_in.check_in_time
    assert update.committed_at > checked_in.updated_at


class StaleReadAttendance(InMemoryAttendance):
    """Serves ``snapshot`` for the first lookups, as if another process wrote the row meanwhile."""

    def __init__(self, snapshot, stale_reads):
        super().__init__()
        self.snapshot = snapshot
        self.stale_reads = stale_reads

    def get_for_user_and_date(self, username, work_date):
        if self.stale_reads > 0:
            self.stale_reads -= 1
            return self.snapshot
        return super().get_for_user_and_date(username, work_date)


def _checked_in(repo):
    return repo.create_checkin(
        username="alice", work_date=MARCH_1, check_in_time=ist(2024, 3, 1, 9, 0), location=RecordedLocation(sample())
    )


def _watched_service(repo, users_repo, settings, clock):
    sync = StatusSync(repo)
    received = []
    sync.subscribe(received.append)
    return AttendanceService(repo, users_repo, sync, settings=settings, clock=clock), received


def test_store_duplicate_after_lock_is_already_checked_in(users_repo, settings, clock):
    repo = StaleReadAttendance(snapshot=None, stale_reads=2)
    _checked_in(repo)
    service, received = _watched_service(repo, users_repo, settings, clock)

    with pytest.raises(AlreadyCheckedIn):
        service.request_check_in("alice", MARCH_1, sample())

    assert repo.inserts == 1
    assert received == []


def test_conditional_update_miss_on_checked_out_row_is_already_checked_out(users_repo, settings, clock):
    repo = StaleReadAttendance(snapshot=None, stale_reads=0)
    repo.snapshot = _checked_in(repo)
    repo.update_checkout(
        username="alice",
        work_date=MARCH_1,
        check_out_time=ist(2024, 3, 1, 9, 2),
        committed_at=ist(2024, 3, 1, 9, 2),
        location=RecordedLocation(sample()),
    )
    repo.stale_reads = 2
    service, received = _watched_service(repo, users_repo, settings, clock)

    with pytest.raises(AlreadyCheckedOut):
        service.request_check_out("alice", MARCH_1, sample())

    assert repo.get_for_user_and_date("alice", MARCH_1).check_out_time == ist(2024, 3, 1, 9, 2)
    assert received == []


def test_conditional_update_miss_on_vanished_row_is_not_checked_in(users_repo, settings, clock):
    repo = StaleReadAttendance(snapshot=_checked_in(InMemoryAttendance()), stale_reads=2)
    service, received = _watched_service(repo, users_repo, settings, clock)

    with pytest.raises(NotCheckedIn):
        service.request_check_out("alice", MARCH_1, sample())

    assert received == []


def test_missing_date_uses_server_date(service):
    result = service.request_check_in("alice", None, sample())

    assert result.record.work_date == MARCH_1


def test_previous_day_accepted_just_after_midnight(service, clock):
    clock.now = ist(2024, 3, 2, 0, 1)

    result = service.request_check_in("alice", MARCH_1, sample())

    assert result.record.work_date == MARCH_1


def test_previous_day_rejected_outside_grace(service, clock):
    clock.now = ist(2024, 3, 2, 0, 5)

    with pytest.raises(ValidationError):
        service.request_check_in("alice", MARCH_1, sample())


def test_future_date_rejected(service):
    with pytest.raises(ValidationError):
        service.request_check_in("alice", date(2024, 3, 2), sample())


@pytest.mark.parametrize("username", ["", "   ", "mallory", "carol"])
def test_unknown_inactive_or_blank_user(service, attendance_repo, username):
    with pytest.raises(ValidationError):
        service.request_check_in(username, MARCH_1, sample())
    assert attendance_repo.inserts == 0


def test_client_time_skew_is_logged_not_used(service, caplog):
    with caplog.at_level(logging.WARNING):
        result = service.request_check_in("alice", MARCH_1, sample(), client_time=ist(2024, 3, 1, 7, 0))

    assert result.record.check_in_time == ist(2024, 3, 1, 9, 5)
    assert any("off server time" in r.getMessage() for r in caplog.records)


def test_geofence_blocks_outside_samples(attendance_repo, users_repo, settings, clock):
    office = Geofence(name="office", latitude=12.9716, longitude=77.5946, radius_meters=200)
    service = AttendanceService(
        attendance_repo,
        users_repo,
        StatusSync(attendance_repo),
        settings=replace(settings, geofences=(office,)),
        clock=clock,
    )

    with pytest.raises(OutsideGeofence):
        service.request_check_in("alice", MARCH_1, sample(lat=13.0827, lon=80.2707))
    assert attendance_repo.inserts == 0

    service.request_check_in("alice", MARCH_1, sample())
    assert attendance_repo.inserts == 1


def test_strict_policy_rejects_teleporting_check_out(attendance_repo, users_repo, settings, clock):
    container = build_services(
        settings=replace(settings, integrity_policy="strict"),
        users_repo=users_repo,
        attendance_repo=attendance_repo,
        clock=clock,
    )
    service = container.attendance_service
    service.request_check_in("alice", MARCH_1, sample(at=ist(2024, 3, 1, 9, 0)))

    # Bangalore to Chennai in ten minutes.
    with pytest.raises(IntegrityRejected):
        service.request_check_out("alice", MARCH_1, sample(lat=13.0827, lon=80.2707, at=ist(2024, 3, 1, 9, 10)))

    assert service.get_status("alice", MARCH_1).checked_out is False


def test_permissive_policy_flags_but_accepts(service):
    service.request_check_in("alice", MARCH_1, sample(at=ist(2024, 3, 1, 9, 0)))

    result = service.request_check_out("alice", MARCH_1, sample(lat=13.0827, lon=80.2707, at=ist(2024, 3, 1, 9, 10)))

    assert result.signal.flags.rapid_movement
    assert result.signal.distance_meters > 250_000


class FakeGeocoder:
    def __init__(self):
        self.calls = []

    def reverse(self, latitude, longitude):
        self.calls.append((latitude, longitude))
        return "MG Road, Bengaluru"


def test_geocoded_address_is_recorded(attendance_repo, users_repo, settings, clock):
    geocoder = FakeGeocoder()
    container = build_services(
        settings=settings, users_repo=users_repo, attendance_repo=attendance_repo, geocoder=geocoder, clock=clock
    )

    result = container.attendance_service.request_check_in("alice", MARCH_1, sample())

    assert result.record.check_in_location.address == "MG Road, Bengaluru"
    assert geocoder.calls == [(12.9716, 77.5946)]


def test_committed_transitions_are_pushed_to_listeners(container, clock):
    received = []
    container.status_sync.subscribe(received.append)
    service = container.attendance_service

    service.request_check_in("alice", MARCH_1, sample())
    clock.now = ist(2024, 3, 1, 17, 30)
    service.request_check_out("alice", MARCH_1, sample())

    assert [u.user_identifier for u in received] == ["alice", "alice"]
    assert received[0].check_out_time is None
    assert received[1].check_out_time == ist(2024, 3, 1, 17, 30)


def test_failed_transition_is_not_pushed(container):
    received = []
    container.status_sync.subscribe(received.append)

    with pytest.raises(NotCheckedIn):
        container.attendance_service.request_check_out("alice", MARCH_1, sample())

    assert received == []


def test_history_classifies_each_day(service, clock):
    clock.now = ist(2024, 3, 1, 9, 5)
    service.request_check_in("alice", None, sample())
    clock.now = ist(2024, 3, 1, 18, 30)
    service.request_check_out("alice", None, sample())

    clock.now = ist(2024, 3, 2, 9, 0)
    service.request_check_in("alice", None, sample())
    clock.now = ist(2024, 3, 2, 16, 0)
    service.request_check_out("alice", None, sample())

    clock.now = ist(2024, 3, 3, 9, 30)
    service.request_check_in("alice", None, sample())

    rows = service.get_history("alice")

    assert [r.record.work_date.day for r in rows] == [3, 2, 1]
    assert [r.status for r in rows] == [DayStatus.NO_CHECK_OUT, DayStatus.DONE, DayStatus.LATE]
    assert rows[1].worked_minutes == 420
    assert rows[0].to_dict()["status"] == "NO_CHECK_OUT"


def test_history_rejects_negative_days(service):
    with pytest.raises(ValidationError):
        service.get_history("alice", days=-1)


def test_today_lists_latest_first(service, clock):
    service.request_check_in("alice", None, sample())
    clock.now = ist(2024, 3, 1, 9, 6)
    service.request_check_in("bob", None, sample())

    assert [r.username for r in service.get_today(limit=5)] == ["bob", "alice"]
    assert [r.username for r in service.get_today(limit=1)] == ["bob"]
