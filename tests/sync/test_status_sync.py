from datetime import date

from geo_attendance.location.model import RecordedLocation
from geo_attendance.sync.service import StatusSync
from support import InMemoryAttendance, ist, sample


def _check_in(repo, username, hh, mm, ss=0):
    return repo.create_checkin(
        username=username,
        work_date=date(2024, 3, 1),
        check_in_time=ist(2024, 3, 1, hh, mm, ss),
        location=RecordedLocation(sample=sample()),
    )


def test_updates_since_returns_commit_order_and_next_cursor():
    repo = InMemoryAttendance()
    _check_in(repo, "bob", 9, 10)
    _check_in(repo, "alice", 9, 5)
    sync = StatusSync(repo)

    batch = sync.updates_since(None)

    assert [u.user_identifier for u in batch.updates] == ["bob", "alice"]
    assert [u.revision for u in batch.updates] == [1, 2]
    assert batch.cursor == 2
    assert sync.updates_since(batch.cursor).updates == []
    assert sync.updates_since(batch.cursor).cursor == batch.cursor


def test_batch_limit():
    repo = InMemoryAttendance()
    for i, name in enumerate(["a", "b", "c"]):
        _check_in(repo, name, 9, i)
    sync = StatusSync(repo, batch_limit=2)

    first = sync.updates_since(None)
    second = sync.updates_since(first.cursor)

    assert [u.user_identifier for u in first.updates] == ["a", "b"]
    assert [u.user_identifier for u in second.updates] == ["c"]


def test_batch_to_dict():
    repo = InMemoryAttendance()
    _check_in(repo, "alice", 9, 5)

    data = StatusSync(repo).updates_since(None).to_dict()

    assert data["type"] == "attendanceUpdate"
    assert data["payload"][0]["userIdentifier"] == "alice"
    assert data["payload"][0]["date"] == "2024-03-01"
    assert data["payload"][0]["checkOutTime"] is None


def test_listener_failure_does_not_stop_others(caplog):
    repo = InMemoryAttendance()
    sync = StatusSync(repo)
    received = []

    def broken(update):
        raise RuntimeError("dashboard offline")

    sync.subscribe(broken)
    sync.subscribe(received.append)

    sync.notify(_check_in(repo, "alice", 9, 5))

    assert [u.user_identifier for u in received] == ["alice"]
    assert any("status listener failed" in r.getMessage() for r in caplog.records)


def test_unsubscribe():
    repo = InMemoryAttendance()
    sync = StatusSync(repo)
    received = []
    unsubscribe = sync.subscribe(received.append)

    unsubscribe()
    unsubscribe()
    sync.notify(_check_in(repo, "alice", 9, 5))

    assert received == []


def test_iter_batches_yields_only_new_records():
    repo = InMemoryAttendance()
    sync = StatusSync(repo)
    polls = []

    def wait():
        polls.append(1)
        if len(polls) == 1:
            _check_in(repo, "alice", 9, 5)
        if len(polls) == 2:
            _check_in(repo, "bob", 9, 6)
        return len(polls) < 4

    batches = list(sync.iter_batches(0, wait=wait))

    assert [[u.user_identifier for u in b.updates] for b in batches] == [["alice"], ["bob"]]
    assert len(polls) == 4


def test_record_committed_after_poll_with_older_timestamp_is_not_skipped():
    repo = InMemoryAttendance()
    sync = StatusSync(repo)
    _check_in(repo, "bob", 9, 5, 1)
    first = sync.updates_since(None)

    # alice's request clock read 09:05:00 but her write committed after the poll.
    _check_in(repo, "alice", 9, 5, 0)
    second = sync.updates_since(first.cursor)

    assert [u.user_identifier for u in first.updates] == ["bob"]
    assert [u.user_identifier for u in second.updates] == ["alice"]
    assert second.cursor > first.cursor


def test_current_cursor_skips_history():
    repo = InMemoryAttendance()
    sync = StatusSync(repo)
    assert sync.current_cursor() == 0
    _check_in(repo, "alice", 9, 5)

    cursor = sync.current_cursor()
    _check_in(repo, "bob", 9, 6)

    assert [u.user_identifier for u in sync.updates_since(cursor).updates] == ["bob"]


def test_empty_batch_keeps_cursor():
    sync = StatusSync(InMemoryAttendance())

    assert sync.updates_since(None).cursor is None
    assert sync.updates_since(5).cursor == 5
