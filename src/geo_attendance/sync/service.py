from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Sequence

from ..attendance.model import AttendanceRecord, AttendanceUpdate
from ..attendance.repository import AttendanceRepository

logger = logging.getLogger(__name__)

Listener = Callable[[AttendanceUpdate], None]


@dataclass(frozen=True)
class UpdateBatch:
    updates: Sequence[AttendanceUpdate]
    cursor: Optional[int]

    def to_dict(self) -> dict:
        return {
            "type": "attendanceUpdate",
            "payload": [u.to_dict() for u in self.updates],
            "cursor": self.cursor,
        }


class StatusSync:
    """Pushes committed attendance changes to listeners and serves the poll feed.

    Reads only committed state; it never takes part in the write path's atomicity.
    """

    def __init__(self, attendance: AttendanceRepository, *, batch_limit: int = 200):
        self._attendance = attendance
        self._batch_limit = int(batch_limit)
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self, record: AttendanceRecord) -> None:
        update = AttendanceUpdate.from_record(record)
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(update)
            except Exception:
                # Already committed; a listener cannot undo it.
                logger.exception("status listener failed for attendance #%s", update.attendance_id)

    def current_cursor(self) -> int:
        """Cursor positioned after everything committed so far."""

        return self._attendance.latest_revision()

    def updates_since(self, cursor: Optional[int]) -> UpdateBatch:
        """Committed records with a revision above ``cursor``, in commit order."""

        records = self._attendance.list_updated_since(cursor, self._batch_limit)
        updates = [AttendanceUpdate.from_record(r) for r in records]
        next_cursor = updates[-1].revision if updates else cursor
        return UpdateBatch(updates=updates, cursor=next_cursor)

    def iter_batches(
        self,
        cursor: Optional[int],
        *,
        wait: Callable[[], bool],
    ) -> Iterator[UpdateBatch]:
        """Yield non-empty batches until ``wait()`` returns False.

        ``wait`` sleeps between polls; the SSE endpoint passes one bound to the poll interval.
        """

        while True:
            batch = self.updates_since(cursor)
            if batch.updates:
                cursor = batch.cursor
                yield batch
            if not wait():
                return
