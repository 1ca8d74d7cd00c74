from __future__ import annotations

from enum import Enum


class AttendanceState(str, Enum):
    """Trạng thái của một bucket (username, ngày)."""

    ABSENT = "ABSENT"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"


class AttendanceAction(str, Enum):
    CHECKIN = "checkin"
    CHECKOUT = "checkout"


class DayStatus(str, Enum):
    """Classification shown in history/dashboards."""

    NOT_IN = "NOT_IN"
    NO_CHECK_OUT = "NO_CHECK_OUT"
    LATE = "LATE"
    DONE = "DONE"


class PositionErrorCode(int, Enum):
    """Same numbering as the device geolocation API."""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3
