from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

import requests

from ..attendance.model import AttendanceStatusView
from ..core.enums import AttendanceAction
from ..core.exceptions import (
    AlreadyCheckedIn,
    AlreadyCheckedOut,
    DomainError,
    InfrastructureError,
    IntegrityRejected,
    NotCheckedIn,
    OutsideGeofence,
    StoreUnavailable,
    ValidationError,
)
from ..location.model import LocationSample

logger = logging.getLogger(__name__)

_ERRORS_BY_CODE: dict[str, type[Exception]] = {
    AlreadyCheckedIn.code: AlreadyCheckedIn,
    AlreadyCheckedOut.code: AlreadyCheckedOut,
    NotCheckedIn.code: NotCheckedIn,
    IntegrityRejected.code: IntegrityRejected,
    OutsideGeofence.code: OutsideGeofence,
    StoreUnavailable.code: StoreUnavailable,
    ValidationError.code: ValidationError,
}


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class AttendanceApiClient:
    """HTTP client for the attendance endpoints; errors come back as typed exceptions."""

    def __init__(self, base_url: str, *, session: Optional[requests.Session] = None, timeout: float = 15):
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout

    def status(self, username: str, work_date: Optional[date] = None) -> AttendanceStatusView:
        params = {"username": username}
        if work_date:
            params["date"] = work_date.isoformat()
        data = self._request("GET", "/attendance/status", params=params)
        return AttendanceStatusView(
            checked_in=bool(data.get("checkedIn")),
            checked_out=bool(data.get("checkedOut")),
            check_in_time=_parse_time(data.get("checkInTime")),
            check_out_time=_parse_time(data.get("checkOutTime")),
        )

    def mark(
        self,
        action: AttendanceAction,
        *,
        username: str,
        work_date: date,
        sample: LocationSample,
        client_time: Optional[datetime] = None,
    ) -> dict:
        prefix = "checkIn" if action == AttendanceAction.CHECKIN else "checkOut"
        body = {
            "username": username,
            "date": work_date.isoformat(),
            f"{prefix}Time": client_time.isoformat() if client_time else None,
            f"{prefix}Latitude": sample.latitude,
            f"{prefix}Longitude": sample.longitude,
            f"{prefix}Accuracy": sample.accuracy_meters,
        }
        return self._request("POST", f"/attendance/{action.value}", json=body)

    def check_in(self, **kwargs) -> dict:
        return self.mark(AttendanceAction.CHECKIN, **kwargs)

    def check_out(self, **kwargs) -> dict:
        return self.mark(AttendanceAction.CHECKOUT, **kwargs)

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self._session.request(method, self._base_url + path, timeout=self._timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            raise InfrastructureError(f"Attendance service unreachable: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code < 400:
            return data

        message = data.get("message") or f"HTTP {response.status_code}"
        error_cls = _ERRORS_BY_CODE.get(data.get("error", ""))
        if error_cls is None:
            if response.status_code >= 500:
                error_cls = InfrastructureError
            elif response.status_code == 409:
                error_cls = AlreadyCheckedIn
            else:
                error_cls = DomainError
        logger.debug("%s %s -> %s %s", method, path, response.status_code, message)
        raise error_cls(message)
