from __future__ import annotations

from datetime import date, datetime, timedelta

import pytz


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date.

    Longer ISO strings (``2024-03-01T00:00:00.000Z``) are accepted by keeping the date part.
    """
    return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()


def org_timezone(name: str):
    return pytz.timezone(name)


def now_in(tz) -> datetime:
    """Current time in the organisation timezone.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now(pytz.utc).astimezone(tz)


def localize(value: datetime, tz) -> datetime:
    """Attach ``tz`` to a naive datetime, or convert an aware one."""
    if value.tzinfo is None:
        return tz.localize(value)
    return value.astimezone(tz)


def to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def parse_client_timestamp(value: str, tz) -> datetime:
    """Parse a client-reported time.

    Accepts ISO 8601 (with or without offset) and the ``dd/mm/yyyy, HH:MM:SS`` form
    produced by web clients formatting for the en-IN locale. Naive values are read in ``tz``.
    """

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return localize(datetime.fromisoformat(text), tz)
    except ValueError:
        pass

    for fmt in ("%d/%m/%Y, %H:%M:%S", "%d/%m/%Y %H:%M:%S"):
        try:
            return localize(datetime.strptime(text, fmt), tz)
        except ValueError:
            continue
    raise ValueError(f"Unrecognised timestamp: {value!r}")


def since_days(today: date, days: int) -> date:
    return today - timedelta(days=int(days))
