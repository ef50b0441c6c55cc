from datetime import date, datetime, timedelta, timezone
from typing import Iterator


def from_iso_string(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        raise ValueError("Stored datetime must be timezone-aware")
    return dt.astimezone(timezone.utc)


def to_iso_string(dt: datetime) -> str:
    if dt.tzinfo is None:
        raise ValueError("Datetime must be timezone-aware")
    return dt.astimezone(timezone.utc).isoformat()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def each_night(check_in: date, check_out: date) -> Iterator[date]:
    """Yield every night of the half-open stay [check_in, check_out)."""
    current = check_in
    while current < check_out:
        yield current
        current += timedelta(days=1)


def stays_overlap(
    check_in: date, check_out: date, other_in: date, other_out: date
) -> bool:
    return check_in < other_out and check_out > other_in
