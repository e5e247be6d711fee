from __future__ import annotations

import hashlib
from datetime import date, datetime, timedelta, timezone

MS_PER_DAY = 86_400_000
ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


def from_timestamp(seconds: float) -> datetime:
    return datetime.fromtimestamp(float(seconds), tz=timezone.utc)


def to_timestamp(dt: datetime) -> float:
    return ensure_utc(dt).timestamp()


def day_key(dt: datetime) -> int:
    """Day number since the epoch: unix milliseconds floored to whole days."""
    millis = int(round(to_timestamp(dt) * 1000))
    return millis // MS_PER_DAY


def start_of_day(dt: datetime) -> datetime:
    dt = ensure_utc(dt)
    return datetime(dt.year, dt.month, dt.day, tzinfo=timezone.utc)


def parse_day(value: str | date) -> datetime:
    if isinstance(value, datetime):
        return start_of_day(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return start_of_day(datetime.fromisoformat(value.replace("Z", "+00:00")))


def stable_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
