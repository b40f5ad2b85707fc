from datetime import datetime, timezone


def ensure_utc(dt: datetime) -> datetime:
    """Return `dt` as an aware UTC datetime.

    Naive datetimes are assumed to already be UTC (SQLite drops tzinfo on
    the way back out of the database).
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_timestamp(value) -> datetime:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime.

    Accepts a trailing 'Z' on Python versions whose fromisoformat does not.
    Example: '2025-01-01T10:00:00Z' -> datetime(2025, 1, 1, 10, tzinfo=UTC)
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or value.strip() == "":
        raise ValueError("timestamp must be a non-empty ISO-8601 string")
    s = value.strip()
    if s.endswith("Z") or s.endswith("z"):
        s = s[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(s))


def start_of_utc_day(dt: datetime) -> datetime:
    """Truncate to 00:00:00 of the UTC calendar day."""
    dt = ensure_utc(dt)
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def format_utc_date_key(dt: datetime) -> str:
    """Format the UTC date as 'YYYY-MM-DD'."""
    return ensure_utc(dt).strftime("%Y-%m-%d")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
