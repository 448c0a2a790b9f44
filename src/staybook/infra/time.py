"""Time and calendar-date helpers."""

from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_date(value: date | datetime | str) -> date:
    """Normalize a check-in value to a calendar date.

    Time of day carries no meaning for a stay, so datetimes are truncated
    and ISO strings ("2024-01-01" or "2024-01-01T15:00:00Z") are parsed.

    Raises:
        TypeError: For values that are not dates, datetimes or strings.
        ValueError: For strings that are not ISO dates.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if "T" in text:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    raise TypeError(f"expected date, got {type(value).__name__}")


def nights_after(start: date, nights: int) -> date:
    """Return the date `nights` nights after `start`."""
    return start + timedelta(days=nights)
