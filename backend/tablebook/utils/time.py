from datetime import date, datetime, time, timedelta, timezone


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def weekday_name(day: date) -> str:
    """Upper-case English weekday name, e.g. MONDAY."""
    return day.strftime("%A").upper()


def anchor(day: date, clock: time) -> datetime:
    """Place a time-of-day onto a calendar date, dropping any tz or date part the time carries."""
    return datetime.combine(day, clock.replace(tzinfo=None))


def iter_days(start: date, count: int):
    for offset in range(count):
        yield start + timedelta(days=offset)
