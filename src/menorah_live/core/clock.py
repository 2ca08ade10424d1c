from datetime import datetime, timedelta, timezone


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def advance(previous: datetime) -> datetime:
    """Current time, moved past ``previous`` if the clock has not ticked since."""
    current = now_utc()
    if current <= previous:
        return previous + timedelta(microseconds=1)
    return current
