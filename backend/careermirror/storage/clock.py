from datetime import UTC, datetime, timedelta

_TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(UTC)


def touch(previous: datetime | None, now: datetime) -> datetime:
    """Return a modification time strictly after ``previous``."""
    if previous is not None and previous.tzinfo is None:
        previous = previous.replace(tzinfo=UTC)
    if previous is not None and now <= previous:
        return previous + _TICK
    return now
