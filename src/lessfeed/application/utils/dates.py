"""UTC day arithmetic shared by the daily ritual, streak and support trackers."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def utc_day(moment: datetime) -> str:
    """ISO date (YYYY-MM-DD) of the UTC calendar day containing moment."""
    return to_utc(moment).date().isoformat()


def utc_yesterday(moment: datetime) -> str:
    return (to_utc(moment) - timedelta(days=1)).date().isoformat()


def epoch_ms(moment: datetime) -> int:
    return int(to_utc(moment).timestamp() * 1000)
