import time
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

NYSE_TZ = ZoneInfo("America/New_York")
# Regular session, minutes after midnight ET: 09:30 -> 16:00
_NYSE_OPEN_MIN = 9 * 60 + 30
_NYSE_CLOSE_MIN = 16 * 60


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def utc_now_iso() -> str:
    return utc_now().isoformat()


@contextmanager
def timer_ms():
    start = time.perf_counter()
    yield lambda: int((time.perf_counter() - start) * 1000)


def is_market_open(now: datetime | None = None) -> bool:
    """True during NYSE regular hours (Mon-Fri 09:30-16:00 ET).

    Holidays are not taken into account. Naive datetimes are treated as UTC.
    """
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    et = now.astimezone(NYSE_TZ)
    if et.weekday() >= 5:
        return False
    minutes = et.hour * 60 + et.minute
    return _NYSE_OPEN_MIN <= minutes < _NYSE_CLOSE_MIN


def news_date_window(now: datetime | None = None, days: int = 30) -> tuple[str, str]:
    """Return (from, to) as YYYY-MM-DD covering the last `days` days in UTC."""
    now = (now or utc_now()).astimezone(UTC)
    return (now - timedelta(days=days)).date().isoformat(), now.date().isoformat()
