"""Date and time utilities"""

from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Timezone-aware current time in UTC"""
    return datetime.now(timezone.utc)


def ceil_seconds_until(target: datetime, now: datetime) -> int:
    """Whole seconds from now until target, rounded up, never negative"""
    micros = (target - now) // timedelta(microseconds=1)
    if micros <= 0:
        return 0
    return -(-micros // 1_000_000)
