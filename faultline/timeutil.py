"""
Time helpers. Every timestamp in the system is epoch milliseconds.
"""
import time

MILLISECONDS_IN_SECOND = 1000
DAY_MS = 24 * 60 * 60 * MILLISECONDS_IN_SECOND


def now_ms() -> int:
    return int(time.time() * MILLISECONDS_IN_SECOND)


def seconds_to_milliseconds(seconds: int) -> int:
    return seconds * MILLISECONDS_IN_SECOND
