import math
import re
import time

# Human readable durations: "2h", "7d", "1.5 hours", "90 s". A bare number is milliseconds.
DURATION_PATTERN = re.compile(
    r"^(?P<value>-?(?:\d+)?\.?\d+) *"
    r"(?P<unit>milliseconds?|msecs?|ms|seconds?|secs?|s|minutes?|mins?|m"
    r"|hours?|hrs?|h|days?|d|weeks?|w|years?|yrs?|y)?$",
    re.IGNORECASE,
)
MAX_DURATION_LENGTH = 100

SECOND = 1000
MINUTE = SECOND * 60
HOUR = MINUTE * 60
DAY = HOUR * 24
WEEK = DAY * 7
YEAR = DAY * 365.25

UNIT_MILLISECONDS = {
    "years": YEAR,
    "year": YEAR,
    "yrs": YEAR,
    "yr": YEAR,
    "y": YEAR,
    "weeks": WEEK,
    "week": WEEK,
    "w": WEEK,
    "days": DAY,
    "day": DAY,
    "d": DAY,
    "hours": HOUR,
    "hour": HOUR,
    "hrs": HOUR,
    "hr": HOUR,
    "h": HOUR,
    "minutes": MINUTE,
    "minute": MINUTE,
    "mins": MINUTE,
    "min": MINUTE,
    "m": MINUTE,
    "seconds": SECOND,
    "second": SECOND,
    "secs": SECOND,
    "sec": SECOND,
    "s": SECOND,
    "milliseconds": 1,
    "millisecond": 1,
    "msecs": 1,
    "msec": 1,
    "ms": 1,
}


def parse_duration(text: str) -> float | None:
    """
    Parse a human readable duration into milliseconds.

    Args:
        text: Duration such as "2h", "7 days" or "1500"

    Returns:
        float | None: Milliseconds, or None if the text is not a duration
    """
    if not text or len(text) > MAX_DURATION_LENGTH:
        return None

    match = DURATION_PATTERN.match(text.strip())
    if match is None:
        return None

    unit = (match.group("unit") or "ms").lower()
    return float(match.group("value")) * UNIT_MILLISECONDS[unit]


def resolve_deadline(span: str | int | float | None, reference: int | None = None) -> int | None:
    """
    Convert a lifetime specification into an absolute unix timestamp.

    Args:
        span: Duration string, or a number of seconds relative to the reference
        reference: Unix timestamp the span starts from. Defaults to now.

    Returns:
        int | None: Absolute deadline in seconds, or None when the span is unset
        or cannot be parsed
    """
    timestamp = reference if reference is not None else int(time.time())

    # bool is an int subclass but never a valid span
    if isinstance(span, bool):
        return None

    if isinstance(span, str):
        milliseconds = parse_duration(span)
        if milliseconds is None:
            return None

        return math.floor(timestamp + milliseconds / 1000)

    if isinstance(span, (int, float)):
        return math.floor(timestamp + span)

    return None
