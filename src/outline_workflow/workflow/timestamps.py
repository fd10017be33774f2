"""Start-timestamp parsing and spent-time rendering.

Timestamps use ``strftime`` formats (``%Y-%m-%d %H:%M:%S`` by default). Spent
time uses a small duration template language:

- ``HH`` / ``H``  total hours (or hours within the day when ``D`` is present)
- ``mm`` / ``m``  minutes
- ``ss`` / ``s``  seconds
- ``DD`` / ``D``  whole days
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta

from .tokens import start_timestamp_pattern

_DURATION_TOKEN_RE = re.compile(r"DD|D|HH|H|mm|m|ss|s")


@dataclass(frozen=True, slots=True)
class TimestampToken:
    """A start timestamp found on a line, with its span inside that line."""

    start: int
    end: int
    value: datetime


def find_start_timestamp(text: str, timestamp_format: str) -> TimestampToken | None:
    """Locate and parse the start-timestamp token on a line.

    Returns None when the token is absent or does not parse with
    ``timestamp_format``.
    """

    match = start_timestamp_pattern(timestamp_format).search(text)
    if match is None:
        return None
    try:
        value = datetime.strptime(match.group("value"), timestamp_format)
    except ValueError:
        return None
    return TimestampToken(start=match.start(), end=match.end(), value=value)


def format_timestamp(moment: datetime, timestamp_format: str) -> str:
    return moment.strftime(timestamp_format)


def elapsed_between(start: datetime, end: datetime) -> timedelta:
    # Naive timestamps on the line are local wall-clock values.
    if start.tzinfo is None and end.tzinfo is not None:
        end = end.replace(tzinfo=None)
    elif start.tzinfo is not None and end.tzinfo is None:
        start = start.replace(tzinfo=None)
    delta = end - start
    return delta if delta > timedelta(0) else timedelta(0)


def format_duration(duration: timedelta, template: str = "HH:mm:ss") -> str:
    total = int(duration.total_seconds())
    total = max(total, 0)
    has_days = "D" in template
    days, remainder = divmod(total, 86400) if has_days else (0, total)
    hours, remainder = divmod(remainder, 3600)
    minutes, seconds = divmod(remainder, 60)

    values = {
        "DD": f"{days:02d}",
        "D": str(days),
        "HH": f"{hours:02d}",
        "H": str(hours),
        "mm": f"{minutes:02d}",
        "m": str(minutes),
        "ss": f"{seconds:02d}",
        "s": str(seconds),
    }
    return _DURATION_TOKEN_RE.sub(lambda m: values[m.group(0)], template)
