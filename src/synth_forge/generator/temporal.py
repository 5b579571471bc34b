"""
Date and duration helpers used by the value resolver.

Handles:
- ISO-8601 formatting/parsing of generated timestamps
- Random dates within the trailing five-year window
- The created/modified time-arrow constraint
- Date-logic offsets (Now / Column / Between)
- Durations between two timestamps
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

import numpy as np
import pandas as pd

from synth_forge.models import DateMode, DateOperator, DateRule, DurationUnit
from synth_forge.randomness import RandomSource

MODIFIED_MARKERS = ("modified", "updated")
CREATED_MARKERS = ("created", "originated")


def is_modified_name(name: str) -> bool:
    lower = name.lower()
    return any(marker in lower for marker in MODIFIED_MARKERS)


def is_created_name(name: str) -> bool:
    lower = name.lower()
    return any(marker in lower for marker in CREATED_MARKERS)


def format_timestamp(value: datetime) -> str:
    """Format as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(text: Optional[str]) -> Optional[datetime]:
    """Parse a generated or user-supplied date; None when unparseable."""
    if text is None or not str(text).strip():
        return None
    parsed = pd.to_datetime(str(text), utc=True, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def window_start(now: datetime) -> datetime:
    """First instant of the random date window (1 January, five years back)."""
    return datetime(now.year - 5, 1, 1, tzinfo=now.tzinfo or timezone.utc)


def random_between(rng: RandomSource, start: datetime, end: datetime) -> datetime:
    if end < start:
        start, end = end, start
    span = (end - start).total_seconds()
    return start + timedelta(seconds=span * rng.next_float())


def random_recent(rng: RandomSource, now: datetime) -> datetime:
    return random_between(rng, window_start(now), now)


def after_created(rng: RandomSource, created: Optional[datetime], now: datetime) -> datetime:
    """A modification time that never precedes its creation time."""
    if created is None:
        return random_recent(rng, now)
    if created >= now:
        return created
    return random_between(rng, created, now)


def apply_date_logic(
    rule: DateRule,
    rng: RandomSource,
    now: datetime,
    first: Optional[datetime] = None,
    second: Optional[datetime] = None,
) -> datetime:
    """
    Compute a date from a date-logic rule.

    ``first``/``second`` are the parsed values of the referenced columns.
    Missing references fall back to a random recent date.

    Raises:
        OverflowError: If the offset leaves the representable date range
    """
    if rule.mode == DateMode.BETWEEN:
        if first is None or second is None:
            return random_recent(rng, now)
        return random_between(rng, first, second)

    if rule.mode == DateMode.COLUMN:
        if first is None:
            return random_recent(rng, now)
        base = first
    else:
        base = now

    low, high = sorted((abs(rule.min_offset), abs(rule.max_offset)))
    days = rng.randint(low, high)

    if rule.operator == DateOperator.BEFORE:
        return base - timedelta(days=max(days, 1))
    if rule.operator == DateOperator.ON_BEFORE:
        return base - timedelta(days=days)
    if rule.operator == DateOperator.AFTER:
        return base + timedelta(days=max(days, 1))
    return base + timedelta(days=days)


def duration_between(
    start: Optional[datetime],
    end: Optional[datetime],
    unit: DurationUnit = DurationUnit.DAYS,
) -> int:
    """Whole units from start to end; zero for missing or inverted input."""
    if start is None or end is None or end <= start:
        return 0

    if unit == DurationUnit.WORKING_DAYS:
        return int(np.busday_count(start.date(), end.date()))

    seconds = (end - start).total_seconds()
    per_unit = {
        DurationUnit.HOURS: 3600,
        DurationUnit.DAYS: 86400,
        DurationUnit.WEEKS: 7 * 86400,
    }[unit]
    return int(math.floor(seconds / per_unit))
