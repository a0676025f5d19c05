# transit_status/utils/buckets.py

# Plans fixed-width reporting buckets (day / month / year) anchored to an injected instant.
# Buckets are truncated to the start of their unit in the operating timezone and are
# half-open [start, end). The rightmost bucket contains the anchor and is in progress.

from __future__ import annotations
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import List, Tuple
from zoneinfo import ZoneInfo

from dateutil.relativedelta import relativedelta

from transit_status.config import operating_tz

class Granularity(str, enum.Enum):
    day = "day"
    month = "month"
    year = "year"

@dataclass(frozen=True)
class Bucket:
    start: datetime
    end: datetime
    label: str
    in_progress: bool = False

def truncate(moment: datetime, granularity: Granularity, tz: ZoneInfo | None = None) -> datetime:
    local = moment.astimezone(tz or operating_tz())
    local = local.replace(hour=0, minute=0, second=0, microsecond=0)
    g = Granularity(granularity)
    if g is Granularity.month:
        local = local.replace(day=1)
    elif g is Granularity.year:
        local = local.replace(month=1, day=1)
    return local

def shift(moment: datetime, granularity: Granularity, n: int) -> datetime:
    g = Granularity(granularity)
    if g is Granularity.day:
        return moment + relativedelta(days=n)
    if g is Granularity.month:
        return moment + relativedelta(months=n)
    return moment + relativedelta(years=n)

def bucket_label(start: datetime, granularity: Granularity) -> str:
    g = Granularity(granularity)
    if g is Granularity.day:
        return start.strftime("%Y-%m-%d")
    if g is Granularity.month:
        return start.strftime("%Y-%m")
    return start.strftime("%Y")

def plan_buckets(granularity: Granularity, count: int, anchor: datetime, tz: ZoneInfo | None = None) -> List[Bucket]:
    """count + 1 contiguous buckets; the last one contains `anchor`."""
    if count < 1:
        raise ValueError(f"bucket count must be positive, got {count}")
    g = Granularity(granularity)
    current = truncate(anchor, g, tz)
    out: List[Bucket] = []
    for offset in range(count, -1, -1):
        start = shift(current, g, -offset)
        out.append(Bucket(start, shift(start, g, 1), bucket_label(start, g), in_progress=offset == 0))
    return out

def plan_comparison_periods(
    granularity: Granularity, count: int, anchor: datetime, tz: ZoneInfo | None = None
) -> Tuple[Bucket, Bucket]:
    """
    current = [trunc(anchor) - (count-1) units, trunc(anchor) + 1 unit)
    prior   = the `count` units immediately before current
    """
    if count < 1:
        raise ValueError(f"bucket count must be positive, got {count}")
    g = Granularity(granularity)
    current_start = shift(truncate(anchor, g, tz), g, -(count - 1))
    current = Bucket(current_start, shift(current_start, g, count), "current", in_progress=True)
    prior = Bucket(shift(current_start, g, -count), current_start, "prior")
    return current, prior
