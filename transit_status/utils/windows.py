# transit_status/utils/windows.py

# Interval arithmetic for incident downtime.
# clip() is the single place overlap is computed: every caller (uptime, issue counts,
# daily stats, comparison periods) routes through it.
# Open-ended intervals are treated as ending at the evaluation instant `now`, without
# mutating the stored None end.
# Also splits intervals per local calendar day, clips the pieces against each day's
# service window, and merges overlapping segments.

from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Iterator, List, Optional, Tuple
from zoneinfo import ZoneInfo

from transit_status.config import operating_tz
from transit_status.errors import NoServiceWindow
from transit_status.models import HolidayCalendar, IncidentType, Line
from transit_status.utils.calendar import resolve_window

@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

@dataclass(frozen=True)
class ConcreteInterval:
    incident_id: str
    incident_type: IncidentType
    start: datetime
    end: Optional[datetime]  # None => still open

@dataclass(frozen=True)
class ClippedSegment:
    incident_id: str
    incident_type: IncidentType
    start: datetime
    end: datetime

    @property
    def seconds(self) -> float:
        return (self.end - self.start).total_seconds()

def _end_or_now(end: datetime | None, now: datetime | None) -> datetime:
    if end is not None:
        return end
    if now is None:
        raise ValueError("open-ended interval needs an evaluation instant (now)")
    return now

def clip(interval, bound, now: datetime | None = None) -> ClippedSegment | None:
    """
    Intersect an incident interval (ConcreteInterval or ClippedSegment) with a
    half-open bound (anything with .start/.end). Returns None for empty overlaps.
    """
    s = max(interval.start, bound.start)
    e = min(_end_or_now(interval.end, now), bound.end)
    if e <= s:
        return None
    return ClippedSegment(interval.incident_id, interval.incident_type, s, e)

def merge_overlaps(intervals: Iterable) -> List[Interval]:
    xs = sorted(intervals, key=lambda i: i.start)
    out: List[Interval] = []
    for iv in xs:
        if not out or iv.start > out[-1].end:
            out.append(Interval(iv.start, iv.end))
        else:
            out[-1] = Interval(out[-1].start, max(out[-1].end, iv.end))
    return out

def day_bounds(day: date, tz: ZoneInfo) -> Interval:
    start = datetime.combine(day, time(0)).replace(tzinfo=tz)
    return Interval(start, datetime.combine(day + timedelta(days=1), time(0)).replace(tzinfo=tz))

def split_by_day(interval, now: datetime | None = None, tz: ZoneInfo | None = None) -> Iterator[Tuple[date, ClippedSegment]]:
    """One clipped piece per local calendar day the interval overlaps."""
    tz = tz or operating_tz()
    end = _end_or_now(interval.end, now)
    if end <= interval.start:
        return
    day = interval.start.astimezone(tz).date()
    while True:
        bounds = day_bounds(day, tz)
        if bounds.start >= end:
            break
        piece = clip(interval, bounds, now)
        if piece:
            yield day, piece
        day += timedelta(days=1)

def service_segments(
    interval,
    line: Line,
    holidays: HolidayCalendar,
    now: datetime | None = None,
    bound=None,
    tz: ZoneInfo | None = None,
) -> Iterator[Tuple[date, ClippedSegment]]:
    """
    Portions of `interval` inside the line's service windows, keyed by service day.

    The interval is partitioned per calendar day first; each piece is clipped against
    its own day's window and the previous day's, since an overnight window reaches
    past midnight. Days before the line's service start contribute nothing.
    """
    tz = tz or operating_tz()
    for day, piece in split_by_day(interval, now, tz):
        for service_day in (day - timedelta(days=1), day):
            try:
                window = resolve_window(line, service_day, holidays, tz)
            except NoServiceWindow:
                continue
            seg = clip(piece, window)
            if seg is not None and bound is not None:
                seg = clip(seg, bound)
            if seg is not None:
                yield service_day, seg
