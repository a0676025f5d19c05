# transit_status/utils/calendar.py

# Resolves a line's absolute service window for a single local calendar day.
# Holidays and weekends use the weekend operating hours, other days the weekday hours.
# Overnight windows (e.g. 06:00 -> 01:00) end on the following calendar day, so every
# window is an absolute (start, end) pair with end > start.

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator
from zoneinfo import ZoneInfo

from transit_status.config import operating_tz
from transit_status.errors import NoServiceWindow
from transit_status.models import DayType, HolidayCalendar, Line, OperatingHours

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class ServiceWindow:
    line_id: str
    day: date
    start: datetime
    end: datetime
    day_type: DayType

    @property
    def seconds(self) -> float:
        return (self.end - self.start).total_seconds()

def classify_day(day: date, holidays: HolidayCalendar) -> DayType:
    """Holiday status wins over the weekday/weekend split."""
    if day in holidays:
        return DayType.public_holiday
    if day.weekday() >= 5:  # 5=Sat, 6=Sun
        return DayType.weekend
    return DayType.weekday

def hours_for(line: Line, day_type: DayType) -> OperatingHours:
    if day_type is DayType.weekday:
        return line.weekday_hours
    return line.weekend_hours

def resolve_window(line: Line, day: date, holidays: HolidayCalendar, tz: ZoneInfo | None = None) -> ServiceWindow:
    if day < line.started_on:
        raise NoServiceWindow(line.id, day, line.started_on)
    tz = tz or operating_tz()
    day_type = classify_day(day, holidays)
    hours = hours_for(line, day_type)

    start = datetime.combine(day, hours.start).replace(tzinfo=tz)
    if hours.overnight:
        # closes on the next calendar day
        end = datetime.combine(day + timedelta(days=1), hours.end).replace(tzinfo=tz)
    else:
        end = datetime.combine(day, hours.end).replace(tzinfo=tz)
    return ServiceWindow(line.id, day, start, end, day_type)

def service_windows(
    line: Line,
    first_day: date,
    last_day: date,
    holidays: HolidayCalendar,
    tz: ZoneInfo | None = None,
) -> Iterator[ServiceWindow]:
    """Windows for every day in [first_day, last_day]; days before service start are skipped."""
    day = first_day
    if day < line.started_on:
        logger.debug("line %s: no service before %s, skipping from %s", line.id, line.started_on, day)
        day = line.started_on
    while day <= last_day:
        yield resolve_window(line, day, holidays, tz)
        day += timedelta(days=1)
