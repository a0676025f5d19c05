# Unit tests for the service calendar resolver.
# Weekday/weekend/holiday selection, overnight windows and service start dates.


from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest

from transit_status.errors import NoServiceWindow
from transit_status.models import DayType, HolidayCalendar, Line, OperatingHours
from transit_status.utils.calendar import classify_day, resolve_window, service_windows

SGT = ZoneInfo("Asia/Singapore")

def dt(y, m, d, hh=0, mm=0, tz=SGT):
    return datetime(y, m, d, hh, mm, tzinfo=tz)

NSL = Line(
    id="NSL",
    weekday_hours=OperatingHours(time(5, 30), time(0, 0)),  # 05:30 -> 24:00
    weekend_hours=OperatingHours(time(6, 0), time(0, 0)),
    started_on=date(1987, 11, 7),
)

def test_weekday_window_runs_to_midnight():
    w = resolve_window(NSL, date(2025,1,6), HolidayCalendar(), SGT)  # Monday
    assert w.start == dt(2025,1,6,5,30)
    assert w.end == dt(2025,1,7,0,0)
    assert w.seconds == 66600
    assert w.day_type is DayType.weekday

def test_weekend_window():
    w = resolve_window(NSL, date(2025,1,4), HolidayCalendar(), SGT)  # Saturday
    assert w.start == dt(2025,1,4,6)
    assert w.day_type is DayType.weekend

def test_holiday_on_weekday_uses_weekend_window():
    holidays = HolidayCalendar.of([date(2025,1,29)])  # Wednesday
    w = resolve_window(NSL, date(2025,1,29), holidays, SGT)
    weekend = resolve_window(NSL, date(2025,2,1), HolidayCalendar(), SGT)
    assert (w.start.time(), w.end.time()) == (weekend.start.time(), weekend.end.time())
    assert w.start == dt(2025,1,29,6)
    assert w.day_type is DayType.public_holiday

def test_holiday_takes_precedence_over_weekend():
    assert classify_day(date(2025,1,4), HolidayCalendar.of([date(2025,1,4)])) is DayType.public_holiday
    assert classify_day(date(2025,1,5), HolidayCalendar()) is DayType.weekend
    assert classify_day(date(2025,1,6), HolidayCalendar()) is DayType.weekday

def test_overnight_window_ends_next_day():
    line = Line("CCL", OperatingHours(time(6), time(1)), OperatingHours(time(6), time(1)), date(2020,1,1))
    assert line.weekday_hours.overnight
    assert not OperatingHours(time(6), time(23)).overnight
    w = resolve_window(line, date(2025,1,6), HolidayCalendar(), SGT)
    assert w.end == dt(2025,1,7,1)
    assert w.seconds == 19 * 3600

def test_windows_always_positive():
    lines = [
        NSL,
        Line("A", OperatingHours(time(6), time(1)), OperatingHours(time(7), time(7)), date(2024,12,1)),
        Line("B", OperatingHours(time(23), time(2)), OperatingHours(time(0), time(23, 59)), date(2024,12,1)),
    ]
    holidays = HolidayCalendar.of([date(2025,1,1), date(2025,1,29)])
    for line in lines:
        for offset in range(62):
            day = date(2025,1,1) + timedelta(days=offset)
            w = resolve_window(line, day, holidays, SGT)
            assert w.end > w.start

def test_equal_start_and_end_means_full_day():
    line = Line("X", OperatingHours(time(7), time(7)), OperatingHours(time(7), time(7)), date(2020,1,1))
    assert resolve_window(line, date(2025,1,6), HolidayCalendar(), SGT).seconds == 24 * 3600

def test_no_window_before_service_start():
    line = Line("TEL", NSL.weekday_hours, NSL.weekend_hours, started_on=date(2025,1,7))
    with pytest.raises(NoServiceWindow) as exc:
        resolve_window(line, date(2025,1,6), HolidayCalendar(), SGT)
    assert exc.value.line_id == "TEL"
    assert resolve_window(line, date(2025,1,7), HolidayCalendar(), SGT).day == date(2025,1,7)

def test_service_windows_skips_days_before_start():
    line = Line("TEL", NSL.weekday_hours, NSL.weekend_hours, started_on=date(2025,1,7))
    windows = list(service_windows(line, date(2025,1,5), date(2025,1,9), HolidayCalendar(), SGT))
    assert [w.day for w in windows] == [date(2025,1,7), date(2025,1,8), date(2025,1,9)]

def test_service_windows_empty_range():
    assert list(service_windows(NSL, date(2025,1,9), date(2025,1,8), HolidayCalendar(), SGT)) == []
